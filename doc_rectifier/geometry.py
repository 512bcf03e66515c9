import math
from dataclasses import dataclass
from typing import NamedTuple, List

from doc_rectifier.exceptions import ConfigurationError


class Point(NamedTuple):
    """Integer pixel coordinate, y grows downward."""
    x: int
    y: int


@dataclass
class StraightLine:
    """Hough-space line: perpendicular distance from the origin, normal angle, votes."""
    distance: int
    angle: float
    vote: int


class EquationLine:
    """
    Line in implicit form ``a*x + b*y + c = 0``.

    Build it with ``from_two_points`` (the line through both points) or with
    ``from_normal_vector`` (a normal vector plus any point on the line).
    """

    def __init__(self, a, b, c):
        if a == 0 and b == 0:
            raise ConfigurationError("Degenerate line: both direction coefficients are zero")
        self.a = float(a)
        self.b = float(b)
        self.c = float(c)

    @classmethod
    def from_two_points(cls, point1, point2):
        dx = point2[0] - point1[0]
        dy = point2[1] - point1[1]
        a = dy
        b = -dx
        return cls(a, b, -(a * point1[0] + b * point1[1]))

    @classmethod
    def from_normal_vector(cls, normal, point):
        a, b = normal[0], normal[1]
        return cls(a, b, -(point[0] * a + point[1] * b))

    def angle_deviation_ox(self) -> float:
        """Sort key in [0, pi]: arccos of b over the coefficient norm."""
        ratio = self.b / math.hypot(self.a, self.b)
        return math.acos(max(-1.0, min(1.0, ratio)))

    def signed_deviation_ox(self) -> float:
        """Signed angle between the line direction and the x axis, in (-pi/2, pi/2]."""
        angle = math.atan2(-self.a, self.b)
        if angle > math.pi / 2:
            angle -= math.pi
        elif angle <= -math.pi / 2:
            angle += math.pi
        return angle

    def determine_position(self, x, y):
        return self.a * x + self.b * y + self.c

    def __repr__(self):
        return f"EquationLine(a={self.a:g}, b={self.b:g}, c={self.c:g})"


def edges_from_corners(corners) -> List[EquationLine]:
    """Boundary lines TL->TR, TR->BR, BR->BL, BL->TL of an ordered quadrilateral."""
    return [EquationLine.from_two_points(corners[i], corners[(i + 1) % 4]) for i in range(4)]


def side_lengths(corners) -> List[float]:
    return [math.hypot(corners[(i + 1) % 4][0] - corners[i][0],
                       corners[(i + 1) % 4][1] - corners[i][1]) for i in range(4)]
