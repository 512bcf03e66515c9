import logging
import math
from itertools import combinations

from doc_rectifier.exceptions import ConfigurationError
from doc_rectifier.geometry import EquationLine, Point

logger = logging.getLogger(__name__)

PARALLEL_TOLERANCE = 10
NORMAL_OFFSET = 20


def make_equation_line(line):
    """Implicit form of a Hough line through the foot of its normal."""
    x1 = int(line.distance * math.cos(line.angle))
    y1 = int(line.distance * math.sin(line.angle))
    x2 = int(x1 + math.cos(line.angle + math.pi / 2) * NORMAL_OFFSET)
    y2 = int(y1 + math.sin(line.angle + math.pi / 2) * NORMAL_OFFSET)
    return EquationLine.from_normal_vector((x1, y1), (x2, y2))


def search_intersection(line1, line2):
    """Intersection point of two lines, or None when they are (near) parallel."""
    det = line1.a * line2.b - line1.b * line2.a
    if abs(det) < PARALLEL_TOLERANCE:
        return None
    x = (line1.b * line2.c - line1.c * line2.b) / det
    y = (line1.c * line2.a - line1.a * line2.c) / det
    return Point(int(round(x)), int(round(y)))


def sort_points(points):
    """Order four corners as [top-left, top-right, bottom-right, bottom-left]."""
    if len(points) != 4:
        raise ConfigurationError(f"Expected 4 document corners, found {len(points)}")
    ordered = sorted(points, key=lambda p: math.hypot(p[0], p[1]))
    near, second, third, far = ordered
    if second[0] < third[0] or second[1] > third[1]:
        second, third = third, second
    return [near, second, far, third]


def sort_equations(equations):
    """Order boundary lines as [top, bottom, left, right]."""
    by_angle = sorted(equations, key=lambda eq: eq.angle_deviation_ox())
    horizontal = sorted(by_angle[:2], key=lambda eq: abs(eq.c))
    vertical = sorted(by_angle[2:], key=lambda eq: abs(eq.c))
    return horizontal + vertical


def find_singular_points(lines, width, height, margin_x=None, margin_y=None):
    """
    Document corners from four Hough lines on a ``width`` x ``height`` image.

    Intersections more than a seventh of the width (a ninth of the height)
    outside the frame are discarded as spurious. Returns the ordered corners
    and the ordered boundary equations.
    """
    equations = [make_equation_line(line) for line in lines]
    if margin_x is None:
        margin_x = width // 7
    if margin_y is None:
        margin_y = height // 9
    corners = []
    for eq1, eq2 in combinations(equations, 2):
        point = search_intersection(eq1, eq2)
        if point is None:
            continue
        if -margin_x < point.x < width + margin_x and -margin_y < point.y < height + margin_y:
            corners.append(point)
        else:
            logger.debug("Rejected intersection %s outside the frame margin", point)
    if len(corners) != 4:
        raise ConfigurationError(
            f"Expected 4 document corners, found {len(corners)}: {corners}")
    return sort_points(corners), sort_equations(equations)
