import logging
import math

import numpy as np

from doc_rectifier.exceptions import ConfigurationError
from doc_rectifier.geometry import Point, side_lengths

logger = logging.getLogger(__name__)

PAGE_ASPECT = math.sqrt(2)
ASPECT_TOLERANCE = 0.4
SIZE_PADDING = 4
WIDTH_ROUNDING = 10


def build_dlt_matrix(src, dst):
    """8x9 direct linear transform system for four correspondences src[i] -> dst[i]."""
    rows = []
    for (x, y), (u, v) in zip(src, dst):
        rows.append([x, y, 1, 0, 0, 0, -u * x, -u * y, -u])
        rows.append([0, 0, 0, x, y, 1, -v * x, -v * y, -v])
    return np.array(rows, dtype=np.float64)


def solve_homography(src, dst):
    """
    3x3 homography mapping src onto dst, defined up to scale.

    The solution is the right-singular vector of the smallest singular value.
    """
    if len(src) != 4 or len(dst) != 4:
        raise ConfigurationError("A homography needs exactly 4 point correspondences")
    matrix = build_dlt_matrix(src, dst)
    _, _, vt = np.linalg.svd(matrix, full_matrices=True)
    return vt[-1].reshape(3, 3)


def document_size(corners, aspect_tolerance=ASPECT_TOLERANCE):
    """Width and height of the flattened page from its four ordered corners."""
    sides = side_lengths(corners)
    width = int(sides[0] + sides[2]) // 2 + SIZE_PADDING
    height = int(sides[1] + sides[3]) // 2 + SIZE_PADDING
    width = -(-width // WIDTH_ROUNDING) * WIDTH_ROUNDING
    ratio = height / width
    if aspect_tolerance is not None and abs(ratio - PAGE_ASPECT) > aspect_tolerance:
        raise ConfigurationError(
            f"Document aspect ratio {ratio:.3f} is too far from {PAGE_ASPECT:.3f} "
            f"(tolerance {aspect_tolerance})")
    logger.debug("Document size %dx%d (ratio %.3f)", width, height, ratio)
    return width, height


def target_corners(width, height, corners):
    """Axis-aligned rectangle anchored at the right edge and the bottom-left y."""
    anchor_x = (corners[1][0] + corners[2][0]) // 2
    anchor_y = corners[3][1]
    return [Point(anchor_x - width, anchor_y - height),
            Point(anchor_x, anchor_y - height),
            Point(anchor_x, anchor_y),
            Point(anchor_x - width, anchor_y)]


def transform_points(matrix, points):
    mapped = []
    for x, y in points:
        u, v, w = matrix @ np.array([x, y, 1.0])
        if w == 0:
            raise ConfigurationError(f"Point ({x}, {y}) maps to infinity")
        mapped.append(Point(int(round(u / w)), int(round(v / w))))
    return mapped


def invert_homography(matrix):
    try:
        return np.linalg.inv(matrix)
    except np.linalg.LinAlgError as exc:
        raise ConfigurationError(f"Homography is singular: {exc}") from exc
