import numpy as np
import pytest

from doc_rectifier.exceptions import ConfigurationError
from doc_rectifier.geometry import Point
from doc_rectifier.homography import (build_dlt_matrix, document_size, invert_homography, solve_homography,
                                      target_corners, transform_points)

PAGE_CORNERS = [Point(62, 82), Point(239, 82), Point(239, 322), Point(62, 322)]


def apply(matrix, points):
    mapped = []
    for x, y in points:
        u, v, w = matrix @ np.array([x, y, 1.0])
        mapped.append((u / w, v / w))
    return np.array(mapped)


def test_dlt_rows():
    matrix = build_dlt_matrix([(2, 3)] * 4, [(5, 7)] * 4)
    assert matrix.shape == (8, 9)
    assert matrix[0].tolist() == [2, 3, 1, 0, 0, 0, -10, -15, -5]
    assert matrix[1].tolist() == [0, 0, 0, 2, 3, 1, -14, -21, -7]


def test_homography_round_trip():
    truth = np.array([[1.2, 0.1, 5.0],
                      [0.05, 0.9, -3.0],
                      [0.001, 0.002, 1.0]])
    src = [(0, 0), (10, 0), (10, 15), (0, 15)]
    dst = apply(truth, src)
    recovered = solve_homography(src, [tuple(p) for p in dst])
    assert np.allclose(apply(recovered, src), dst, rtol=1e-6, atol=1e-6)
    recovered = recovered / recovered[2, 2]
    assert np.allclose(recovered, truth, rtol=1e-6, atol=1e-8)


def test_homography_needs_four_points():
    with pytest.raises(ConfigurationError):
        solve_homography([(0, 0), (1, 0), (1, 1)], [(0, 0), (1, 0), (1, 1)])


def test_document_size_rounds_width_up():
    assert document_size(PAGE_CORNERS) == (190, 244)
    square_ish = [Point(0, 0), Point(176, 0), Point(176, 250), Point(0, 250)]
    assert document_size(square_ish) == (180, 254)


def test_document_size_rejects_odd_aspect():
    square = [Point(0, 0), Point(200, 0), Point(200, 200), Point(0, 200)]
    with pytest.raises(ConfigurationError):
        document_size(square)
    assert document_size(square, aspect_tolerance=None) == (210, 204)


def test_target_rectangle_anchored_bottom_right():
    targets = target_corners(190, 244, PAGE_CORNERS)
    assert targets == [Point(49, 78), Point(239, 78), Point(239, 322), Point(49, 322)]


def test_corners_map_onto_targets():
    targets = target_corners(190, 244, PAGE_CORNERS)
    homography = solve_homography(PAGE_CORNERS, targets)
    assert transform_points(homography, PAGE_CORNERS) == targets
    back = transform_points(invert_homography(homography), targets)
    assert back == PAGE_CORNERS


def test_singular_homography():
    with pytest.raises(ConfigurationError):
        invert_homography(np.zeros((3, 3)))
