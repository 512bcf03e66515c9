import math

import numpy as np
import pytest

from doc_rectifier.exceptions import ConfigurationError, UnsupportedInputError
from doc_rectifier.geometry import EquationLine, Point, edges_from_corners, side_lengths
from doc_rectifier.image import GrayscaleImage


def test_two_point_line_passes_through_both_points():
    line = EquationLine.from_two_points((3, 7), (11, -2))
    assert line.determine_position(3, 7) == pytest.approx(0)
    assert line.determine_position(11, -2) == pytest.approx(0)


def test_normal_vector_line():
    line = EquationLine.from_normal_vector((0, 40), (-20, 40))
    assert (line.a, line.b, line.c) == (0, 40, -1600)
    assert line.determine_position(123, 40) == 0
    assert line.determine_position(0, 0) < 0


def test_degenerate_line_rejected():
    with pytest.raises(ConfigurationError):
        EquationLine(0, 0, 5)
    with pytest.raises(ConfigurationError):
        EquationLine.from_two_points((4, 4), (4, 4))


def test_angle_deviation_of_axis_lines():
    assert EquationLine(0, 1, -5).angle_deviation_ox() == pytest.approx(0)
    assert EquationLine(1, 0, -5).angle_deviation_ox() == pytest.approx(math.pi / 2)


def test_signed_deviation_ignores_point_order():
    forward = EquationLine.from_two_points((0, 0), (10, 1))
    backward = EquationLine.from_two_points((10, 1), (0, 0))
    assert forward.signed_deviation_ox() == pytest.approx(math.atan(0.1))
    assert backward.signed_deviation_ox() == pytest.approx(math.atan(0.1))
    assert EquationLine.from_two_points((0, 1), (10, 0)).signed_deviation_ox() == pytest.approx(-math.atan(0.1))


def test_edges_and_sides_of_rectangle():
    corners = [Point(0, 0), Point(10, 0), Point(10, 5), Point(0, 5)]
    edges = edges_from_corners(corners)
    assert len(edges) == 4
    for i, edge in enumerate(edges):
        start, end = corners[i], corners[(i + 1) % 4]
        assert edge.determine_position(*start) == 0
        assert edge.determine_position(*end) == 0
    assert edges[2].signed_deviation_ox() == pytest.approx(0)
    assert side_lengths(corners) == [10, 5, 10, 5]


def test_grayscale_buffer_layout():
    image = GrayscaleImage.from_buffer(3, 2, bytes([1, 2, 3, 4, 5, 6]))
    assert (image.width, image.height) == (3, 2)
    assert image.pixels[1, 0] == 4
    assert image.to_buffer() == bytes([1, 2, 3, 4, 5, 6])


def test_grayscale_rejects_bad_input():
    with pytest.raises(UnsupportedInputError):
        GrayscaleImage.from_buffer(3, 3, bytes(4))
    with pytest.raises(UnsupportedInputError):
        GrayscaleImage.from_array(np.zeros((4, 4), dtype=np.float32))
    with pytest.raises(UnsupportedInputError):
        GrayscaleImage.from_array(np.zeros((4, 4, 3), dtype=np.uint8))
