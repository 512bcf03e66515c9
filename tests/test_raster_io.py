import cv2
import numpy as np
import pytest

from doc_rectifier.exceptions import UnsupportedInputError
from doc_rectifier.raster_io import (decode_grayscale, load_grayscale, make_working_copy, orient_portrait,
                                     save_image, to_grayscale)


def test_to_grayscale_accepts_known_layouts():
    gray = np.full((4, 5), 90, dtype=np.uint8)
    assert np.array_equal(to_grayscale(gray), gray)
    assert to_grayscale(gray[:, :, None]).shape == (4, 5)
    bgr = np.dstack([gray, gray, gray])
    assert np.array_equal(to_grayscale(bgr), gray)
    bgra = np.dstack([gray, gray, gray, np.full_like(gray, 255)])
    assert np.array_equal(to_grayscale(bgra), gray)


@pytest.mark.parametrize("array", [
    np.zeros((4, 5), dtype=np.float32),
    np.zeros((4, 5, 2), dtype=np.uint8),
    np.zeros((2, 3, 4, 5), dtype=np.uint8),
])
def test_to_grayscale_rejects_unknown_layouts(array):
    with pytest.raises(UnsupportedInputError):
        to_grayscale(array)


def test_decode_png_bytes(page_png, page_image):
    assert np.array_equal(decode_grayscale(page_png), page_image)


def test_decode_garbage_fails():
    with pytest.raises(UnsupportedInputError):
        decode_grayscale(b"definitely not an image")
    with pytest.raises(UnsupportedInputError):
        decode_grayscale(b"")


def test_load_grayscale(tmp_path, page_path, page_image):
    assert np.array_equal(load_grayscale(page_path), page_image)
    with pytest.raises(UnsupportedInputError):
        load_grayscale(tmp_path / "missing.png")


def test_orient_portrait():
    landscape = np.zeros((300, 400), dtype=np.uint8)
    landscape[0, 0] = 7
    portrait = orient_portrait(landscape)
    assert portrait.shape == (400, 300)
    # top-left corner ends up top-right after a clockwise quarter turn
    assert portrait[0, -1] == 7
    tall = np.zeros((400, 300), dtype=np.uint8)
    assert orient_portrait(tall) is tall


@pytest.mark.parametrize("shape", [(1700, 1200), (400, 300), (100, 80)])
def test_working_copy_size(shape):
    working = make_working_copy(np.full(shape, 50, dtype=np.uint8))
    assert working.shape == (400, 300)
    assert (working == 50).all()


def test_save_image_replicates_channels(tmp_path, page_image):
    path = save_image(page_image, tmp_path / "nested" / "doc.png")
    saved = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    assert saved.shape == (400, 300, 3)
    assert np.array_equal(saved[:, :, 1], page_image)
