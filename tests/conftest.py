import cv2
import numpy as np
import pytest

# Gray page on a black background, inside a 300x400 frame.
PAGE_TOP, PAGE_BOTTOM = 80, 320
PAGE_LEFT, PAGE_RIGHT = 60, 240
PAGE_VALUE = 200


def make_page_image(height=400, width=300, value=PAGE_VALUE):
    image = np.zeros((height, width), dtype=np.uint8)
    image[PAGE_TOP:PAGE_BOTTOM, PAGE_LEFT:PAGE_RIGHT] = value
    return image


@pytest.fixture
def page_image():
    return make_page_image()


@pytest.fixture
def white_page_image():
    return make_page_image(value=255)


@pytest.fixture
def page_png(page_image):
    ok, buffer = cv2.imencode(".png", page_image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def page_path(tmp_path, page_image):
    path = tmp_path / "page.png"
    cv2.imwrite(str(path), page_image)
    return path


@pytest.fixture
def blank_png():
    ok, buffer = cv2.imencode(".png", np.zeros((400, 300), dtype=np.uint8))
    assert ok
    return buffer.tobytes()
