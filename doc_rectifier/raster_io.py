import logging
from pathlib import Path

import cv2
import numpy as np

from doc_rectifier.exceptions import UnsupportedInputError

logger = logging.getLogger(__name__)

WORKING_SIZE = (300, 400)  # (width, height)
MAX_WORKING_HEIGHT = 850


def to_grayscale(array):
    """Single-channel uint8 view of a gray, BGR or BGRA array."""
    array = np.asarray(array)
    if array.dtype != np.uint8:
        raise UnsupportedInputError(f"Unsupported pixel type {array.dtype}, expected uint8")
    if array.ndim == 2:
        return array.copy()
    if array.ndim == 3 and array.shape[2] == 1:
        return array[:, :, 0].copy()
    if array.ndim == 3 and array.shape[2] == 3:
        return cv2.cvtColor(array, cv2.COLOR_BGR2GRAY)
    if array.ndim == 3 and array.shape[2] == 4:
        return cv2.cvtColor(array, cv2.COLOR_BGRA2GRAY)
    raise UnsupportedInputError(f"Unsupported pixel layout with shape {array.shape}")


def load_grayscale(path):
    path = Path(path)
    if not path.exists():
        raise UnsupportedInputError(f"Image not found: {path}")
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise UnsupportedInputError(f"Could not decode image: {path}")
    return to_grayscale(image)


def decode_grayscale(data: bytes):
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED) if buffer.size else None
    if image is None:
        raise UnsupportedInputError("Could not decode uploaded image")
    return to_grayscale(image)


def orient_portrait(gray):
    """Landscape photographs are turned a quarter clockwise before processing."""
    height, width = gray.shape[:2]
    if width > height:
        logger.info("Landscape input %dx%d rotated to portrait", width, height)
        return cv2.rotate(gray, cv2.ROTATE_90_CLOCKWISE)
    return gray


def make_working_copy(gray):
    """
    Reduced copy used for edge and line detection.

    Halve while taller than MAX_WORKING_HEIGHT, then resize to WORKING_SIZE.
    """
    working = gray
    height, width = working.shape[:2]
    while height > MAX_WORKING_HEIGHT:
        height, width = height // 2, max(1, width // 2)
        working = cv2.resize(working, (width, height), interpolation=cv2.INTER_AREA)
    if (width, height) == WORKING_SIZE:
        return working.copy()
    shrinking = width >= WORKING_SIZE[0] and height >= WORKING_SIZE[1]
    interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_CUBIC
    return cv2.resize(working, WORKING_SIZE, interpolation=interpolation)


def to_bgr(gray):
    """Replicate a grayscale result into three channels for colour outputs."""
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)


def save_image(gray, path):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), to_bgr(gray)):
        raise UnsupportedInputError(f"Could not write image: {path}")
    return path

