from dataclasses import dataclass

import numpy as np

from doc_rectifier.exceptions import UnsupportedInputError


@dataclass
class GrayscaleImage:
    """Single-channel 8-bit image with explicit width/height metadata."""
    width: int
    height: int
    pixels: np.ndarray

    @classmethod
    def from_array(cls, array):
        array = np.asarray(array)
        if array.ndim != 2 or array.dtype != np.uint8:
            raise UnsupportedInputError(
                f"Expected a 2-D uint8 array, got shape={array.shape} dtype={array.dtype}")
        return cls(width=int(array.shape[1]), height=int(array.shape[0]), pixels=array)

    @classmethod
    def from_buffer(cls, width: int, height: int, data):
        buffer = np.frombuffer(bytes(data), dtype=np.uint8)
        if buffer.size != width * height:
            raise UnsupportedInputError(
                f"Buffer holds {buffer.size} bytes, expected {width * height} for {width}x{height}")
        return cls(width=width, height=height, pixels=buffer.reshape(height, width).copy())

    def to_buffer(self) -> bytes:
        """Flat row-major byte buffer."""
        return np.ascontiguousarray(self.pixels).tobytes()
