"""
Hough accumulator over (normal angle, signed distance).

Angles cover the half-turn [-pi/4, 3pi/4] in steps of 2*pi/1440. A line with
normal angle theta and distance d holds every pixel with
``ceil(x*cos(theta) + y*sin(theta)) == d``.
"""
import logging
import math

import numpy as np

from doc_rectifier.exceptions import ConfigurationError
from doc_rectifier.geometry import StraightLine
from doc_rectifier.parallel import parallel_rows

logger = logging.getLogger(__name__)

# Edge pixels handled per bincount call; bounds the temporary index array.
FILL_CHUNK = 2048


class HoughSpace:
    ANGLE_STEPS = 1440
    ANGLE_STEP = 2 * math.pi / ANGLE_STEPS
    ANGLE_SHIFT = math.pi / 4
    ANGLE_WINDOW_DIVISOR = 6
    DISTANCE_WINDOW_DIVISOR = 12
    LINE_COUNT = 4
    DISTANCE_BIAS = 2

    def __init__(self, diagonal: int, workers=None):
        self.diagonal = int(diagonal)
        self.workers = workers
        self.angle_bins = self.ANGLE_STEPS // 2 + 1
        self.distance_bins = 2 * self.diagonal + 1
        self.mid_step = self.angle_bins // 2
        self.angles = (np.arange(self.angle_bins) - self.mid_step) * self.ANGLE_STEP + self.ANGLE_SHIFT
        self.cos_table = np.cos(self.angles)
        self.sin_table = np.sin(self.angles)
        self.accumulator = np.zeros((self.angle_bins, self.distance_bins), dtype=np.int64)

    @classmethod
    def for_shape(cls, height, width, workers=None):
        diagonal = int(math.ceil(math.sqrt(width * width + height * height)))
        return cls(diagonal, workers)

    @property
    def shape(self):
        return self.accumulator.shape

    def angle_index(self, angle) -> int:
        return int(round((angle - self.ANGLE_SHIFT) / self.ANGLE_STEP)) + self.mid_step

    def fill(self, edge_map):
        """Each pixel equal to 255 votes once per angle bin."""
        height = edge_map.shape[0]
        bins = self.angle_bins * self.distance_bins
        offsets = np.arange(self.angle_bins, dtype=np.int64) * self.distance_bins + self.diagonal

        def kernel(y0, y1):
            partial = np.zeros(bins, dtype=np.int64)
            ys, xs = np.nonzero(edge_map[y0:y1] == 255)
            ys = ys + y0
            for start in range(0, len(xs), FILL_CHUNK):
                x = xs[start:start + FILL_CHUNK, None]
                y = ys[start:start + FILL_CHUNK, None]
                distance = np.ceil(x * self.cos_table + y * self.sin_table).astype(np.int64)
                partial += np.bincount((distance + offsets).ravel(), minlength=bins)
            return partial

        partials = parallel_rows(height, kernel, self.workers, stage="hough fill")
        for partial in partials:
            self.accumulator += partial.reshape(self.accumulator.shape)
        logger.debug("Hough space %dx%d filled, %d votes",
                     self.angle_bins, self.distance_bins, int(self.accumulator.sum()))
        return self.accumulator

    def extract_strongest_line(self) -> StraightLine:
        """
        First maximum in angle-major order among cells with positive distance.
        Angle bands are scanned in parallel and merged in band order.
        """
        positive = self.accumulator[:, self.diagonal + 1:]

        def kernel(a0, a1):
            band = positive[a0:a1]
            if band.size == 0:
                return 0, None
            flat = int(np.argmax(band))
            vote = int(band.flat[flat])
            ai, di = divmod(flat, band.shape[1])
            return vote, (a0 + ai, di + 1)

        best_vote, best_cell = 0, None
        for vote, cell in parallel_rows(self.angle_bins, kernel, self.workers, stage="hough extract"):
            if vote > best_vote:
                best_vote, best_cell = vote, cell
        if best_cell is None:
            raise ConfigurationError("Hough space holds no votes; no document edges found")
        angle_index, distance = best_cell
        return StraightLine(distance=distance, angle=float(self.angles[angle_index]), vote=best_vote)

    def suppress(self, line):
        """Zero the neighbourhood of a found line so the next extraction finds another one."""
        ai = self.angle_index(line.angle)
        di = line.distance + self.diagonal
        da = self.angle_bins // self.ANGLE_WINDOW_DIVISOR
        dd = self.distance_bins // self.DISTANCE_WINDOW_DIVISOR
        self.accumulator[max(ai - da, 0):max(ai + da, 0), max(di - dd, 0):max(di + dd, 0)] = 0

    def detect_lines(self, edge_map, scale=1.0):
        """Four strongest lines, distances rescaled to the original image."""
        self.fill(edge_map)
        lines = []
        for _ in range(self.LINE_COUNT):
            line = self.extract_strongest_line()
            self.suppress(line)
            logger.debug("Hough line: distance=%d angle=%.4f vote=%d", line.distance, line.angle, line.vote)
            line.distance = int(line.distance * scale) + self.DISTANCE_BIAS
            lines.append(line)
        return lines
