import logging
import math

import numpy as np

from doc_rectifier.geometry import edges_from_corners
from doc_rectifier.homography import (document_size, invert_homography, solve_homography,
                                      target_corners, transform_points)
from doc_rectifier.parallel import parallel_rows

logger = logging.getLogger(__name__)

BACKGROUND = 255


def select_background(image, equations, workers=None):
    """
    Paint everything outside the document white.

    ``equations`` is [top, bottom, left, right]; a pixel is background when it
    is on or above the top line, on or below the bottom one, on or left of the
    left one, or on or right of the right one.
    """
    top, bottom, left, right = equations
    height, width = image.shape
    xs = np.arange(width, dtype=np.float64)[None, :]
    result = image.copy()

    def kernel(y0, y1):
        ys = np.arange(y0, y1, dtype=np.float64)[:, None]
        outside = ((top.determine_position(xs, ys) <= 0)
                   | (bottom.determine_position(xs, ys) >= 0)
                   | (left.determine_position(xs, ys) <= 0)
                   | (right.determine_position(xs, ys) >= 0))
        result[y0:y1][outside] = BACKGROUND

    parallel_rows(height, kernel, workers, stage="background mask")
    return result


def warp_image(image, inverse, workers=None):
    """
    Inverse-mapped warp: each output pixel samples the source pixel that
    ``inverse`` sends it to. Samples outside [0, w-1) x [0, h-1) stay 0.
    """
    height, width = image.shape
    m = np.asarray(inverse, dtype=np.float64)
    xs = np.arange(width, dtype=np.float64)[None, :]
    result = np.zeros_like(image)

    def kernel(y0, y1):
        ys = np.arange(y0, y1, dtype=np.float64)[:, None]
        with np.errstate(divide='ignore', invalid='ignore'):
            denom = m[2, 0] * xs + m[2, 1] * ys + m[2, 2]
            sx = (m[0, 0] * xs + m[0, 1] * ys + m[0, 2]) / denom
            sy = (m[1, 0] * xs + m[1, 1] * ys + m[1, 2]) / denom
            valid = (np.isfinite(sx) & np.isfinite(sy)
                     & (sx >= 0) & (sx < width - 1) & (sy >= 0) & (sy < height - 1))
        rows, cols = np.nonzero(valid)
        band = np.zeros((y1 - y0, width), dtype=image.dtype)
        band[rows, cols] = image[sy[rows, cols].astype(np.intp), sx[rows, cols].astype(np.intp)]
        result[y0:y1] = band

    parallel_rows(height, kernel, workers, stage="perspective warp")
    return result


def rotate_image(image, angle, workers=None):
    """Rotate about (w//2, h//2) with nearest-pixel sampling; unmapped pixels stay 0."""
    height, width = image.shape
    x0, y0 = width // 2, height // 2
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    dx = np.arange(width, dtype=np.float64)[None, :] - x0
    result = np.zeros_like(image)

    def kernel(r0, r1):
        dy = np.arange(r0, r1, dtype=np.float64)[:, None] - y0
        sx = np.rint(x0 + dx * cos_a - dy * sin_a).astype(np.intp)
        sy = np.rint(y0 + dx * sin_a + dy * cos_a).astype(np.intp)
        valid = (sx >= 0) & (sx < width) & (sy >= 0) & (sy < height)
        rows, cols = np.nonzero(valid)
        band = np.zeros((r1 - r0, width), dtype=image.dtype)
        band[rows, cols] = image[sy[rows, cols], sx[rows, cols]]
        result[r0:r1] = band

    parallel_rows(height, kernel, workers, stage="rotation")
    return result


def residual_tilt(corners, homography):
    """Signed tilt of the bottom edge (BR -> BL) once the corners are mapped by ``homography``."""
    mapped = transform_points(homography, corners)
    edges = edges_from_corners(mapped)
    return edges[2].signed_deviation_ox()



# ============================================================
# Module: correction
# ============================================================

class CorrectionMixin:
    """Mixin class for correction functionality"""

    def mask_background(self, gray, equations, img_name="document"):
        """Step 4: Whiten everything outside the four boundary lines."""
        masked = select_background(gray, equations, workers=self.num_workers)
        self.save_debug_image(masked, f"{img_name}_04_masked.jpg", "Background masked")
        return masked

    def estimate_homography(self, corners):
        """
        Step 5: Document size, target rectangle and the homography that maps
        the detected corners onto it.
        """
        width, height = document_size(corners, self.aspect_tolerance)
        targets = target_corners(width, height, corners)
        homography = solve_homography(corners, targets)
        logger.info(f"Document {width}x{height}, target corners {[tuple(p) for p in targets]}")
        if self.debug:
            print("\n" + "="*70)
            print("STEP 5: HOMOGRAPHY")
            print("="*70)
            print(f"  Document size: {width}x{height}")
            print(f"  Target corners: {[tuple(p) for p in targets]}")
        return homography, targets, (width, height)

    def warp_document(self, masked, homography, img_name="document"):
        """Step 6: Resample the masked image through the inverse homography."""
        warped = warp_image(masked, invert_homography(homography), workers=self.num_workers)
        self.save_debug_image(warped, f"{img_name}_05_warped.jpg", "Perspective removed")
        return warped

    def remove_residual_tilt(self, warped, corners, homography, img_name="document"):
        """
        Step 7: Measure what tilt is left after warping and rotate it away.

        The corners are mapped onto the axis-aligned rectangle from
        target_corners, so the measured edge comes out horizontal and the
        rotation is an identity. It only turns the page when the target
        rectangle is not axis-aligned.
        """
        tilt = residual_tilt(corners, homography)
        logger.info(f"Residual tilt: {math.degrees(tilt):.3f} degrees")
        rotated = rotate_image(warped, tilt, workers=self.num_workers)
        self.save_debug_image(rotated, f"{img_name}_06_rotated.jpg", f"tilt={math.degrees(tilt):.2f}deg")
        return rotated, tilt
