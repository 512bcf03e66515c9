import logging

import numpy as np

from doc_rectifier.config import CROP_WIDTH_MULTIPLE
from doc_rectifier.exceptions import ConfigurationError
from doc_rectifier.filters import median_cleanup

logger = logging.getLogger(__name__)


def _first_content(line):
    """Index of the first pixel that is neither pure black nor pure white, or None."""
    hits = np.flatnonzero((line != 0) & (line != 255))
    return int(hits[0]) if hits.size else None


def content_bounds(image):
    """
    (top, right, bottom, left) found by walking the centre column and the
    centre row in from each border.
    """
    height, width = image.shape
    column = image[:, width // 2]
    row = image[height // 2, :]
    top = _first_content(column)
    right = _first_content(row[::-1])
    bottom = _first_content(column[::-1])
    left = _first_content(row)
    if top is None or left is None:
        raise ConfigurationError("No document content found along the centre lines")
    return top, width - 1 - right, height - 1 - bottom, left


def cut_document(image, workers=None, width_multiple=CROP_WIDTH_MULTIPLE):
    """Crop to the document content and fill the zero holes left by warping."""
    top, right, bottom, left = content_bounds(image)
    new_width = right - left
    if new_width % width_multiple != 0:
        right -= new_width % width_multiple
        new_width = right - left
    new_height = bottom - top
    if new_width <= 0 or new_height <= 0:
        raise ConfigurationError(
            f"Empty document box: top={top} right={right} bottom={bottom} left={left}")
    logger.debug("Crop box: top=%d right=%d bottom=%d left=%d", top, right, bottom, left)
    cropped = np.ascontiguousarray(image[top:bottom, left:right])
    return median_cleanup(cropped, workers)



# ============================================================
# Module: cropping
# ============================================================

class CroppingMixin:
    """Mixin class for cropping functionality"""

    def crop_document(self, rotated, img_name="document"):
        """Step 8: Cut the page out of its white/black surroundings and clean it up."""
        document = cut_document(rotated, workers=self.num_workers)
        if self.debug:
            print("\n" + "="*70)
            print("STEP 8: CROP")
            print("="*70)
            print(f"  Document: {document.shape[1]}x{document.shape[0]} pixels")
        self.save_debug_image(document, f"{img_name}_07_document.jpg", "Cropped document")
        return document
