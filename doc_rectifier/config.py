import functools
import math



# ============================================================
# Module: config
# ============================================================

# Crop width is trimmed to a multiple of this so rows stay word aligned.
CROP_WIDTH_MULTIPLE = 4


class ConfigMixin:
    """Mixin class for config functionality"""

    @functools.lru_cache(maxsize=32)
    def get_size_config(self, image_h, image_w, working_h, working_w):
        """
        Size-dependent geometry for one photograph.

        The Hough space is built on the working copy, corners are searched on
        the full-resolution image, so both sizes take part:
        - working_diagonal: distance half-range of the accumulator
        - scale: full-resolution pixels per working pixel (by width)
        - margin_x / margin_y: how far outside the frame a corner may fall
        """
        working_diagonal = int(math.ceil(math.sqrt(working_w ** 2 + working_h ** 2)))
        config = {
            'working_diagonal': working_diagonal,
            'scale': image_w / working_w,
            'margin_x': image_w // 7,
            'margin_y': image_h // 9,
        }
        return config
