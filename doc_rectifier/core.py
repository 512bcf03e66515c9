import logging
import os
from pathlib import Path

import cv2

from doc_rectifier.homography import ASPECT_TOLERANCE
from doc_rectifier.parallel import default_workers
from doc_rectifier.raster_io import make_working_copy

logger = logging.getLogger(__name__)



# ============================================================
# Module: core
# ============================================================

class CoreMixin:
    """Mixin class for core functionality"""

    def __init__(self, debug=False, workers=None, aspect_tolerance=None, check_aspect=True,
                 result_folder="result"):
        self.debug = debug
        self.result_folder = Path(result_folder)

        env_workers = os.getenv("DOCRECT_WORKERS")
        if workers is None and env_workers:
            try:
                workers = int(env_workers)
            except ValueError:
                logger.warning(f"Ignoring invalid DOCRECT_WORKERS={env_workers!r}")
                workers = None
        if workers is None or workers <= 0:
            workers = self._get_optimal_workers()
        self.num_workers = int(workers)

        env_tolerance = os.getenv("DOCRECT_ASPECT_TOLERANCE")
        if aspect_tolerance is None and env_tolerance:
            if env_tolerance.strip().lower() == "none":
                check_aspect = False
            else:
                try:
                    aspect_tolerance = float(env_tolerance)
                except ValueError:
                    logger.warning(f"Ignoring invalid DOCRECT_ASPECT_TOLERANCE={env_tolerance!r}")
        if aspect_tolerance is None:
            aspect_tolerance = ASPECT_TOLERANCE
        self.aspect_tolerance = float(aspect_tolerance) if check_aspect else None

        # Only create folders if needed
        if self.debug:
            self.result_folder.mkdir(parents=True, exist_ok=True)
            print(f"Initialized Document Rectifier")
            print(f"Debug mode: {debug}")
            print(f"Result folder: {self.result_folder}")
            print(f"Parallel workers: {self.num_workers}")
            print(f"Aspect tolerance: {self.aspect_tolerance}")

    def _get_optimal_workers(self):
        """Get optimal number of parallel workers based on CPU cores"""
        return default_workers()

    def save_debug_image(self, image, filename, log_msg=""):
        """Save debug images with logging"""
        if not self.debug:
            return
        self.result_folder.mkdir(parents=True, exist_ok=True)
        filepath = self.result_folder / filename
        cv2.imwrite(str(filepath), image)
        print(f"  [DEBUG] Saved: {filename}")
        if log_msg:
            print(f"          {log_msg}")

    def prepare_working_copy(self, gray):
        """Build the reduced copy used for line detection."""
        h, w = gray.shape[:2]
        working = make_working_copy(gray)
        logger.info(f"Working copy {working.shape[1]}x{working.shape[0]} from {w}x{h}")
        return working
