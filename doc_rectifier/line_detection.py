import logging

import cv2

from doc_rectifier.hough import HoughSpace
from doc_rectifier.raster_io import to_bgr
from doc_rectifier.singular_points import find_singular_points

logger = logging.getLogger(__name__)



# ============================================================
# Module: line_detection
# ============================================================

class LineDetectionMixin:
    """Mixin class for line_detection functionality"""

    def detect_document_lines(self, edge_map, image_shape, img_name="document"):
        """
        Step 2: Vote the edge map into a Hough space and pull out the four
        strongest boundary lines, in full-resolution units.
        """
        h, w = image_shape[:2]
        working_h, working_w = edge_map.shape[:2]
        size_config = self.get_size_config(h, w, working_h, working_w)
        if self.debug:
            print("\n" + "="*70)
            print("STEP 2: DETECTING DOCUMENT EDGES")
            print("="*70)
            print(f"  Hough diagonal: {size_config['working_diagonal']}px, "
                  f"scale: {size_config['scale']:.3f}")
        hough = HoughSpace(size_config['working_diagonal'], workers=self.num_workers)
        lines = hough.detect_lines(edge_map, size_config['scale'])
        for line in lines:
            logger.info(f"Line: distance={line.distance} angle={line.angle:.4f} vote={line.vote}")
        return lines

    def find_document_corners(self, lines, image, working_shape, img_name="document"):
        """
        Step 3: Intersect the boundary lines into the four document corners.
        Returns corners [TL, TR, BR, BL] and lines [top, bottom, left, right].
        """
        h, w = image.shape[:2]
        size_config = self.get_size_config(h, w, *working_shape[:2])
        corners, equations = find_singular_points(
            lines, w, h, margin_x=size_config['margin_x'], margin_y=size_config['margin_y'])
        logger.info(f"Corners: {[tuple(p) for p in corners]}")
        if self.debug:
            print(f"  Corners (TL, TR, BR, BL): {[tuple(p) for p in corners]}")
            debug_img = to_bgr(image)
            for i, point in enumerate(corners):
                nxt = corners[(i + 1) % 4]
                cv2.line(debug_img, tuple(point), tuple(nxt), (0, 255, 0), 3)
                cv2.circle(debug_img, tuple(point), 8, (0, 0, 255), -1)
            self.save_debug_image(debug_img, f"{img_name}_03_corners.jpg", "Detected quadrilateral")
        return corners, equations
