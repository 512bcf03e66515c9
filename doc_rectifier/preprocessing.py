import logging

from doc_rectifier.filters import filter_working_image, MEDIAN_PASSES, SOBEL_KERNEL

logger = logging.getLogger(__name__)



# ============================================================
# Module: preprocessing
# ============================================================

class PreprocessingMixin:
    """Mixin class for preprocessing functionality"""

    def build_edge_map(self, working, img_name="document"):
        """
        Step 1: Smooth the working copy, take the gradient magnitude and
        binarise it into a 0/255 edge map for the Hough transform.
        """
        if self.debug:
            print("\n" + "="*70)
            print("STEP 1: EDGE MAP")
            print("="*70)
            print(f"  Median passes: {MEDIAN_PASSES}, kernel: {SOBEL_KERNEL.shape[0]}x{SOBEL_KERNEL.shape[1]}")
        edge_map = filter_working_image(working, workers=self.num_workers)
        edge_count = int((edge_map == 255).sum())
        logger.info(f"Edge map: {edge_count} edge pixels of {edge_map.size}")
        self.save_debug_image(working, f"{img_name}_01_working.jpg", "Working copy")
        self.save_debug_image(edge_map, f"{img_name}_02_edges.jpg", f"{edge_count} edge pixels")
        return edge_map
