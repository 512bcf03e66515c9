import json
import logging
import math
import time
from pathlib import Path

from doc_rectifier.image import GrayscaleImage
from doc_rectifier.raster_io import load_grayscale, orient_portrait, save_image

logger = logging.getLogger(__name__)



# ============================================================
# Module: processor
# ============================================================

class ProcessorMixin:
    """Mixin class for processor functionality"""

    def rectify(self, image, working=None, img_name="document"):
        """
        Recover the flat document from a grayscale photograph.

        ``image`` is a 2-D uint8 array (or GrayscaleImage); ``working`` is an
        optional pre-reduced copy for line detection. Every stage runs once, in
        order; any failure raises a RectificationError and nothing is returned.
        """
        if isinstance(image, GrayscaleImage):
            image = image.pixels
        gray = GrayscaleImage.from_array(image).pixels
        timing_info = {}

        step_start = time.time()
        if working is None:
            working = self.prepare_working_copy(gray)
        else:
            working = GrayscaleImage.from_array(working).pixels
        timing_info['Working Copy'] = time.time() - step_start

        step_start = time.time()
        edge_map = self.build_edge_map(working, img_name)
        timing_info['Step 1: Edge Map'] = time.time() - step_start

        step_start = time.time()
        lines = self.detect_document_lines(edge_map, gray.shape, img_name)
        timing_info['Step 2: Hough Lines'] = time.time() - step_start

        step_start = time.time()
        corners, equations = self.find_document_corners(lines, gray, working.shape, img_name)
        timing_info['Step 3: Corners'] = time.time() - step_start

        step_start = time.time()
        masked = self.mask_background(gray, equations, img_name)
        timing_info['Step 4: Mask Background'] = time.time() - step_start

        step_start = time.time()
        homography, targets, size = self.estimate_homography(corners)
        timing_info['Step 5: Homography'] = time.time() - step_start

        step_start = time.time()
        warped = self.warp_document(masked, homography, img_name)
        timing_info['Step 6: Warp'] = time.time() - step_start

        step_start = time.time()
        rotated, tilt = self.remove_residual_tilt(warped, corners, homography, img_name)
        timing_info['Step 7: Residual Tilt'] = time.time() - step_start

        step_start = time.time()
        document = self.crop_document(rotated, img_name)
        timing_info['Step 8: Crop & Cleanup'] = time.time() - step_start

        for step_name, step_time in timing_info.items():
            logger.info(f"{step_name}: {step_time:.3f}s")

        return {
            'document': document,
            'corners': [tuple(int(v) for v in p) for p in corners],
            'target_corners': [tuple(int(v) for v in p) for p in targets],
            'lines': [{'distance': line.distance, 'angle': line.angle, 'vote': line.vote} for line in lines],
            'document_size': size,
            'tilt_degrees': math.degrees(tilt),
            'output_size': (int(document.shape[1]), int(document.shape[0])),
            'timing': timing_info,
        }

    def process_image(self, image_path, output_path=None):
        """Main processing pipeline: load, orient, rectify, save."""
        overall_start = time.time()
        img_name = Path(image_path).stem

        print("\n" + "#"*70)
        print(f"# DOCUMENT RECTIFIER - Processing: {image_path}")
        print("#"*70)

        step_start = time.time()
        gray = orient_portrait(load_grayscale(image_path))
        load_time = time.time() - step_start
        print(f"\nImage: {image_path}")
        print(f"Size: {gray.shape[1]}x{gray.shape[0]} pixels")

        result = self.rectify(gray, img_name=img_name)
        timing_info = {'Image Loading': load_time}
        timing_info.update(result['timing'])

        step_start = time.time()
        if output_path is None:
            output_path = Path(image_path).with_name(f"{img_name}_rectified.png")
        output_path = save_image(result['document'], output_path)
        timing_info['Save Result'] = time.time() - step_start

        overall_time = time.time() - overall_start
        timing_info['TOTAL TIME'] = overall_time

        summary = {
            'image': str(image_path),
            'output': str(output_path),
            'corners': result['corners'],
            'target_corners': result['target_corners'],
            'lines': result['lines'],
            'document_size': list(result['document_size']),
            'output_size': list(result['output_size']),
            'tilt_degrees': result['tilt_degrees'],
            'timing': timing_info,
        }
        if self.debug:
            json_path = self.result_folder / f"{img_name}_summary.json"
            with open(json_path, 'w', encoding='utf-8') as f:
                json.dump(summary, f, indent=2)

        print("\n" + "="*70)
        print("PROCESSING COMPLETE - TIMING SUMMARY")
        print("="*70)
        print(f"✓ Corners: {result['corners']}")
        print(f"✓ Document: {result['output_size'][0]}x{result['output_size'][1]} pixels")
        print(f"✓ Saved to: {output_path}")
        print("\n" + "-"*70)
        print("TIMING BREAKDOWN:")
        print("-"*70)
        for step_name, step_time in timing_info.items():
            if step_name == 'TOTAL TIME':
                print(f"⏱  {step_name}: {step_time:.2f} seconds")
            else:
                percentage = (step_time / overall_time) * 100 if overall_time else 0.0
                print(f"   {step_name}: {step_time:.2f}s ({percentage:.1f}%)")
        print("="*70 + "\n")
        return summary
