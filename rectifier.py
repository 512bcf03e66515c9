"""
Document Rectifier - Command Line Entry Point
This file assembles the DocumentRectifier class from modular components.
"""

import argparse
import logging
import os
import sys
import time

# Import all mixin classes
from doc_rectifier.core import CoreMixin
from doc_rectifier.config import ConfigMixin
from doc_rectifier.preprocessing import PreprocessingMixin
from doc_rectifier.line_detection import LineDetectionMixin
from doc_rectifier.correction import CorrectionMixin
from doc_rectifier.cropping import CroppingMixin
from doc_rectifier.processor import ProcessorMixin
from doc_rectifier.exceptions import RectificationError

logger = logging.getLogger(__name__)


class DocumentRectifier(
    CoreMixin,
    ConfigMixin,
    PreprocessingMixin,
    LineDetectionMixin,
    CorrectionMixin,
    CroppingMixin,
    ProcessorMixin
):
    """
    Main Document Rectifier class assembled from modular mixins.

    Finds the four edges of a photographed page, removes the perspective
    distortion and returns the cropped grayscale document.
    """
    pass


def configure_logging(level=logging.INFO):
    handlers = [logging.StreamHandler(sys.stdout)]
    log_file = os.getenv("DOCRECT_LOG_FILE")
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description='Document Perspective Rectifier')
    parser.add_argument('image', help='Path to the photographed document')
    parser.add_argument('-o', '--output', default=None,
                       help='Output image path (default: <image>_rectified.png next to the input)')
    parser.add_argument('--debug', action='store_true', help='Enable debug output and save debug images')
    parser.add_argument('--workers', type=int, default=None,
                       help='Parallel workers for per-pixel stages (overrides env)')
    aspect = parser.add_mutually_exclusive_group()
    aspect.add_argument('--aspect-tolerance', type=float, default=None,
                        help='Allowed deviation of height/width from sqrt(2) (overrides env)')
    aspect.add_argument('--no-aspect-check', action='store_true',
                        help='Accept documents of any aspect ratio')

    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.INFO)

    rectifier = DocumentRectifier(
        debug=args.debug,
        workers=args.workers,
        aspect_tolerance=args.aspect_tolerance,
        check_aspect=not args.no_aspect_check
    )

    if not os.path.exists(args.image):
        print(f"✗ Error: Image file not found: {args.image}")
        return 1

    # Start overall timer
    overall_start = time.time()

    try:
        result = rectifier.process_image(args.image, output_path=args.output)
    except RectificationError as e:
        logger.error(f"Rectification failed: {e}")
        print(f"\n✗ FAILED: {e}")
        return 1

    overall_time = time.time() - overall_start

    print("\n" + "="*70)
    print("OVERALL PROCESS TIMING")
    print("="*70)
    print(f"⏱  Total Processing Time: {overall_time:.2f} seconds")
    print(f"   Output: {result['output']}")
    print("="*70 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
