"""
Document Rectifier Module

This package contains modular components for the Document Rectifier.
The main class is assembled in rectifier.py by importing all mixins from here.
"""

from .core import CoreMixin
from .config import ConfigMixin
from .preprocessing import PreprocessingMixin
from .line_detection import LineDetectionMixin
from .correction import CorrectionMixin
from .cropping import CroppingMixin
from .processor import ProcessorMixin
from .exceptions import (RectificationError, ConfigurationError, UnsupportedInputError,
                         ParallelExecutionError)
from .geometry import Point, StraightLine, EquationLine
from .image import GrayscaleImage
from .hough import HoughSpace

__all__ = [
    'CoreMixin',
    'ConfigMixin',
    'PreprocessingMixin',
    'LineDetectionMixin',
    'CorrectionMixin',
    'CroppingMixin',
    'ProcessorMixin',
    'RectificationError',
    'ConfigurationError',
    'UnsupportedInputError',
    'ParallelExecutionError',
    'Point',
    'StraightLine',
    'EquationLine',
    'GrayscaleImage',
    'HoughSpace',
]
