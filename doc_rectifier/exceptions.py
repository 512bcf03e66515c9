"""
Error types raised by the rectification pipeline.

Every one of them aborts the current run; callers are expected to catch
``RectificationError`` at the pipeline boundary.
"""


class RectificationError(Exception):
    """Base class for failures while recovering a document."""
    pass


class ConfigurationError(RectificationError):
    """Raised when the detected geometry or a filter setup is not usable."""
    pass


class UnsupportedInputError(RectificationError):
    """Raised when the input pixel encoding is not recognised."""
    pass


class ParallelExecutionError(RectificationError):
    """Raised when a row-parallel stage does not report full completion."""
    pass
