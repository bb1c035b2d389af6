"""
Exception types raised by the scanning pipeline.

Detection failures are NOT errors: EdgeDetector returns None and callers
fall back to the full-image quadrilateral.
"""


class ScannerError(Exception):
    """Base class for all docscan errors."""


class InvalidInputError(ScannerError, ValueError):
    """Caller contract violation (wrong corner count, unreadable image, ...)."""


class ProcessingError(ScannerError):
    """An image-processing step failed inside OpenCV."""
