"""
Exception types raised by LiteRT Viewer.
"""


class ViewerError(Exception):
    """Base class for all application errors."""


class CatalogError(ViewerError):
    """Unknown model name or empty image set."""


class LabelMapError(ViewerError):
    """Label file missing or unreadable."""


class ImageReadError(ViewerError):
    """Image could not be decoded."""


class InferenceError(ViewerError):
    """Interpreter could not be created or run."""
