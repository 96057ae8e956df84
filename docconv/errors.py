"""
Exceptions raised by the conversion collaborators around the engine.

The reconstruction engine itself never raises on text input; these cover
the host side (PDF extraction, image processing, request validation).
"""

from __future__ import annotations


class ConversionError(RuntimeError):
    """Base class for conversion failures that should be reported to the caller."""


class ExtractionError(ConversionError):
    """A PDF could not be opened or its text could not be read."""


class ImageProcessingError(ConversionError):
    """An uploaded image could not be decoded or re-encoded."""


class UnsupportedFormatError(ValueError):
    """Requested output format or dimensions are not supported."""
