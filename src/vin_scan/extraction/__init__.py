"""
VIN Scan Extraction Module
==========================

Grammar matching over recognized text.
"""

from .extractor import (
    MIN_TEXT_LENGTH,
    LABEL_MARKERS,
    ExtractionResult,
    CodeExtractor,
)

__all__ = [
    "MIN_TEXT_LENGTH",
    "LABEL_MARKERS",
    "ExtractionResult",
    "CodeExtractor",
]
