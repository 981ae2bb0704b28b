"""
VIN Scan Recognition Module
===========================

Adapters for the external text-recognition service.
"""

from .providers import (
    OCRResult,
    RecognitionService,
    PaddleOCRRecognizer,
    CallableRecognizer,
    create_recognizer,
)

__all__ = [
    "OCRResult",
    "RecognitionService",
    "PaddleOCRRecognizer",
    "CallableRecognizer",
    "create_recognizer",
]
