"""
VIN Scan Preprocessing Module
=============================

Frame enhancement applied before text recognition.
"""

from .frame_preprocessor import (
    PreprocessStrategy,
    PreprocessConfig,
    FramePreprocessor,
)

__all__ = [
    "PreprocessStrategy",
    "PreprocessConfig",
    "FramePreprocessor",
]
