"""
VIN Scan Capture Module
=======================

Camera negotiation and still-frame capture.

- backends: capture API adapters (OpenCV) and error classification
- negotiator: ordered fallback over capture configurations
- surface: owned stream handle and capture()
"""

from .backends import (
    FacingMode,
    CaptureConfiguration,
    DEFAULT_CONFIGURATIONS,
    VideoStream,
    OpenCVVideoStream,
    CaptureBackend,
    OpenCVCaptureBackend,
    classify_camera_error,
)
from .negotiator import (
    NegotiationState,
    CaptureEnvironment,
    NegotiationAttempt,
    NegotiationResult,
    ConstraintNegotiator,
)
from .surface import (
    SessionState,
    CapturedFrame,
    CaptureSession,
    CaptureSurface,
)

__all__ = [
    "FacingMode",
    "CaptureConfiguration",
    "DEFAULT_CONFIGURATIONS",
    "VideoStream",
    "OpenCVVideoStream",
    "CaptureBackend",
    "OpenCVCaptureBackend",
    "classify_camera_error",
    "NegotiationState",
    "CaptureEnvironment",
    "NegotiationAttempt",
    "NegotiationResult",
    "ConstraintNegotiator",
    "SessionState",
    "CapturedFrame",
    "CaptureSession",
    "CaptureSurface",
]
