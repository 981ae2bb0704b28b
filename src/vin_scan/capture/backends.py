"""
Capture Backends - Hardware Abstraction Layer
==============================================

Provides a unified interface over the platform capture API:
- OpenCV (default, local V4L2/AVFoundation/MSMF devices)
- Future: browser bridges, network cameras, etc.

A backend opens one capture configuration and returns a live VideoStream,
or raises. Raised errors are classified by classify_camera_error() into
the CameraErrorKind taxonomy used by the negotiator.

Usage:
    from vin_scan.capture.backends import OpenCVCaptureBackend, DEFAULT_CONFIGURATIONS

    backend = OpenCVCaptureBackend()
    stream = backend.open(DEFAULT_CONFIGURATIONS[0])
    frame = stream.read()
    stream.release()
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from ..core.exceptions import CameraAccessError, CameraErrorKind

logger = logging.getLogger(__name__)


# =============================================================================
# CAPTURE CONFIGURATIONS
# =============================================================================

class FacingMode(str, Enum):
    """Which physical camera a configuration asks for."""
    ENVIRONMENT = "environment"  # rear camera
    USER = "user"                # front camera
    ANY = "any"


@dataclass(frozen=True)
class CaptureConfiguration:
    """
    One entry of the ordered fallback list.

    Attributes:
        name: Short identifier used in logs and attempt records
        facing_mode: Requested camera
        width: Ideal frame width (None = device default)
        height: Ideal frame height (None = device default)
        frame_rate: Ideal frame rate (None = device default)
    """
    name: str
    facing_mode: FacingMode = FacingMode.ANY
    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate: Optional[float] = None

    def describe(self) -> str:
        parts = [self.name, self.facing_mode.value]
        if self.width and self.height:
            parts.append(f"{self.width}x{self.height}")
        if self.frame_rate:
            parts.append(f"@{self.frame_rate:g}")
        return " ".join(parts)


# Descending preference: rear high-res first, bare video last
DEFAULT_CONFIGURATIONS: Tuple[CaptureConfiguration, ...] = (
    CaptureConfiguration("rear_high", FacingMode.ENVIRONMENT, 1920, 1080, 30.0),
    CaptureConfiguration("rear_standard", FacingMode.ENVIRONMENT, 1280, 720),
    CaptureConfiguration("front", FacingMode.USER),
    CaptureConfiguration("generic", FacingMode.ANY, 640, 480),
    CaptureConfiguration("minimal", FacingMode.ANY),
)


# =============================================================================
# ERROR CLASSIFICATION
# =============================================================================

# Error names reported by browser-style capture bridges
_NAMED_ERROR_KINDS: Dict[str, CameraErrorKind] = {
    "NotAllowedError": CameraErrorKind.PERMISSION_DENIED,
    "PermissionDeniedError": CameraErrorKind.PERMISSION_DENIED,
    "NotFoundError": CameraErrorKind.NO_DEVICE,
    "DevicesNotFoundError": CameraErrorKind.NO_DEVICE,
    "NotSupportedError": CameraErrorKind.UNSUPPORTED,
    "NotReadableError": CameraErrorKind.BUSY,
    "TrackStartError": CameraErrorKind.BUSY,
    "SecurityError": CameraErrorKind.SECURITY_RESTRICTED,
}


def classify_camera_error(exc: BaseException) -> CameraErrorKind:
    """
    Map an exception raised while opening a stream to a CameraErrorKind.

    CameraAccessError keeps its own kind. Python exceptions are mapped by
    type; anything else is matched on its ``name`` attribute or class name.
    """
    if isinstance(exc, CameraAccessError):
        return exc.kind
    # PermissionError/FileNotFoundError/BlockingIOError are all OSError, check them first
    if isinstance(exc, PermissionError):
        return CameraErrorKind.PERMISSION_DENIED
    if isinstance(exc, FileNotFoundError):
        return CameraErrorKind.NO_DEVICE
    if isinstance(exc, BlockingIOError):
        return CameraErrorKind.BUSY
    if isinstance(exc, NotImplementedError):
        return CameraErrorKind.UNSUPPORTED

    name = getattr(exc, "name", None)
    if not isinstance(name, str):
        name = type(exc).__name__
    return _NAMED_ERROR_KINDS.get(name, CameraErrorKind.UNKNOWN)


# =============================================================================
# STREAMS
# =============================================================================

class VideoStream(ABC):
    """
    A live hardware stream.

    release() must be idempotent: the capture surface may call it from
    several exit paths.
    """

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """True once the stream can deliver frames."""
        ...

    @property
    @abstractmethod
    def is_released(self) -> bool:
        ...

    @abstractmethod
    def read(self) -> Optional[np.ndarray]:
        """Return the current frame (BGR), or None if none is available."""
        ...

    @abstractmethod
    def release(self) -> None:
        ...


class OpenCVVideoStream(VideoStream):
    """VideoStream over a cv2.VideoCapture handle."""

    def __init__(self, capture: "cv2.VideoCapture", configuration: CaptureConfiguration, device_index: int):
        self._capture = capture
        self.configuration = configuration
        self.device_index = device_index
        self._released = False
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return not self._released and self._capture.isOpened()

    @property
    def is_released(self) -> bool:
        return self._released

    @property
    def resolution(self) -> Tuple[int, int]:
        """Native (width, height) reported by the device."""
        return (
            int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    def read(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._released:
                return None
            ok, frame = self._capture.read()
        if not ok or frame is None:
            return None
        return frame

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
            self._capture.release()
        logger.debug(f"Released camera device {self.device_index}")


# =============================================================================
# BACKENDS
# =============================================================================

class CaptureBackend(ABC):
    """Platform capture API: open(configuration) -> VideoStream or raise."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    def is_available(self) -> bool:
        """Whether the capture API exists on this platform."""
        return True

    @abstractmethod
    def open(self, configuration: CaptureConfiguration) -> VideoStream:
        """
        Open a stream for one configuration.

        Raises:
            CameraAccessError or any platform exception; the negotiator
            classifies whatever is raised.
        """
        ...


class OpenCVCaptureBackend(CaptureBackend):
    """
    Capture backend using cv2.VideoCapture.

    OpenCV has no notion of facing mode, so facing modes are mapped to
    device indexes (rear camera is usually index 0 on single-camera hosts).
    """

    DEFAULT_DEVICE_MAP: Dict[str, int] = {
        FacingMode.ENVIRONMENT.value: 0,
        FacingMode.USER.value: 1,
        FacingMode.ANY.value: 0,
    }

    def __init__(
        self,
        device_map: Optional[Dict[str, int]] = None,
        api_preference: int = cv2.CAP_ANY,
        warmup_frames: int = 2,
    ):
        """
        Args:
            device_map: facing mode value -> device index
            api_preference: cv2.CAP_* backend hint
            warmup_frames: frames read (and dropped) before the stream is handed out
        """
        self.device_map = dict(self.DEFAULT_DEVICE_MAP)
        if device_map:
            self.device_map.update(device_map)
        self.api_preference = api_preference
        self.warmup_frames = max(1, warmup_frames)

    @property
    def name(self) -> str:
        return "opencv"

    @property
    def is_available(self) -> bool:
        return hasattr(cv2, "VideoCapture")

    def open(self, configuration: CaptureConfiguration) -> VideoStream:
        index = self.device_map.get(configuration.facing_mode.value, 0)
        logger.debug(f"Opening camera device {index} for {configuration.describe()}")

        capture = cv2.VideoCapture(index, self.api_preference)
        if not capture.isOpened():
            capture.release()
            raise CameraAccessError(
                CameraErrorKind.NO_DEVICE,
                f"Camera device {index} could not be opened",
                configuration=configuration.name,
            )

        if configuration.width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, configuration.width)
        if configuration.height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, configuration.height)
        if configuration.frame_rate:
            capture.set(cv2.CAP_PROP_FPS, configuration.frame_rate)

        # A device that opens but yields no frames is held by another process
        for _ in range(self.warmup_frames):
            ok, _frame = capture.read()
            if not ok:
                capture.release()
                raise CameraAccessError(
                    CameraErrorKind.BUSY,
                    f"Camera device {index} opened but is not readable",
                    configuration=configuration.name,
                )

        return OpenCVVideoStream(capture, configuration, index)

    def list_devices(self, max_index: int = 4) -> List[Dict[str, int]]:
        """List device indexes that open, with their default resolution."""
        found = []
        for index in range(max_index):
            capture = cv2.VideoCapture(index, self.api_preference)
            try:
                if capture.isOpened():
                    found.append({
                        "index": index,
                        "width": int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
                        "height": int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
                    })
            finally:
                capture.release()
        return found
