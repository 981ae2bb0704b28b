"""
Capture Surface
===============

Owns the one live camera stream of a scanner and turns it into still
frames on demand.

start() and stop() are the only mutators of the session. A stop() that
lands while negotiation is still running invalidates that negotiation:
the stream it eventually produces is released at once and start() raises
ScanCancelledError.

Usage:
    surface = CaptureSurface(ConstraintNegotiator(OpenCVCaptureBackend()))
    with surface.streaming():
        frame = surface.capture()
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, Optional

import cv2
import numpy as np

from .backends import CaptureConfiguration, VideoStream
from .negotiator import ConstraintNegotiator
from ..core.exceptions import (
    CameraAccessError,
    CameraErrorKind,
    CaptureNotReadyError,
    ScanCancelledError,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    NEGOTIATING = "negotiating"
    ACTIVE = "active"
    FAILED = "failed"


@dataclass(frozen=True)
class CapturedFrame:
    """
    Immutable still image produced by one capture().

    Attributes:
        data: Encoded image bytes
        mime_type: MIME type of data
        width: Frame width in pixels
        height: Frame height in pixels
        captured_at: Capture timestamp
    """
    data: bytes
    mime_type: str
    width: int
    height: int
    captured_at: datetime = field(default_factory=datetime.now)

    def to_array(self) -> Optional[np.ndarray]:
        """Decode to a BGR array, or None if the bytes are not an image."""
        buffer = np.frombuffer(self.data, dtype=np.uint8)
        if buffer.size == 0:
            return None
        return cv2.imdecode(buffer, cv2.IMREAD_COLOR)

    @classmethod
    def from_array(cls, image: np.ndarray, quality: int = 92) -> "CapturedFrame":
        """Encode a BGR (or grayscale) array as JPEG."""
        ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, quality])
        if not ok:
            raise CaptureNotReadyError("frame encoding failed")
        height, width = image.shape[:2]
        return cls(data=buffer.tobytes(), mime_type="image/jpeg", width=width, height=height)

    @classmethod
    def from_file(cls, path: str) -> "CapturedFrame":
        """Load an image file as a frame (retake and offline workflows)."""
        image = cv2.imread(str(path))
        if image is None:
            raise CaptureNotReadyError(f"could not read image {path}")
        return cls.from_array(image)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mime_type": self.mime_type,
            "width": self.width,
            "height": self.height,
            "size_bytes": len(self.data),
            "captured_at": self.captured_at.isoformat(),
        }


@dataclass
class CaptureSession:
    """Ownership record for one stream."""
    state: SessionState = SessionState.IDLE
    active_configuration_index: Optional[int] = None
    error_kind: Optional[CameraErrorKind] = None
    configuration: Optional[CaptureConfiguration] = None
    stream: Optional[VideoStream] = field(default=None, repr=False)


class CaptureSurface:
    """
    Binds a negotiated stream to still-frame capture.

    At most one session is active per surface; start() stops the previous
    one before negotiating again.
    """

    def __init__(self, negotiator: ConstraintNegotiator, jpeg_quality: int = 92):
        self.negotiator = negotiator
        self.jpeg_quality = jpeg_quality
        self._lock = threading.Lock()
        self._session: Optional[CaptureSession] = None
        self._generation = 0

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    @property
    def state(self) -> SessionState:
        session = self._session
        return session.state if session else SessionState.IDLE

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def start(self) -> CaptureSession:
        """
        Negotiate a new session.

        Raises:
            CameraAccessError: If negotiation fails (session left FAILED)
            ScanCancelledError: If stop() was called while negotiating
        """
        self.stop()

        with self._lock:
            self._generation += 1
            generation = self._generation
            session = CaptureSession(state=SessionState.NEGOTIATING)
            self._session = session

        try:
            result = self.negotiator.negotiate()
        except CameraAccessError as e:
            with self._lock:
                if self._generation == generation:
                    session.state = SessionState.FAILED
                    session.error_kind = e.kind
                    session.active_configuration_index = self.negotiator.current_index
            raise

        with self._lock:
            if self._generation != generation:
                # stop() won the race; the stream arrived for a dead session
                result.stream.release()
                logger.info("Camera stream arrived after stop(); released")
                raise ScanCancelledError("camera negotiation")
            session.stream = result.stream
            session.configuration = result.configuration
            session.active_configuration_index = result.index
            session.state = SessionState.ACTIVE

        logger.info(f"Capture session active ({result.configuration.describe()})")
        return session

    def capture(self) -> CapturedFrame:
        """
        Sample the current frame at the stream's native resolution.

        Raises:
            CaptureNotReadyError: No active session, stream not ready, or no frame
        """
        session = self._session
        if session is None or session.state is not SessionState.ACTIVE or session.stream is None:
            raise CaptureNotReadyError("no active capture session")

        stream = session.stream
        if not stream.is_ready:
            raise CaptureNotReadyError("stream not ready")

        image = stream.read()
        if image is None or image.size == 0:
            raise CaptureNotReadyError("no frame available")

        frame = CapturedFrame.from_array(image, quality=self.jpeg_quality)
        logger.debug(f"Captured {frame.width}x{frame.height} frame ({len(frame.data)} bytes)")
        return frame

    def stop(self) -> None:
        """Release the stream, if any. Safe to call at any time, any number of times."""
        with self._lock:
            session = self._session
            self._session = None
            self._generation += 1

        if session is None:
            return
        if session.stream is not None:
            session.stream.release()
            logger.info("Capture session stopped")

    @contextmanager
    def streaming(self) -> Iterator[CaptureSession]:
        """Start a session and stop it on every exit path."""
        try:
            yield self.start()
        finally:
            self.stop()

    def __enter__(self) -> "CaptureSurface":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
