"""
Shared fixtures: fake capture hardware, fixed clocks, stores.
"""

from datetime import date, datetime
from typing import List, Optional, Sequence, Union

import numpy as np
import pytest

from vin_scan.capture.backends import CaptureBackend, CaptureConfiguration, VideoStream
from vin_scan.capture.negotiator import ConstraintNegotiator
from vin_scan.capture.surface import CapturedFrame, CaptureSurface
from vin_scan.decoding import CodeDecoder
from vin_scan.reconciliation import InMemoryRecordStore, ReconciliationResolver


FIXED_NOW = datetime(2026, 3, 14, 9, 30, 0)
FIXED_TODAY = date(2026, 3, 14)


class FakeStream(VideoStream):
    """In-memory stream returning a fixed frame."""

    def __init__(self, frame: Optional[np.ndarray] = None, ready: bool = True):
        self.frame = frame if frame is not None else np.full((120, 320, 3), 128, dtype=np.uint8)
        self.ready = ready
        self.release_calls = 0

    @property
    def is_ready(self) -> bool:
        return self.ready and self.release_calls == 0

    @property
    def is_released(self) -> bool:
        return self.release_calls > 0

    def read(self):
        if self.is_released:
            return None
        return self.frame

    def release(self) -> None:
        self.release_calls += 1


class FakeBackend(CaptureBackend):
    """
    Backend whose open() outcomes are scripted per attempt.

    Each outcome is either an exception (raised) or a stream (returned).
    Once the script runs out, open() returns a fresh FakeStream.
    """

    def __init__(self, outcomes: Sequence[Union[BaseException, VideoStream]] = (), available: bool = True):
        self.outcomes: List[Union[BaseException, VideoStream]] = list(outcomes)
        self.available = available
        self.opened: List[CaptureConfiguration] = []
        self.streams: List[VideoStream] = []

    @property
    def name(self) -> str:
        return "fake"

    @property
    def is_available(self) -> bool:
        return self.available

    def open(self, configuration):
        self.opened.append(configuration)
        outcome = self.outcomes.pop(0) if self.outcomes else FakeStream()
        if isinstance(outcome, BaseException):
            raise outcome
        self.streams.append(outcome)
        return outcome


class NamedError(Exception):
    """Exception carrying a browser-style error name."""

    def __init__(self, name: str, message: str = ""):
        super().__init__(message or name)
        self.name = name


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def surface(fake_backend):
    return CaptureSurface(ConstraintNegotiator(fake_backend))


@pytest.fixture
def sample_bgr_image():
    """Create a sample BGR image with some structure."""
    img = np.random.randint(60, 200, (120, 320, 3), dtype=np.uint8)
    return img


@pytest.fixture
def captured_frame(sample_bgr_image):
    return CapturedFrame.from_array(sample_bgr_image)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def decoder():
    return CodeDecoder(clock=lambda: FIXED_TODAY)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def resolver(store, fixed_clock):
    return ReconciliationResolver(store, clock=fixed_clock)
