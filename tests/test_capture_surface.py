"""
Tests for the capture surface and captured frames.
"""

import threading

import numpy as np
import pytest

from vin_scan.capture.backends import CaptureBackend
from vin_scan.capture.negotiator import ConstraintNegotiator
from vin_scan.capture.surface import CapturedFrame, CaptureSurface, SessionState
from vin_scan.core.exceptions import (
    CameraAccessError,
    CameraErrorKind,
    CaptureNotReadyError,
    ScanCancelledError,
)

from conftest import FakeBackend, FakeStream


class TestCapturedFrame:

    def test_from_array_encodes_jpeg(self, sample_bgr_image):
        frame = CapturedFrame.from_array(sample_bgr_image)
        assert frame.mime_type == "image/jpeg"
        assert (frame.width, frame.height) == (320, 120)
        assert frame.data[:2] == b"\xff\xd8"

    def test_to_array_decodes(self, captured_frame):
        image = captured_frame.to_array()
        assert image.shape == (120, 320, 3)

    def test_to_array_garbage(self):
        frame = CapturedFrame(data=b"", mime_type="image/jpeg", width=0, height=0)
        assert frame.to_array() is None

    def test_frame_is_immutable(self, captured_frame):
        with pytest.raises(Exception):
            captured_frame.width = 1  # type: ignore

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(CaptureNotReadyError):
            CapturedFrame.from_file(str(tmp_path / "missing.jpg"))


class TestCaptureSurface:

    def test_start_and_capture(self, surface, fake_backend):
        session = surface.start()

        assert session.state is SessionState.ACTIVE
        assert session.active_configuration_index == 0
        frame = surface.capture()
        assert (frame.width, frame.height) == (320, 120)

    def test_capture_at_native_resolution(self):
        stream = FakeStream(np.zeros((1080, 1920, 3), dtype=np.uint8))
        surface = CaptureSurface(ConstraintNegotiator(FakeBackend([stream])))
        surface.start()
        frame = surface.capture()
        assert (frame.width, frame.height) == (1920, 1080)

    def test_capture_before_start_not_ready(self, surface):
        with pytest.raises(CaptureNotReadyError) as exc_info:
            surface.capture()
        assert exc_info.value.error_code == "CAPTURE_NOT_READY"

    def test_capture_stream_not_ready(self):
        surface = CaptureSurface(ConstraintNegotiator(FakeBackend([FakeStream(ready=False)])))
        surface.start()
        with pytest.raises(CaptureNotReadyError, match="stream not ready"):
            surface.capture()

    def test_capture_empty_frame_not_ready(self):
        stream = FakeStream(np.zeros((0, 0, 3), dtype=np.uint8))
        surface = CaptureSurface(ConstraintNegotiator(FakeBackend([stream])))
        surface.start()
        with pytest.raises(CaptureNotReadyError):
            surface.capture()

    def test_capture_after_stop_not_ready(self, surface):
        surface.start()
        surface.stop()
        with pytest.raises(CaptureNotReadyError):
            surface.capture()

    def test_stop_is_idempotent(self, surface, fake_backend):
        surface.start()
        stream = fake_backend.streams[0]

        surface.stop()
        state_after_one = (surface.state, surface.session, stream.release_calls)
        surface.stop()
        state_after_two = (surface.state, surface.session, stream.release_calls)

        assert state_after_one == state_after_two == (SessionState.IDLE, None, 1)

    def test_stop_when_never_started(self, surface):
        surface.stop()
        assert surface.state is SessionState.IDLE

    def test_restart_stops_previous_session(self, surface, fake_backend):
        surface.start()
        surface.start()

        first, second = fake_backend.streams
        assert first.release_calls == 1
        assert second.release_calls == 0
        assert surface.is_active

    def test_failed_start_records_kind(self):
        surface = CaptureSurface(ConstraintNegotiator(FakeBackend([PermissionError("no")])))

        with pytest.raises(CameraAccessError):
            surface.start()

        assert surface.state is SessionState.FAILED
        assert surface.session.error_kind is CameraErrorKind.PERMISSION_DENIED

    def test_streaming_context_stops_on_error(self, surface, fake_backend):
        with pytest.raises(RuntimeError):
            with surface.streaming():
                raise RuntimeError("operator closed dialog")
        assert fake_backend.streams[0].release_calls == 1
        assert surface.state is SessionState.IDLE

    def test_context_manager_stops(self, fake_backend):
        with CaptureSurface(ConstraintNegotiator(fake_backend)) as surface:
            surface.start()
        assert fake_backend.streams[0].is_released

    def test_stop_during_negotiation_releases_late_stream(self):
        late_stream = FakeStream()
        opened = threading.Event()
        proceed = threading.Event()

        class SlowBackend(CaptureBackend):
            name = "slow"

            def open(self, configuration):
                opened.set()
                proceed.wait(timeout=5)
                return late_stream

        surface = CaptureSurface(ConstraintNegotiator(SlowBackend()))
        errors = []

        def run():
            try:
                surface.start()
            except ScanCancelledError as e:
                errors.append(e)

        worker = threading.Thread(target=run)
        worker.start()
        assert opened.wait(timeout=5)
        surface.stop()
        proceed.set()
        worker.join(timeout=5)

        assert len(errors) == 1
        assert late_stream.release_calls == 1
        assert surface.state is SessionState.IDLE
