"""
VIN Scan Pipeline
=================

Operator-facing entry points tying the components together.

    scan_from_camera(target):
        negotiate -> capture -> stop camera -> recognize -> extract
        -> validate -> decode -> confirm -> reconcile

    submit_manual_code(code, target):
        validate -> decode -> confirm -> reconcile

Both return a ScanResult or raise a PipelineError subclass. The camera is
stopped on every exit path. cancel() is honoured between steps up to the
start of reconciliation; once reconciliation has started it runs to
completion.

Usage:
    from vin_scan.pipeline import create_pipeline
    from vin_scan.reconciliation import placement_for_route

    pipeline = create_pipeline()
    result = pipeline.submit_manual_code("5YJ3E1EA8PF123456", placement_for_route("/inventory"))
    print(result.outcome)
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..capture.backends import OpenCVCaptureBackend
from ..capture.negotiator import CaptureEnvironment, ConstraintNegotiator
from ..capture.surface import CapturedFrame, CaptureSurface
from ..config import PipelineConfig, get_config
from ..core.exceptions import ConfigurationError, ScanCancelledError
from ..core.vin_utils import validate_identification_code
from ..decoding.decoder import CodeDecoder, DecodedVehicle
from ..extraction.extractor import CodeExtractor, ExtractionResult
from ..reconciliation.placement import PlacementTarget
from ..reconciliation.resolver import ReconciliationOutcome, ReconciliationResolver
from ..reconciliation.store import InMemoryRecordStore, RecordStore, SQLiteRecordStore
from ..recognition.providers import RecognitionService, create_recognizer

logger = logging.getLogger(__name__)


ConfirmHook = Callable[[DecodedVehicle], Optional[DecodedVehicle]]


class ScanSource(str, Enum):
    CAMERA = "camera"
    MANUAL = "manual"


@dataclass
class ScanResult:
    """
    Result of one pipeline run.

    Attributes:
        outcome: Created or Relocated
        code: The validated code
        decoded: The (possibly operator-edited) decode guess
        source: camera or manual
        processing_time_ms: Wall time of the run
        recognized_text: Raw recognized text (camera scans only)
        extraction: Extraction details (camera scans only)
    """
    outcome: ReconciliationOutcome
    code: str
    decoded: DecodedVehicle
    source: ScanSource
    processing_time_ms: float
    recognized_text: Optional[str] = None
    extraction: Optional[ExtractionResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.to_dict(),
            "code": self.code,
            "decoded": self.decoded.to_dict(),
            "source": self.source.value,
            "processing_time_ms": self.processing_time_ms,
            "recognized_text": self.recognized_text,
            "extraction_pass": self.extraction.source_pass if self.extraction else None,
        }


@contextmanager
def _timer():
    """Context manager for timing operations."""
    start = time.perf_counter()
    elapsed = {'ms': 0.0}
    try:
        yield elapsed
    finally:
        elapsed['ms'] = (time.perf_counter() - start) * 1000


class VINScanPipeline:
    """
    Camera and manual-entry VIN pipeline.

    Thread Safety: one scan at a time per instance. cancel() may be called
    from another thread.

    Example:
        pipeline = VINScanPipeline(surface, recognizer, resolver)
        result = pipeline.scan_from_camera(placement_for_route("/showroom-floor-1"))
    """

    def __init__(
        self,
        resolver: ReconciliationResolver,
        surface: Optional[CaptureSurface] = None,
        recognizer: Optional[RecognitionService] = None,
        extractor: Optional[CodeExtractor] = None,
        decoder: Optional[CodeDecoder] = None,
        confirm: Optional[ConfirmHook] = None,
    ):
        """
        Args:
            resolver: Create-or-relocate resolver bound to a record store
            surface: Capture surface (required for camera scans)
            recognizer: Recognition service (required for camera scans)
            extractor: Code extractor (default settings if None)
            decoder: Code decoder (default tables if None)
            confirm: Called with the decode guess before commit; returns an
                edited copy, the same object, or None to cancel
        """
        self.resolver = resolver
        self.surface = surface
        self.recognizer = recognizer
        self.extractor = extractor or CodeExtractor()
        self.decoder = decoder or CodeDecoder()
        self.confirm = confirm
        self._cancelled = threading.Event()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def scan_from_camera(self, target: PlacementTarget) -> ScanResult:
        """
        Capture one frame from the camera and reconcile the code found in it.

        Raises:
            CameraAccessError, CaptureNotReadyError, RecognitionError,
            ExtractionError, CodeValidationError, ReconciliationError,
            ScanCancelledError
        """
        if self.surface is None or self.recognizer is None:
            raise ConfigurationError("camera scans need a capture surface and a recognizer")

        self._cancelled.clear()
        with _timer() as elapsed:
            try:
                self.surface.start()
                self._check_cancelled("capture")
                frame = self.surface.capture()
            finally:
                self.surface.stop()
            result = self._process(frame, target)
        result.processing_time_ms = elapsed['ms']
        return result

    def process_frame(self, frame: CapturedFrame, target: PlacementTarget) -> ScanResult:
        """
        Run recognition onward on a frame the caller already holds.

        Used for retakes and still images where the caller owns the camera.
        """
        if self.recognizer is None:
            raise ConfigurationError("frame processing needs a recognizer")

        self._cancelled.clear()
        with _timer() as elapsed:
            result = self._process(frame, target)
        result.processing_time_ms = elapsed['ms']
        return result

    def submit_manual_code(self, code: str, target: PlacementTarget) -> ScanResult:
        """
        Validate a typed code and reconcile it.

        Raises:
            CodeValidationError: Before any decode or store call
            ReconciliationError, ScanCancelledError
        """
        self._cancelled.clear()
        with _timer() as elapsed:
            validated = validate_identification_code(code)
            decoded, outcome = self._decode_and_reconcile(validated, target)
        logger.info(f"Manual entry {validated}: {outcome.kind} in {elapsed['ms']:.0f}ms")
        return ScanResult(
            outcome=outcome,
            code=validated,
            decoded=decoded,
            source=ScanSource.MANUAL,
            processing_time_ms=elapsed['ms'],
        )

    def cancel(self) -> None:
        """Abort the current scan before reconciliation and release the camera."""
        self._cancelled.set()
        if self.surface is not None:
            self.surface.stop()
        logger.info("Scan cancelled")

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _process(self, frame: CapturedFrame, target: PlacementTarget) -> ScanResult:
        self._check_cancelled("recognition")
        recognized = self.recognizer.recognize(frame)
        logger.debug(f"Recognized text ({recognized.provider}): {recognized.text!r}")

        self._check_cancelled("extraction")
        extraction = self.extractor.extract(recognized.text)
        validated = validate_identification_code(extraction.code)

        decoded, outcome = self._decode_and_reconcile(validated, target, recognized.text)
        logger.info(f"Camera scan {validated}: {outcome.kind}")
        return ScanResult(
            outcome=outcome,
            code=validated,
            decoded=decoded,
            source=ScanSource.CAMERA,
            processing_time_ms=0.0,
            recognized_text=recognized.text,
            extraction=extraction,
        )

    def _decode_and_reconcile(self, code: str, target: PlacementTarget, context_text: Optional[str] = None):
        decoded = self.decoder.decode(code, context_text)

        if self.confirm is not None:
            confirmed = self.confirm(decoded)
            if confirmed is None:
                raise ScanCancelledError("confirmation")
            if confirmed.code != code:
                raise ConfigurationError("confirm hook must not change the code")
            decoded = confirmed

        self._check_cancelled("reconciliation")
        # Past this point the scan is not cancellable
        outcome = self.resolver.resolve(code, target, decoded)
        return decoded, outcome

    def _check_cancelled(self, stage: str) -> None:
        if self._cancelled.is_set():
            raise ScanCancelledError(stage)


# =============================================================================
# FACTORY
# =============================================================================

def create_store(config: Optional[PipelineConfig] = None) -> RecordStore:
    """Create the record store named in config.store."""
    config = config or get_config()
    backend = config.store.backend.lower()
    if backend == "memory":
        return InMemoryRecordStore()
    if backend == "sqlite":
        return SQLiteRecordStore(config.store.path)
    raise ConfigurationError(
        f"Unknown store backend: '{config.store.backend}'",
        config_key="store.backend",
        expected="memory or sqlite",
    )


def create_pipeline(
    config: Optional[PipelineConfig] = None,
    store: Optional[RecordStore] = None,
    recognizer: Optional[RecognitionService] = None,
    confirm: Optional[ConfirmHook] = None,
) -> VINScanPipeline:
    """
    Wire a pipeline from configuration.

    The camera and recognizer are created but not opened: nothing touches
    hardware or loads models until the first camera scan.
    """
    config = config or get_config()

    backend = OpenCVCaptureBackend(
        device_map={
            "environment": config.capture.rear_device_index,
            "user": config.capture.front_device_index,
            "any": config.capture.rear_device_index,
        },
        warmup_frames=config.capture.warmup_frames,
    )
    negotiator = ConstraintNegotiator(
        backend,
        environment=CaptureEnvironment(secure_context=config.capture.secure_context),
    )
    surface = CaptureSurface(negotiator, jpeg_quality=config.capture.jpeg_quality)

    if recognizer is None:
        recognizer = create_recognizer(
            config.recognition.provider,
            lang=config.recognition.language,
            ocr_version=config.recognition.ocr_version,
            det_box_thresh=config.recognition.det_box_thresh,
            preprocess_strategy=config.recognition.preprocess_strategy,
        )

    return VINScanPipeline(
        resolver=ReconciliationResolver(store if store is not None else create_store(config)),
        surface=surface,
        recognizer=recognizer,
        extractor=CodeExtractor(min_text_length=config.extraction.min_text_length),
        decoder=CodeDecoder(
            ev_base_price=config.decoder.ev_base_price,
            default_base_price=config.decoder.default_base_price,
        ),
        confirm=confirm,
    )
