"""
VIN Scan Pipeline
=================

VIN capture and decode pipeline for dealership inventory placement.

Package Structure:
    vin_scan/
    ├── core/             # VIN grammar, validation, error taxonomy
    ├── capture/          # Camera negotiation and still capture (OpenCV)
    ├── preprocessing/    # Frame enhancement before recognition
    ├── recognition/      # Text recognition service adapters
    ├── extraction/       # Code extraction from recognized text
    ├── decoding/         # Manufacturer/year/price guesses
    ├── reconciliation/   # Placement targets, record stores, resolver
    ├── pipeline/         # Camera and manual-entry entry points
    ├── config.py         # Centralized settings
    └── cli.py            # vin-scan command line

Quick Start:
    # Manual entry
    from vin_scan import create_pipeline, placement_for_route

    pipeline = create_pipeline()
    result = pipeline.submit_manual_code("5YJ3E1EA8PF123456", placement_for_route("/inventory"))
    print(result.outcome)

    # Decode only
    from vin_scan import decode_code
    print(decode_code("5YJ3E1EA8PF123456").manufacturer)

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "VIN Scan Team"

# Core exports (lightweight, always available)
from .core import (
    VINConstants,
    VIN_LENGTH,
    VIN_VALID_CHARS,
    VINValidationResult,
    PipelineError,
    CameraAccessError,
    CameraErrorKind,
    CaptureNotReadyError,
    RecognitionError,
    ExtractionError,
    ExtractionErrorKind,
    CodeValidationError,
    ReconciliationError,
    ScanCancelledError,
    validate_vin,
    validate_identification_code,
    is_valid_code,
    calculate_check_digit,
)
from .decoding import DecodedVehicle, VehicleCategory, CodeDecoder, decode_code
from .extraction import CodeExtractor, ExtractionResult
from .reconciliation import (
    PlacementTarget,
    placement_for_route,
    Created,
    Relocated,
    InMemoryRecordStore,
    SQLiteRecordStore,
    ReconciliationResolver,
)

__all__ = [
    "__version__",
    "__author__",
    # Core
    "VINConstants",
    "VIN_LENGTH",
    "VIN_VALID_CHARS",
    "VINValidationResult",
    "PipelineError",
    "CameraAccessError",
    "CameraErrorKind",
    "CaptureNotReadyError",
    "RecognitionError",
    "ExtractionError",
    "ExtractionErrorKind",
    "CodeValidationError",
    "ReconciliationError",
    "ScanCancelledError",
    "validate_vin",
    "validate_identification_code",
    "is_valid_code",
    "calculate_check_digit",
    # Decoding / extraction
    "DecodedVehicle",
    "VehicleCategory",
    "CodeDecoder",
    "decode_code",
    "CodeExtractor",
    "ExtractionResult",
    # Reconciliation
    "PlacementTarget",
    "placement_for_route",
    "Created",
    "Relocated",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
    "ReconciliationResolver",
]


# Lazy imports for the camera/OCR stack (heavier dependencies)
def __getattr__(name: str):
    """Lazy import for pipeline modules."""
    if name in ("VINScanPipeline", "ScanResult", "create_pipeline"):
        from .pipeline import vin_pipeline
        return getattr(vin_pipeline, name)
    if name == "CaptureSurface":
        from .capture.surface import CaptureSurface
        return CaptureSurface
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
