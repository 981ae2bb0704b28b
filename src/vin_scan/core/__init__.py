"""
VIN Scan Core Module
====================

Grammar, validation and error taxonomy.
Single Source of Truth for identification-code rules.
"""

from .exceptions import (
    CameraErrorKind,
    ExtractionErrorKind,
    PipelineError,
    ConfigurationError,
    CameraAccessError,
    CaptureNotReadyError,
    RecognitionError,
    ExtractionError,
    CodeValidationError,
    StoreError,
    DuplicateCodeError,
    ReconciliationError,
    ScanCancelledError,
)
from .vin_utils import (
    # Constants
    VINConstants,
    VIN_LENGTH,
    VIN_VALID_CHARS,
    VIN_INVALID_CHARS,
    VIN_CHAR_CLASS,
    VIN_PATTERN,
    VIN_SECTIONS,
    # Normalization
    normalize_code,
    clean_code,
    sanitize_code_input,
    format_code_for_display,
    # Validation
    VINValidationResult,
    is_valid_code,
    validate_identification_code,
    validate_vin,
    calculate_check_digit,
    validate_checksum,
)

__all__ = [
    # Errors
    "CameraErrorKind",
    "ExtractionErrorKind",
    "PipelineError",
    "ConfigurationError",
    "CameraAccessError",
    "CaptureNotReadyError",
    "RecognitionError",
    "ExtractionError",
    "CodeValidationError",
    "StoreError",
    "DuplicateCodeError",
    "ReconciliationError",
    "ScanCancelledError",
    # Constants
    "VINConstants",
    "VIN_LENGTH",
    "VIN_VALID_CHARS",
    "VIN_INVALID_CHARS",
    "VIN_CHAR_CLASS",
    "VIN_PATTERN",
    "VIN_SECTIONS",
    # Normalization
    "normalize_code",
    "clean_code",
    "sanitize_code_input",
    "format_code_for_display",
    # Validation
    "VINValidationResult",
    "is_valid_code",
    "validate_identification_code",
    "validate_vin",
    "calculate_check_digit",
    "validate_checksum",
]
