"""
VIN Scan Exceptions
===================

Structured error taxonomy shared by every pipeline stage.

Every error carries an error code and a context dict so the presentation
layer can pick a targeted message without parsing exception text.
"""

from enum import Enum
from typing import Any, Dict, Optional


class CameraErrorKind(str, Enum):
    """Classification of hardware/permission failures."""
    PERMISSION_DENIED = "permission_denied"
    NO_DEVICE = "no_device"
    UNSUPPORTED = "unsupported"
    BUSY = "busy"
    SECURITY_RESTRICTED = "security_restricted"
    UNKNOWN = "unknown"


class ExtractionErrorKind(str, Enum):
    """Classification of code extraction failures."""
    TEXT_TOO_SHORT = "text_too_short"
    NOT_FOUND = "not_found"


class PipelineError(Exception):
    """
    Base exception for pipeline errors.

    Provides structured error information with error codes for programmatic handling.
    """

    def __init__(self, message: str, error_code: str = "PIPELINE_ERROR", context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self.message)

    @property
    def retriable(self) -> bool:
        """Whether the operator can retry right away without external action."""
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(PipelineError):
    """Raised when the pipeline is misconfigured."""

    def __init__(self, message: str, config_key: Optional[str] = None, expected: Optional[str] = None):
        super().__init__(
            message=f"Configuration error: {message}",
            error_code="CONFIG_ERROR",
            context={"config_key": config_key, "expected": expected}
        )
        self.config_key = config_key
        self.expected = expected


class CameraAccessError(PipelineError):
    """Raised when no capture configuration yields a live stream."""

    def __init__(
        self,
        kind: CameraErrorKind,
        message: Optional[str] = None,
        configuration: Optional[str] = None,
        attempts: int = 0,
    ):
        kind = CameraErrorKind(kind)
        super().__init__(
            message=message or f"Camera unavailable ({kind.value})",
            error_code=f"CAMERA_{kind.name}",
            context={"kind": kind.value, "configuration": configuration, "attempts": attempts}
        )
        self.kind = kind
        self.configuration = configuration
        self.attempts = attempts

    @property
    def retriable(self) -> bool:
        # Permission has to be granted in OS/browser settings first
        return self.kind is not CameraErrorKind.PERMISSION_DENIED


class CaptureNotReadyError(PipelineError):
    """Raised when capture() is called before the stream can produce a frame."""

    def __init__(self, reason: str = "stream not ready"):
        super().__init__(
            message=f"Capture not ready: {reason}",
            error_code="CAPTURE_NOT_READY",
            context={"reason": reason}
        )
        self.reason = reason


class RecognitionError(PipelineError):
    """Raised when the external recognition service fails."""

    def __init__(self, message: str, provider: str = "unknown", details: Optional[str] = None):
        super().__init__(
            message=f"Recognition service error ({provider}): {message}",
            error_code="RECOGNITION_ERROR",
            context={"provider": provider, "details": details}
        )
        self.provider = provider
        self.details = details


class ExtractionError(PipelineError):
    """Raised when no identification code can be extracted from recognized text."""

    _MESSAGES = {
        ExtractionErrorKind.TEXT_TOO_SHORT: "No readable text found in image",
        ExtractionErrorKind.NOT_FOUND: "No valid VIN found in image",
    }

    def __init__(self, kind: ExtractionErrorKind, text_length: int = 0):
        kind = ExtractionErrorKind(kind)
        super().__init__(
            message=self._MESSAGES[kind],
            error_code=f"EXTRACTION_{kind.name}",
            context={"kind": kind.value, "text_length": text_length}
        )
        self.kind = kind
        self.text_length = text_length


class CodeValidationError(PipelineError):
    """Raised when a code does not satisfy the 17-character grammar."""

    def __init__(self, code: str, reason: str, invalid_chars: Optional[list] = None):
        super().__init__(
            message=f"Invalid VIN '{code}': {reason}",
            error_code="VALIDATION_ERROR",
            context={"code": code, "reason": reason, "invalid_chars": invalid_chars or []}
        )
        self.code = code
        self.reason = reason
        self.invalid_chars = invalid_chars or []


class StoreError(PipelineError):
    """Raised by record stores when a read or write fails."""

    def __init__(self, message: str, operation: str, error_code: str = "STORE_ERROR"):
        super().__init__(
            message=message,
            error_code=error_code,
            context={"operation": operation}
        )
        self.operation = operation


class DuplicateCodeError(StoreError):
    """Raised when an insert would create a second record for the same code."""

    def __init__(self, code: str, table: str):
        super().__init__(
            message=f"A record for VIN {code} already exists in {table}",
            operation="insert",
            error_code="DUPLICATE_CODE",
        )
        self.context.update({"code": code, "table": table})
        self.code = code
        self.table = table


class ReconciliationError(PipelineError):
    """Raised when the record store rejects a lookup, insert or update."""

    def __init__(self, code: str, operation: str, cause: Optional[Exception] = None):
        conflict = isinstance(cause, DuplicateCodeError)
        super().__init__(
            message=f"Reconciliation {operation} failed for {code}: {cause}",
            error_code="RECONCILIATION_CONFLICT" if conflict else "RECONCILIATION_ERROR",
            context={"code": code, "operation": operation, "cause": str(cause) if cause else None}
        )
        self.code = code
        self.operation = operation
        self.cause = cause


class ScanCancelledError(PipelineError):
    """Raised when a scan is cancelled before reconciliation starts."""

    def __init__(self, stage: str):
        super().__init__(
            message=f"Scan cancelled during {stage}",
            error_code="SCAN_CANCELLED",
            context={"stage": stage}
        )
        self.stage = stage
