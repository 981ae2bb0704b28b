"""
Constraint Negotiator
=====================

Walks an ordered list of capture configurations until one yields a live
stream.

State machine:

    IDLE -> TRYING(0) -> ACTIVE
                      -> TRYING(1) -> ... -> FAILED

- A permission denial goes straight to FAILED: once the operator has
  refused access, no other configuration can succeed.
- Any other failure is logged and the next configuration is tried.
- When every configuration fails, the last failure's kind is reported.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from .backends import (
    CaptureBackend,
    CaptureConfiguration,
    DEFAULT_CONFIGURATIONS,
    VideoStream,
    classify_camera_error,
)
from ..core.exceptions import CameraAccessError, CameraErrorKind, ConfigurationError

logger = logging.getLogger(__name__)


class NegotiationState(str, Enum):
    IDLE = "idle"
    TRYING = "trying"
    ACTIVE = "active"
    FAILED = "failed"


@dataclass(frozen=True)
class CaptureEnvironment:
    """Capability flags checked before any configuration is tried."""
    secure_context: bool = True
    api_available: bool = True


@dataclass(frozen=True)
class NegotiationAttempt:
    """Record of one configuration attempt."""
    index: int
    configuration: CaptureConfiguration
    error_kind: Optional[CameraErrorKind] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error_kind is None


@dataclass
class NegotiationResult:
    """A live stream plus the configuration that produced it."""
    stream: VideoStream
    configuration: CaptureConfiguration
    index: int
    attempts: List[NegotiationAttempt] = field(default_factory=list)


class ConstraintNegotiator:
    """
    Tries capture configurations in order against a backend.

    Example:
        negotiator = ConstraintNegotiator(OpenCVCaptureBackend())
        result = negotiator.negotiate()
        print(result.configuration.name)
    """

    def __init__(
        self,
        backend: CaptureBackend,
        configurations: Optional[Sequence[CaptureConfiguration]] = None,
        environment: Optional[CaptureEnvironment] = None,
    ):
        configurations = tuple(configurations if configurations is not None else DEFAULT_CONFIGURATIONS)
        if not configurations:
            raise ConfigurationError(
                "at least one capture configuration is required",
                config_key="capture.configurations",
            )
        self.backend = backend
        self.configurations = configurations
        self.environment = environment or CaptureEnvironment()

        self._state = NegotiationState.IDLE
        self._current_index: Optional[int] = None
        self._attempts: List[NegotiationAttempt] = []

    @property
    def state(self) -> NegotiationState:
        return self._state

    @property
    def current_index(self) -> Optional[int]:
        """Index of the configuration being tried, or that won or failed last."""
        return self._current_index

    @property
    def attempts(self) -> List[NegotiationAttempt]:
        return list(self._attempts)

    def reset(self) -> None:
        self._state = NegotiationState.IDLE
        self._current_index = None
        self._attempts = []

    def negotiate(self) -> NegotiationResult:
        """
        Run the fallback chain.

        Returns:
            NegotiationResult for the first configuration that opened

        Raises:
            CameraAccessError: With the classified kind of the failure
        """
        self.reset()

        if not self.environment.api_available or not self.backend.is_available:
            raise self._fail(CameraErrorKind.UNSUPPORTED, "Camera API is not available on this platform")
        if not self.environment.secure_context:
            raise self._fail(CameraErrorKind.SECURITY_RESTRICTED, "Camera access requires a secure context")

        last_kind = CameraErrorKind.UNKNOWN
        last_error: Optional[str] = None

        for index, configuration in enumerate(self.configurations):
            self._state = NegotiationState.TRYING
            self._current_index = index

            try:
                stream = self.backend.open(configuration)
            except Exception as e:
                kind = classify_camera_error(e)
                self._attempts.append(NegotiationAttempt(index, configuration, kind, str(e)))
                logger.warning(
                    f"Camera configuration {index} ({configuration.describe()}) failed: "
                    f"{kind.value}: {e}"
                )
                if kind is CameraErrorKind.PERMISSION_DENIED:
                    raise self._fail(kind, str(e), configuration) from e
                last_kind, last_error = kind, str(e)
                continue

            self._attempts.append(NegotiationAttempt(index, configuration))
            self._state = NegotiationState.ACTIVE
            logger.info(f"Camera negotiated with configuration {index} ({configuration.describe()})")
            return NegotiationResult(stream, configuration, index, self.attempts)

        raise self._fail(last_kind, last_error, self.configurations[-1])

    def _fail(
        self,
        kind: CameraErrorKind,
        message: Optional[str],
        configuration: Optional[CaptureConfiguration] = None,
    ) -> CameraAccessError:
        self._state = NegotiationState.FAILED
        logger.error(f"Camera negotiation failed after {len(self._attempts)} attempt(s): {kind.value}")
        return CameraAccessError(
            kind,
            message,
            configuration=configuration.name if configuration else None,
            attempts=len(self._attempts),
        )
