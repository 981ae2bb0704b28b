"""
Recognition Providers - Text Recognition Abstraction Layer
==========================================================

The pipeline treats text recognition as an external service:
``CapturedFrame -> OCRResult``. Nothing about the engine's internals is
assumed beyond "a string, possibly empty".

Providers:
- PaddleOCR (local, optional ``ocr`` extra)
- Callable (wraps any ``bytes -> str`` function, e.g. a remote API client)

Recognition is called once per frame. There is no internal retry: a
failure is raised as RecognitionError and the operator decides whether
to retake.

Usage:
    from vin_scan.recognition import create_recognizer

    recognizer = create_recognizer("paddleocr")
    result = recognizer.recognize(frame)
    print(result.text)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from ..capture.surface import CapturedFrame
from ..core.exceptions import ConfigurationError, RecognitionError
from ..preprocessing import FramePreprocessor, PreprocessStrategy

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class OCRResult:
    """
    Text returned by a recognition service for one frame.

    Attributes:
        text: Recognized text (may be empty)
        confidence: Confidence score (0.0 to 1.0)
        provider: Name of the provider used
        metadata: Provider-specific extras
    """
    text: str
    confidence: float = 0.0
    provider: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "text": self.text,
            "confidence": self.confidence,
            "provider": self.provider,
            "metadata": self.metadata,
        }


# =============================================================================
# BASE CLASS
# =============================================================================

class RecognitionService(ABC):
    """Abstract base class for recognition services."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    def recognize(self, frame: CapturedFrame) -> OCRResult:
        """
        Recognize text in one frame.

        Raises:
            RecognitionError: If the service fails
        """
        ...


# =============================================================================
# PADDLEOCR PROVIDER
# =============================================================================

class PaddleOCRRecognizer(RecognitionService):
    """
    PaddleOCR-based recognition.

    The engine is created lazily on first use so that constructing a
    pipeline does not load models.
    """

    def __init__(
        self,
        lang: str = "en",
        ocr_version: str = "PP-OCRv3",
        det_box_thresh: float = 0.3,
        preprocessor: Optional[FramePreprocessor] = None,
    ):
        self.lang = lang
        self.ocr_version = ocr_version
        self.det_box_thresh = det_box_thresh
        self.preprocessor = preprocessor
        self._ocr = None

    @property
    def name(self) -> str:
        return "PaddleOCR"

    @property
    def is_available(self) -> bool:
        """Check if PaddleOCR is installed."""
        try:
            from paddleocr import PaddleOCR  # noqa: F401
            return True
        except ImportError:
            return False

    @property
    def is_initialized(self) -> bool:
        return self._ocr is not None

    def initialize(self) -> None:
        """Create the PaddleOCR engine."""
        if self._ocr is not None:
            return

        if not self.is_available:
            raise ConfigurationError(
                "PaddleOCR is not installed. Install with: pip install 'vin-scan-pipeline[ocr]'",
                config_key="recognition.provider",
            )

        from paddleocr import PaddleOCR

        logger.info(f"Initializing PaddleOCR ({self.ocr_version})...")
        try:
            self._ocr = PaddleOCR(
                lang=self.lang,
                ocr_version=self.ocr_version,
                use_doc_orientation_classify=False,
                use_doc_unwarping=False,
                use_textline_orientation=False,
                text_det_box_thresh=self.det_box_thresh,
            )
        except Exception as e:
            raise RecognitionError(f"Failed to initialize PaddleOCR: {e}", provider=self.name) from e
        logger.info("PaddleOCR initialized")

    def recognize(self, frame: CapturedFrame) -> OCRResult:
        self.initialize()

        image = frame.to_array()
        if image is None:
            raise RecognitionError("frame could not be decoded", provider=self.name)
        if self.preprocessor is not None:
            image = self.preprocessor.process(image)

        try:
            result = self._ocr.predict(image)
        except Exception as e:
            raise RecognitionError(f"OCR prediction failed: {e}", provider=self.name, details=str(e)) from e

        text, confidence, lines = self._parse_result(result)
        logger.debug(f"PaddleOCR recognized {len(lines)} line(s), confidence={confidence:.2f}")
        return OCRResult(text=text, confidence=confidence, provider=self.name, metadata={"lines": lines})

    @staticmethod
    def _parse_result(result: Any) -> Tuple[str, float, List[str]]:
        """Parse PaddleOCR 3.x output (list of dicts with rec_texts/rec_scores)."""
        if not result:
            return "", 0.0, []
        if isinstance(result, list):
            result = result[0]
        if not isinstance(result, dict) and hasattr(result, "json"):
            result = result.json.get("res", {})
        if not isinstance(result, dict):
            return "", 0.0, []

        texts = [str(t) for t in result.get("rec_texts", [])]
        scores = result.get("rec_scores", [])
        if not texts:
            return "", 0.0, []
        # Lines are space separated so labels and codes stay distinct tokens
        return " ".join(texts), float(np.mean(scores)) if len(scores) else 0.0, texts


# =============================================================================
# CALLABLE PROVIDER
# =============================================================================

class CallableRecognizer(RecognitionService):
    """
    Adapts a plain ``(image_bytes) -> text`` function.

    Example:
        recognizer = CallableRecognizer(lambda data: client.ocr(data), name="cloud")
    """

    def __init__(self, func: Callable[[bytes], Optional[str]], name: str = "callable"):
        self._func = func
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def recognize(self, frame: CapturedFrame) -> OCRResult:
        try:
            text = self._func(frame.data)
        except RecognitionError:
            raise
        except Exception as e:
            raise RecognitionError(str(e), provider=self.name, details=type(e).__name__) from e
        return OCRResult(text=text or "", confidence=1.0 if text else 0.0, provider=self.name)


# =============================================================================
# FACTORY
# =============================================================================

def create_recognizer(
    provider: str = "paddleocr",
    lang: str = "en",
    ocr_version: str = "PP-OCRv3",
    det_box_thresh: float = 0.3,
    preprocess_strategy: Optional[str] = PreprocessStrategy.ENGRAVED.value,
) -> RecognitionService:
    """
    Create a recognition service by name.

    Raises:
        ConfigurationError: For unknown provider names
    """
    provider = provider.lower()
    if provider == "paddleocr":
        preprocessor = None
        if preprocess_strategy and preprocess_strategy != PreprocessStrategy.NONE.value:
            preprocessor = FramePreprocessor(strategy=PreprocessStrategy(preprocess_strategy))
        return PaddleOCRRecognizer(
            lang=lang,
            ocr_version=ocr_version,
            det_box_thresh=det_box_thresh,
            preprocessor=preprocessor,
        )
    raise ConfigurationError(
        f"Unknown recognition provider: '{provider}'",
        config_key="recognition.provider",
        expected="paddleocr",
    )
