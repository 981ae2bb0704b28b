"""
Frame Preprocessor
==================

Prepares captured frames for the recognition service.

Camera frames of VIN plates are large, unevenly lit and often show
stamped characters on metal. Strategies:

- NONE: Pass the frame through unchanged
- STANDARD: Grayscale + CLAHE
- ENGRAVED: CLAHE + morphological closing + bilateral denoise
- LOW_CONTRAST: Strong CLAHE + unsharp masking
- ADAPTIVE: Pick one of the above from the frame's contrast

Every strategy returns a 3-channel BGR image, which is what PaddleOCR
expects.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class PreprocessStrategy(str, Enum):
    """Preprocessing strategy enumeration."""
    NONE = 'none'
    STANDARD = 'standard'
    ENGRAVED = 'engraved'
    LOW_CONTRAST = 'low_contrast'
    ADAPTIVE = 'adaptive'


@dataclass
class PreprocessConfig:
    """Configuration for frame preprocessing."""

    strategy: PreprocessStrategy = PreprocessStrategy.ENGRAVED

    # Frames above this size are downscaled (longest side, pixels)
    max_dimension: int = 1600

    clahe_clip_limit: float = 2.0
    clahe_tile_size: Tuple[int, int] = (8, 8)

    morph_kernel_size: Tuple[int, int] = (2, 2)

    bilateral_d: int = 5
    bilateral_sigma_color: float = 50.0
    bilateral_sigma_space: float = 50.0

    unsharp_radius: int = 1
    unsharp_amount: float = 1.5

    # Std dev thresholds used by ADAPTIVE
    low_contrast_threshold: float = 50.0
    high_contrast_threshold: float = 80.0


class FramePreprocessor:
    """
    Frame preprocessor with multiple strategies.

    Example:
        preprocessor = FramePreprocessor(strategy=PreprocessStrategy.ADAPTIVE)
        image = preprocessor.process(frame.to_array())
    """

    def __init__(
        self,
        strategy: Optional[PreprocessStrategy] = None,
        config: Optional[PreprocessConfig] = None,
    ):
        self.config = config or PreprocessConfig()
        if strategy is not None:
            self.config.strategy = PreprocessStrategy(strategy)

        self.clahe = cv2.createCLAHE(
            clipLimit=self.config.clahe_clip_limit,
            tileGridSize=self.config.clahe_tile_size,
        )
        self.morph_kernel = np.ones(self.config.morph_kernel_size, np.uint8)

    def process(self, image: np.ndarray, strategy: Optional[PreprocessStrategy] = None) -> np.ndarray:
        """
        Process a frame for recognition.

        Args:
            image: BGR or grayscale frame
            strategy: Override the configured strategy for this call

        Returns:
            Preprocessed BGR image

        Raises:
            ValueError: If image is empty
        """
        if image is None or image.size == 0:
            raise ValueError("Input image is empty or None")

        active = PreprocessStrategy(strategy or self.config.strategy)
        if active is PreprocessStrategy.NONE:
            return image

        gray = self._to_gray(self._limit_size(image))

        if active is PreprocessStrategy.ADAPTIVE:
            active = self.suggest_strategy(gray)
            logger.debug(f"Adaptive preprocessing selected {active.value}")

        if active is PreprocessStrategy.STANDARD:
            processed = self.clahe.apply(gray)
        elif active is PreprocessStrategy.LOW_CONTRAST:
            processed = self._low_contrast(gray)
        else:
            processed = self._engraved(gray)

        return cv2.cvtColor(processed, cv2.COLOR_GRAY2BGR)

    def suggest_strategy(self, gray: np.ndarray) -> PreprocessStrategy:
        """Choose a strategy from grayscale contrast."""
        contrast = float(np.std(gray))
        if contrast < self.config.low_contrast_threshold:
            return PreprocessStrategy.LOW_CONTRAST
        if contrast > self.config.high_contrast_threshold:
            return PreprocessStrategy.STANDARD
        return PreprocessStrategy.ENGRAVED

    def analyze(self, image: np.ndarray) -> Dict[str, Any]:
        """Frame statistics for logging and tuning."""
        gray = self._to_gray(image)
        return {
            'width': image.shape[1],
            'height': image.shape[0],
            'contrast': float(np.std(gray)),
            'brightness': float(np.mean(gray)),
            'suggested_strategy': self.suggest_strategy(gray).value,
        }

    def _engraved(self, gray: np.ndarray) -> np.ndarray:
        enhanced = self.clahe.apply(gray)
        # Closing reconnects broken strokes of stamped characters
        closed = cv2.morphologyEx(enhanced, cv2.MORPH_CLOSE, self.morph_kernel)
        return cv2.bilateralFilter(
            closed,
            d=self.config.bilateral_d,
            sigmaColor=self.config.bilateral_sigma_color,
            sigmaSpace=self.config.bilateral_sigma_space,
        )

    def _low_contrast(self, gray: np.ndarray) -> np.ndarray:
        strong_clahe = cv2.createCLAHE(clipLimit=4.0, tileGridSize=(4, 4))
        enhanced = strong_clahe.apply(gray)
        blurred = cv2.GaussianBlur(enhanced, (0, 0), self.config.unsharp_radius)
        return cv2.addWeighted(
            enhanced, 1 + self.config.unsharp_amount,
            blurred, -self.config.unsharp_amount,
            0,
        )

    def _limit_size(self, image: np.ndarray) -> np.ndarray:
        h, w = image.shape[:2]
        longest = max(h, w)
        if longest <= self.config.max_dimension:
            return image
        scale = self.config.max_dimension / longest
        return cv2.resize(image, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)

    @staticmethod
    def _to_gray(image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
