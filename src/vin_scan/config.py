"""
Pipeline Configuration - Centralized Settings
==============================================

All configurable parameters in one place.
Supports environment variable overrides and JSON/YAML files.

Usage:
    from vin_scan.config import get_config
    config = get_config()
    print(config.capture.rear_device_index)

Environment Variables:
    VIN_SCAN_REAR_DEVICE=0
    VIN_SCAN_OCR_PROVIDER=paddleocr
    VIN_SCAN_STORE_BACKEND=sqlite
    VIN_SCAN_STORE_PATH=vehicles.db
    VIN_SCAN_LOG_LEVEL=DEBUG
"""

import os
import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Invalid float for {key}: {value}, using default {default}")
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid int for {key}: {value}, using default {default}")
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get bool from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        return value.lower() in ('true', '1', 'yes', 'on')
    return default


def _get_env_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


@dataclass
class CaptureConfig:
    """Camera capture configuration."""

    # Facing mode -> OpenCV device index
    rear_device_index: int = field(
        default_factory=lambda: _get_env_int('VIN_SCAN_REAR_DEVICE', 0)
    )
    front_device_index: int = field(
        default_factory=lambda: _get_env_int('VIN_SCAN_FRONT_DEVICE', 1)
    )
    warmup_frames: int = 2
    jpeg_quality: int = field(
        default_factory=lambda: _get_env_int('VIN_SCAN_JPEG_QUALITY', 92)
    )

    # Environment capability flags
    secure_context: bool = field(
        default_factory=lambda: _get_env_bool('VIN_SCAN_SECURE_CONTEXT', True)
    )


@dataclass
class RecognitionConfig:
    """Text recognition configuration."""

    provider: str = field(
        default_factory=lambda: _get_env_str('VIN_SCAN_OCR_PROVIDER', 'paddleocr')
    )
    language: str = 'en'
    ocr_version: str = 'PP-OCRv3'
    det_box_thresh: float = field(
        default_factory=lambda: _get_env_float('VIN_SCAN_DET_BOX_THRESH', 0.3)
    )
    preprocess_strategy: str = field(
        default_factory=lambda: _get_env_str('VIN_SCAN_PREPROCESS', 'engraved')
    )


@dataclass
class ExtractionConfig:
    """Code extraction configuration."""

    min_text_length: int = field(
        default_factory=lambda: _get_env_int('VIN_SCAN_MIN_TEXT_LENGTH', 10)
    )


@dataclass
class DecoderConfig:
    """Decoder price defaults."""

    ev_base_price: int = 60000
    default_base_price: int = 50000


@dataclass
class StoreConfig:
    """Record store configuration."""

    backend: str = field(
        default_factory=lambda: _get_env_str('VIN_SCAN_STORE_BACKEND', 'memory')
    )
    path: str = field(
        default_factory=lambda: _get_env_str('VIN_SCAN_STORE_PATH', 'vin_scan.db')
    )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(
        default_factory=lambda: _get_env_str('VIN_SCAN_LOG_LEVEL', 'INFO')
    )
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format: str = '%Y-%m-%d %H:%M:%S'

    # File logging (optional)
    log_file: Optional[str] = field(
        default_factory=lambda: os.environ.get('VIN_SCAN_LOG_FILE')
    )


_SECTIONS = ('capture', 'recognition', 'extraction', 'decoder', 'store', 'logging')


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""

    capture: CaptureConfig = field(default_factory=CaptureConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def save(self, path: Union[str, Path]):
        """Save configuration to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PipelineConfig':
        """Build a config from defaults overlaid with known keys of data."""
        config = cls()
        for section in _SECTIONS:
            values = data.get(section) or {}
            if not isinstance(values, dict):
                raise ConfigurationError(f"section '{section}' must be a mapping", config_key=section)
            target = getattr(config, section)
            for key, value in values.items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Ignoring unknown config key {section}.{key}")
        return config

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'PipelineConfig':
        """Load configuration from a JSON or YAML file."""
        path = Path(path)
        try:
            with open(path) as f:
                if path.suffix.lower() in ('.yaml', '.yml'):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"cannot read {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping")
        return cls.from_dict(data)


# Global configuration instance (singleton pattern)
_config: Optional[PipelineConfig] = None


def get_config() -> PipelineConfig:
    """
    Get the global configuration instance.

    Creates a new instance on first call, returns cached instance thereafter.
    """
    global _config
    if _config is None:
        _config = PipelineConfig()
        _setup_logging(_config.logging)
    return _config


def set_config(config: PipelineConfig) -> None:
    """Replace the global configuration (e.g. after load())."""
    global _config
    _config = config
    _setup_logging(config.logging)


def reset_config():
    """Reset configuration to defaults (useful for testing)."""
    global _config
    _config = None


def _setup_logging(config: LoggingConfig):
    """Configure logging based on settings."""
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=level,
        format=config.format,
        datefmt=config.date_format,
        handlers=handlers,
    )
