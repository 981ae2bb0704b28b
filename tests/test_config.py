"""
Tests for pipeline configuration.
"""

import json

import pytest

from vin_scan.config import (
    PipelineConfig,
    get_config,
    reset_config,
    set_config,
)
from vin_scan.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


class TestDefaults:

    def test_defaults(self, monkeypatch):
        for key in ("VIN_SCAN_STORE_BACKEND", "VIN_SCAN_OCR_PROVIDER", "VIN_SCAN_MIN_TEXT_LENGTH"):
            monkeypatch.delenv(key, raising=False)
        config = PipelineConfig()
        assert config.store.backend == "memory"
        assert config.recognition.provider == "paddleocr"
        assert config.extraction.min_text_length == 10
        assert config.decoder.default_base_price == 50000
        assert config.decoder.ev_base_price == 60000

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("VIN_SCAN_STORE_BACKEND", "sqlite")
        monkeypatch.setenv("VIN_SCAN_REAR_DEVICE", "3")
        monkeypatch.setenv("VIN_SCAN_SECURE_CONTEXT", "no")
        monkeypatch.setenv("VIN_SCAN_DET_BOX_THRESH", "0.45")

        config = PipelineConfig()

        assert config.store.backend == "sqlite"
        assert config.capture.rear_device_index == 3
        assert config.capture.secure_context is False
        assert config.recognition.det_box_thresh == 0.45

    def test_bad_env_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("VIN_SCAN_JPEG_QUALITY", "high")
        assert PipelineConfig().capture.jpeg_quality == 92


class TestSingleton:

    def test_get_config_cached(self):
        assert get_config() is get_config()

    def test_reset_config(self):
        first = get_config()
        reset_config()
        assert get_config() is not first

    def test_set_config(self):
        config = PipelineConfig()
        set_config(config)
        assert get_config() is config


class TestFiles:

    def test_save_and_load_json(self, tmp_path):
        config = PipelineConfig()
        config.extraction.min_text_length = 12
        path = tmp_path / "config.json"

        config.save(path)
        loaded = PipelineConfig.load(path)

        assert loaded.extraction.min_text_length == 12
        assert json.loads(path.read_text())["store"]["backend"] == config.store.backend

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "store:\n"
            "  backend: sqlite\n"
            "  path: /tmp/vehicles.db\n"
            "decoder:\n"
            "  default_base_price: 45000\n"
        )

        config = PipelineConfig.load(path)

        assert config.store.backend == "sqlite"
        assert config.store.path == "/tmp/vehicles.db"
        assert config.decoder.default_base_price == 45000

    def test_unknown_keys_ignored(self):
        config = PipelineConfig.from_dict({"store": {"backend": "sqlite", "replicas": 3}})
        assert config.store.backend == "sqlite"
        assert not hasattr(config.store, "replicas")

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            PipelineConfig.from_dict({"store": "sqlite"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            PipelineConfig.load(tmp_path / "missing.yaml")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            PipelineConfig.load(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            PipelineConfig.load(path)
