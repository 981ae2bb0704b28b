"""
Tests for the vin-scan command line.
"""

import json

import pytest

import vin_scan.pipeline
from vin_scan.cli import build_parser, main
from vin_scan.config import reset_config
from vin_scan.core.exceptions import StoreError
from vin_scan.reconciliation import StorageTable


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    monkeypatch.delenv("VIN_SCAN_STORE_BACKEND", raising=False)
    monkeypatch.delenv("VIN_SCAN_MIN_TEXT_LENGTH", raising=False)
    reset_config()
    yield
    reset_config()


class TestParser:

    def test_submit_defaults(self):
        args = build_parser().parse_args(["submit", "5YJ3E1EA8PF123456"])
        assert args.route == "/inventory"
        assert args.json is False
        assert args.db is None

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "vin-scan" in capsys.readouterr().out


class TestValidate:

    def test_valid_code(self, capsys):
        assert main(["validate", "5YJ3E1EA8PF123456"]) == 0
        assert "VALID" in capsys.readouterr().out

    def test_invalid_code_json(self, capsys):
        assert main(["validate", "5YJ3E1EA8PF12345O", "--json"]) == 1
        data = json.loads(capsys.readouterr().out)
        assert data["is_valid"] is False
        assert data["invalid_chars"] == ["O"]


class TestDecode:

    def test_decode_json(self, capsys):
        assert main(["decode", "5yj3e1ea8pf123456", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["manufacturer"] == "Tesla"
        assert data["category"] == "EV"
        assert data["price_estimate"] == 85000

    def test_decode_reports_country(self, capsys):
        assert main(["decode", "LGX1234567890ABCD"]) == 0
        out = capsys.readouterr().out
        assert "Country: China" in out
        assert "Model Year: 2000" in out

    def test_decode_rejects_short_code(self, capsys):
        assert main(["decode", "SHORT123"]) == 1
        assert "Error [VALIDATION_ERROR]" in capsys.readouterr().err


class TestExtract:

    def test_labeled_text(self, capsys):
        assert main(["extract", "VEHICLE ID: LGX1234567890ABCD extra noise"]) == 0
        assert "LGX1234567890ABCD" in capsys.readouterr().out

    def test_nothing_found_json(self, capsys):
        assert main(["extract", "GROSS VEHICLE WEIGHT 2150 KG", "-j"]) == 1
        data = json.loads(capsys.readouterr().out)
        assert data["error"]["error_code"] == "EXTRACTION_NOT_FOUND"


class TestSubmit:

    def test_create_then_relocate(self, tmp_path, capsys):
        db = str(tmp_path / "vehicles.db")

        assert main(["submit", "5YJ3E1EA8PF123456", "--route", "/garage-inventory", "--db", db, "--json"]) == 0
        created = json.loads(capsys.readouterr().out)
        assert created["outcome"]["kind"] == "created"

        assert main(["submit", "5YJ3E1EA8PF123456", "-r", "/showroom-floor-1", "--db", db, "--json"]) == 0
        relocated = json.loads(capsys.readouterr().out)
        assert relocated["outcome"]["kind"] == "relocated"
        assert relocated["outcome"]["previous_location"] == "Garage"
        assert relocated["outcome"]["record_id"] == created["outcome"]["record_id"]

    def test_text_output(self, tmp_path, capsys):
        db = str(tmp_path / "vehicles.db")
        assert main(["submit", "LDP95H961SE900274", "--db", db]) == 0
        out = capsys.readouterr().out
        assert "Outcome: created" in out
        assert "Unknown" in out

    def test_config_file(self, tmp_path, capsys):
        db = tmp_path / "from-config.db"
        config_path = tmp_path / "config.yaml"
        config_path.write_text(f"store:\n  backend: sqlite\n  path: {db}\n")

        assert main(["--config", str(config_path), "submit", "5YJ3E1EA8PF123456"]) == 0
        assert db.exists()


class TestStoreLifetime:

    @pytest.fixture
    def opened_stores(self, monkeypatch):
        stores = []
        real_create_store = vin_scan.pipeline.create_store

        def recording_create_store(config=None):
            store = real_create_store(config)
            stores.append(store)
            return store

        monkeypatch.setattr(vin_scan.pipeline, "create_store", recording_create_store)
        return stores

    def test_submit_closes_store(self, tmp_path, capsys, opened_stores):
        assert main(["submit", "5YJ3E1EA8PF123456", "--db", str(tmp_path / "vehicles.db")]) == 0

        assert len(opened_stores) == 1
        with pytest.raises(StoreError):
            opened_stores[0].count(StorageTable.CAR_INVENTORY)

    def test_store_closed_when_submit_fails(self, tmp_path, capsys, opened_stores):
        assert main(["submit", "SHORT123", "--db", str(tmp_path / "vehicles.db")]) == 1

        assert "VALIDATION_ERROR" in capsys.readouterr().err
        with pytest.raises(StoreError):
            opened_stores[0].count(StorageTable.CAR_INVENTORY)

    def test_scan_closes_store(self, tmp_path, capsys, opened_stores):
        assert main(["scan", "--image", str(tmp_path / "missing.jpg"), "--db", str(tmp_path / "vehicles.db")]) == 1

        with pytest.raises(StoreError):
            opened_stores[0].count(StorageTable.CAR_INVENTORY)
