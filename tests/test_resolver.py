"""
Tests for the create-or-relocate resolver.
"""

from unittest.mock import MagicMock

import pytest

from vin_scan.core.exceptions import DuplicateCodeError, ReconciliationError, StoreError
from vin_scan.reconciliation import (
    Created,
    InMemoryRecordStore,
    RecordStore,
    ReconciliationResolver,
    Relocated,
    SQLiteRecordStore,
    StorageTable,
    placement_for_route,
)

from conftest import FIXED_NOW


TESLA = "5YJ3E1EA8PF123456"
UNKNOWN = "LDP95H961SE900274"
VOYAH = "LGX1234567890ABCD"


def target(route):
    return placement_for_route(route, clock=lambda: FIXED_NOW)


class TestCreate:

    def test_new_code_is_created(self, resolver, store, decoder):
        outcome = resolver.resolve(TESLA, target("/new-arrivals"), decoder.decode(TESLA))

        assert isinstance(outcome, Created)
        record = store.get(outcome.record_id, StorageTable.CAR_INVENTORY)
        assert record.vin == TESLA
        assert record.brand == "Tesla"
        assert record.model == "Tesla Model"
        assert record.year == 2023
        assert record.category == "EV"
        assert record.battery_percentage == 100
        assert record.customs == "not_paid"
        assert record.status == "in_stock"
        assert record.color == "To be determined"
        assert record.pdi_completed is False
        assert record.selling_price == 85000
        assert record.notes == f"Added via VIN scan: {TESLA}"
        assert record.location == "New Arrivals"
        assert record.current_floor == "New Arrivals"
        assert record.arrival_date == FIXED_NOW.date()

    def test_non_ev_has_no_battery(self, resolver, store, decoder):
        outcome = resolver.resolve(UNKNOWN, target("/inventory"), decoder.decode(UNKNOWN))
        record = store.get(outcome.record_id, StorageTable.CAR_INVENTORY)
        assert record.battery_percentage is None
        assert record.category == "Other"
        assert record.brand == "Unknown"

    def test_showroom_target_sets_entry_date(self, resolver, store, decoder):
        outcome = resolver.resolve(TESLA, target("/showroom-floor-1"), decoder.decode(TESLA))
        record = store.get(outcome.record_id, StorageTable.CAR_INVENTORY)
        assert record.in_showroom is True
        assert record.showroom_entry_date == FIXED_NOW

    def test_edited_guess_is_persisted(self, resolver, store, decoder):
        decoded = decoder.decode(UNKNOWN).with_overrides(manufacturer="Dongfeng", price_estimate=42000)
        outcome = resolver.resolve(UNKNOWN, target("/inventory"), decoded)
        record = store.get(outcome.record_id, StorageTable.CAR_INVENTORY)
        assert record.brand == "Dongfeng"
        assert record.selling_price == 42000

    def test_inventory_items_table(self, resolver, store, decoder):
        resolver.resolve(TESLA, target("/inventory-garage"), decoder.decode(TESLA))
        assert store.count(StorageTable.INVENTORY_ITEMS) == 1
        assert store.count(StorageTable.CAR_INVENTORY) == 0

    def test_model_read_from_plate(self, resolver, store, decoder):
        decoded = decoder.decode(VOYAH, context_text="VOYAH FREE 318 VIN LGX1234567890ABCD")
        outcome = resolver.resolve(VOYAH, target("/inventory"), decoded)
        record = store.get(outcome.record_id, StorageTable.CAR_INVENTORY)
        assert record.brand == "Voyah"
        assert record.model == "Voyah Free 318"
        assert record.year == 2000

    def test_model_template_without_plate_text(self, resolver, store, decoder):
        outcome = resolver.resolve(VOYAH, target("/inventory"), decoder.decode(VOYAH))
        assert store.get(outcome.record_id, StorageTable.CAR_INVENTORY).model == "Voyah Model"


class TestRelocate:

    def test_existing_code_is_relocated(self, resolver, store, decoder):
        created = resolver.resolve(TESLA, target("/garage-inventory"), decoder.decode(TESLA))

        outcome = resolver.resolve(TESLA, target("/showroom-floor-2"), decoder.decode(TESLA))

        assert isinstance(outcome, Relocated)
        assert outcome.record_id == created.record_id
        assert outcome.previous_location == "Garage"
        assert store.count(StorageTable.CAR_INVENTORY) == 1
        record = store.get(created.record_id, StorageTable.CAR_INVENTORY)
        assert record.location == "Showroom Floor 2"
        assert record.current_floor == "Showroom 2"
        assert record.in_showroom is True
        assert record.showroom_entry_date == FIXED_NOW

    def test_relocation_leaves_other_fields(self, resolver, store, decoder):
        created = resolver.resolve(TESLA, target("/inventory"), decoder.decode(TESLA))
        edited = decoder.decode(TESLA).with_overrides(manufacturer="Someone Else")

        resolver.resolve(TESLA, target("/garage-inventory"), edited)

        record = store.get(created.record_id, StorageTable.CAR_INVENTORY)
        assert record.brand == "Tesla"
        assert record.in_showroom is False

    def test_found_in_other_table(self, resolver, store, decoder):
        created = resolver.resolve(TESLA, target("/inventory-garage"), decoder.decode(TESLA))

        outcome = resolver.resolve(TESLA, target("/showroom-floor-1"), decoder.decode(TESLA))

        assert isinstance(outcome, Relocated)
        assert outcome.record_id == created.record_id
        assert outcome.previous_location == "Inventory Garage"
        assert outcome.storage_table == "inventory_items"
        assert outcome.to_dict()["storage_table"] == "inventory_items"
        assert store.count(StorageTable.CAR_INVENTORY) == 0
        record = store.get(created.record_id, StorageTable.INVENTORY_ITEMS)
        assert record.location == "Showroom Floor 1"
        assert record.in_showroom is True

    def test_target_table_searched_first(self, decoder, fixed_clock):
        store = MagicMock(spec=RecordStore)
        store.find_by_code.return_value = None
        store.insert.return_value = "new-id"
        resolver = ReconciliationResolver(store, clock=fixed_clock)

        resolver.resolve(TESLA, target("/inventory-floor2"), decoder.decode(TESLA))

        tables = [call.args[1] for call in store.find_by_code.call_args_list]
        assert tables == [StorageTable.INVENTORY_ITEMS, StorageTable.CAR_INVENTORY]
        assert store.insert.call_args.args[1] is StorageTable.INVENTORY_ITEMS

    def test_exclusive_outcome(self, resolver, decoder):
        for route in ("/inventory", "/garage-inventory", "/new-arrivals"):
            outcome = resolver.resolve(TESLA, target(route), decoder.decode(TESLA))
            assert isinstance(outcome, (Created, Relocated))
            assert not (isinstance(outcome, Created) and isinstance(outcome, Relocated))


class TestStoreFailures:

    @pytest.mark.parametrize("method,operation", [
        ("find_by_code", "lookup"),
        ("insert", "insert"),
    ])
    def test_failures_wrapped(self, decoder, method, operation):
        store = MagicMock(spec=RecordStore)
        store.find_by_code.return_value = None
        getattr(store, method).side_effect = StoreError("connection reset", operation=operation)
        resolver = ReconciliationResolver(store)

        with pytest.raises(ReconciliationError) as exc_info:
            resolver.resolve(TESLA, target("/inventory"), decoder.decode(TESLA))

        assert exc_info.value.operation == operation
        assert exc_info.value.error_code == "RECONCILIATION_ERROR"
        assert getattr(store, method).call_count == 1

    def test_update_failure_wrapped(self, resolver, store, decoder, monkeypatch):
        resolver.resolve(TESLA, target("/inventory"), decoder.decode(TESLA))

        def broken(*args, **kwargs):
            raise StoreError("disk full", operation="update")

        monkeypatch.setattr(store, "update_location_fields", broken)
        with pytest.raises(ReconciliationError) as exc_info:
            resolver.resolve(TESLA, target("/garage-inventory"), decoder.decode(TESLA))
        assert exc_info.value.operation == "update"

    def test_concurrent_insert_conflict(self, decoder, fixed_clock):
        store = InMemoryRecordStore()
        resolver = ReconciliationResolver(store, clock=fixed_clock)
        real_find = store.find_by_code
        # Another scanner inserts between our lookup and our insert
        def racing_find(code, table):
            result = real_find(code, table)
            if result is None and table is StorageTable.CAR_INVENTORY:
                store.insert(resolver.build_record(code, target("/inventory"), decoder.decode(code), FIXED_NOW), table)
            return result
        store.find_by_code = racing_find

        with pytest.raises(ReconciliationError) as exc_info:
            resolver.resolve(TESLA, target("/inventory"), decoder.decode(TESLA))

        assert exc_info.value.error_code == "RECONCILIATION_CONFLICT"
        assert isinstance(exc_info.value.cause, DuplicateCodeError)
        assert store.count(StorageTable.CAR_INVENTORY) == 1

    def test_failed_insert_leaves_no_record(self, tmp_path, decoder, fixed_clock):
        store = SQLiteRecordStore(tmp_path / "vehicles.db")
        resolver = ReconciliationResolver(store, clock=fixed_clock)
        resolver.resolve(TESLA, target("/inventory"), decoder.decode(TESLA))
        store.find_by_code = lambda code, table: None

        with pytest.raises(ReconciliationError):
            resolver.resolve(TESLA, target("/inventory"), decoder.decode(TESLA))

        assert store.count(StorageTable.CAR_INVENTORY) == 1
        store.close()
