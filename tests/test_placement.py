"""
Tests for route -> placement target mapping.
"""

import pytest

from vin_scan.reconciliation import ROUTE_PLACEMENTS, StorageTable, placement_for_route

from conftest import FIXED_NOW


class TestPlacementForRoute:

    @pytest.mark.parametrize("route,table,location,floor,showroom", [
        ("/inventory", StorageTable.CAR_INVENTORY, "Inventory", "Inventory", False),
        ("/showroom-floor-1", StorageTable.CAR_INVENTORY, "Showroom Floor 1", "Showroom 1", True),
        ("/showroom-floor-2", StorageTable.CAR_INVENTORY, "Showroom Floor 2", "Showroom 2", True),
        ("/garage-inventory", StorageTable.CAR_INVENTORY, "Garage", "Garage", False),
        ("/new-arrivals", StorageTable.CAR_INVENTORY, "New Arrivals", "New Arrivals", False),
        ("/inventory-floor2", StorageTable.INVENTORY_ITEMS, "Inventory Floor 2", "Inventory Floor 2", False),
        ("/inventory-garage", StorageTable.INVENTORY_ITEMS, "Inventory Garage", "Inventory Garage", False),
        ("/showroom-inventory", StorageTable.CAR_INVENTORY, "Showroom Inventory", "Showroom Inventory", True),
    ])
    def test_known_routes(self, route, table, location, floor, showroom):
        target = placement_for_route(route, clock=lambda: FIXED_NOW)
        assert target.storage_table is table
        assert target.location_label == location
        assert target.floor_label == floor
        assert target.is_showroom is showroom
        assert target.showroom_entry_timestamp == (FIXED_NOW if showroom else None)

    def test_route_table_complete(self):
        assert len(ROUTE_PLACEMENTS) == 8

    @pytest.mark.parametrize("route", ["/dashboard", "", None, "/unknown/page"])
    def test_unknown_routes_fall_back_to_inventory(self, route):
        target = placement_for_route(route)
        assert target.location_label == "Inventory"
        assert target.storage_table is StorageTable.CAR_INVENTORY
        assert target.is_showroom is False

    @pytest.mark.parametrize("route", ["/garage-inventory/", "garage-inventory", "/Garage-Inventory?tab=2"])
    def test_route_normalization(self, route):
        assert placement_for_route(route).location_label == "Garage"

    def test_deterministic(self):
        clock = lambda: FIXED_NOW  # noqa: E731
        assert placement_for_route("/showroom-floor-1", clock) == placement_for_route("/showroom-floor-1", clock)

    def test_to_dict(self):
        data = placement_for_route("/showroom-floor-2", clock=lambda: FIXED_NOW).to_dict()
        assert data["storage_table"] == "car_inventory"
        assert data["showroom_entry_timestamp"] == FIXED_NOW.isoformat()
