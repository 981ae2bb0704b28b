"""
Placement Targets
=================

Where a scanned vehicle should be recorded, derived from the navigation
route the scanner was opened from.

Unknown routes fall back to the main inventory.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)


class StorageTable(str, Enum):
    CAR_INVENTORY = "car_inventory"
    INVENTORY_ITEMS = "inventory_items"


@dataclass(frozen=True)
class PlacementTarget:
    """
    Destination of a scanned vehicle.

    Attributes:
        storage_table: Table the record lives in
        location_label: Human-readable location
        floor_label: Floor label stored on the record
        is_showroom: Whether the vehicle is on display
        showroom_entry_timestamp: When it entered the showroom (showroom targets only)
    """
    storage_table: StorageTable
    location_label: str
    floor_label: str
    is_showroom: bool = False
    showroom_entry_timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict:
        return {
            "storage_table": self.storage_table.value,
            "location_label": self.location_label,
            "floor_label": self.floor_label,
            "is_showroom": self.is_showroom,
            "showroom_entry_timestamp": (
                self.showroom_entry_timestamp.isoformat() if self.showroom_entry_timestamp else None
            ),
        }


class _RoutePlacement(NamedTuple):
    storage_table: StorageTable
    location_label: str
    floor_label: str
    is_showroom: bool


DEFAULT_ROUTE = "/inventory"

ROUTE_PLACEMENTS: Dict[str, _RoutePlacement] = {
    "/inventory": _RoutePlacement(StorageTable.CAR_INVENTORY, "Inventory", "Inventory", False),
    "/showroom-floor-1": _RoutePlacement(StorageTable.CAR_INVENTORY, "Showroom Floor 1", "Showroom 1", True),
    "/showroom-floor-2": _RoutePlacement(StorageTable.CAR_INVENTORY, "Showroom Floor 2", "Showroom 2", True),
    "/garage-inventory": _RoutePlacement(StorageTable.CAR_INVENTORY, "Garage", "Garage", False),
    "/new-arrivals": _RoutePlacement(StorageTable.CAR_INVENTORY, "New Arrivals", "New Arrivals", False),
    "/inventory-floor2": _RoutePlacement(StorageTable.INVENTORY_ITEMS, "Inventory Floor 2", "Inventory Floor 2", False),
    "/inventory-garage": _RoutePlacement(StorageTable.INVENTORY_ITEMS, "Inventory Garage", "Inventory Garage", False),
    "/showroom-inventory": _RoutePlacement(
        StorageTable.CAR_INVENTORY, "Showroom Inventory", "Showroom Inventory", True
    ),
}


def placement_for_route(
    route: Optional[str],
    clock: Callable[[], datetime] = datetime.now,
) -> PlacementTarget:
    """
    Map a navigation route to a PlacementTarget.

    Showroom targets are stamped with the entry time from clock().
    """
    key = (route or "").strip().lower().split("?", 1)[0]
    if len(key) > 1:
        key = key.rstrip("/")
    if key and not key.startswith("/"):
        key = "/" + key

    placement = ROUTE_PLACEMENTS.get(key)
    if placement is None:
        logger.debug(f"No placement for route '{route}', using {DEFAULT_ROUTE}")
        placement = ROUTE_PLACEMENTS[DEFAULT_ROUTE]

    return PlacementTarget(
        storage_table=placement.storage_table,
        location_label=placement.location_label,
        floor_label=placement.floor_label,
        is_showroom=placement.is_showroom,
        showroom_entry_timestamp=clock() if placement.is_showroom else None,
    )
