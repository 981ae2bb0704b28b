"""
VIN Scan Reconciliation Module
==============================

Placement targets, record stores and the create-or-relocate resolver.
"""

from .placement import (
    StorageTable,
    PlacementTarget,
    DEFAULT_ROUTE,
    ROUTE_PLACEMENTS,
    placement_for_route,
)
from .store import (
    VehicleStatus,
    CustomsStatus,
    VehicleRecord,
    LocationFields,
    KNOWN_TABLES,
    RecordStore,
    InMemoryRecordStore,
    SQLiteRecordStore,
)
from .resolver import (
    Created,
    Relocated,
    ReconciliationOutcome,
    RecordDefaults,
    ReconciliationResolver,
)

__all__ = [
    "StorageTable",
    "PlacementTarget",
    "DEFAULT_ROUTE",
    "ROUTE_PLACEMENTS",
    "placement_for_route",
    "VehicleStatus",
    "CustomsStatus",
    "VehicleRecord",
    "LocationFields",
    "KNOWN_TABLES",
    "RecordStore",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
    "Created",
    "Relocated",
    "ReconciliationOutcome",
    "RecordDefaults",
    "ReconciliationResolver",
]
