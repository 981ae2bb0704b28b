"""
Reconciliation Resolver
=======================

Decides between relocating an existing record and creating a new one.

    code found in any table  -> update location fields there -> Relocated
    code not found           -> build + insert into target   -> Created

The target table is searched first. A vehicle scanned on a floor served by
the other table is moved, never duplicated.

This is the only pipeline step with side effects. It is never retried
automatically: a store failure is raised as ReconciliationError and the
operator decides whether to try again.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple, Union

from .placement import PlacementTarget, StorageTable
from .store import CustomsStatus, LocationFields, RecordStore, VehicleRecord, VehicleStatus
from ..core.exceptions import ReconciliationError, StoreError
from ..decoding.decoder import DecodedVehicle, VehicleCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Created:
    record_id: str
    code: str
    kind: str = "created"

    def to_dict(self) -> Dict:
        return {"kind": self.kind, "record_id": self.record_id, "code": self.code}


@dataclass(frozen=True)
class Relocated:
    record_id: str
    code: str
    previous_location: Optional[str]
    storage_table: Optional[str] = None
    kind: str = "relocated"

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "record_id": self.record_id,
            "code": self.code,
            "previous_location": self.previous_location,
            "storage_table": self.storage_table,
        }


ReconciliationOutcome = Union[Created, Relocated]


@dataclass
class RecordDefaults:
    """Values given to fields the scan cannot know."""
    color: str = "To be determined"
    status: str = VehicleStatus.IN_STOCK.value
    customs: str = CustomsStatus.NOT_PAID.value
    ev_battery_percentage: int = 100
    pdi_completed: bool = False
    model_template: str = "{manufacturer} Model"
    note_template: str = "Added via VIN scan: {code}"


class ReconciliationResolver:
    """
    Create-or-relocate against a RecordStore.

    Example:
        resolver = ReconciliationResolver(InMemoryRecordStore())
        outcome = resolver.resolve(code, placement_for_route("/garage-inventory"), decode_code(code))
    """

    def __init__(
        self,
        store: RecordStore,
        defaults: Optional[RecordDefaults] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.defaults = defaults or RecordDefaults()
        self.clock = clock

    def resolve(self, code: str, target: PlacementTarget, decoded: DecodedVehicle) -> ReconciliationOutcome:
        """
        Reconcile one validated code against every table, target first.

        Raises:
            ReconciliationError: If the store fails (operation = lookup, insert or update)
        """
        now = self.clock()

        try:
            existing, table = self.find_existing(code, target)
        except StoreError as e:
            raise ReconciliationError(code, "lookup", e) from e

        if existing is not None:
            try:
                self.store.update_location_fields(existing.id, self.location_fields(target, now), table)
            except StoreError as e:
                raise ReconciliationError(code, "update", e) from e
            logger.info(f"Relocated {code} from {existing.current_floor} to {target.floor_label}")
            return Relocated(
                record_id=existing.id,
                code=code,
                previous_location=existing.current_floor,
                storage_table=table.value,
            )

        record = self.build_record(code, target, decoded, now)
        try:
            record_id = self.store.insert(record, table)
        except StoreError as e:
            raise ReconciliationError(code, "insert", e) from e
        logger.info(f"Created {code} in {table.value} at {target.floor_label}")
        return Created(record_id=record_id, code=code)

    def find_existing(self, code: str, target: PlacementTarget) -> Tuple[Optional[VehicleRecord], StorageTable]:
        """Return the record for code and the table holding it, or (None, target table)."""
        tables = [target.storage_table] + [t for t in StorageTable if t is not target.storage_table]
        for table in tables:
            existing = self.store.find_by_code(code, table)
            if existing is not None:
                return existing, table
        return None, target.storage_table

    def location_fields(self, target: PlacementTarget, now: datetime) -> LocationFields:
        return LocationFields(
            location=target.location_label,
            current_floor=target.floor_label,
            in_showroom=target.is_showroom,
            last_updated=now,
            showroom_entry_date=(target.showroom_entry_timestamp or now) if target.is_showroom else None,
        )

    def build_record(
        self,
        code: str,
        target: PlacementTarget,
        decoded: DecodedVehicle,
        now: datetime,
    ) -> VehicleRecord:
        """Combine the decode guess, the target and the defaults into a new record."""
        defaults = self.defaults
        location = self.location_fields(target, now)
        is_ev = decoded.category is VehicleCategory.EV
        return VehicleRecord(
            vin=code,
            brand=decoded.manufacturer,
            model=decoded.model_guess or defaults.model_template.format(manufacturer=decoded.manufacturer),
            year=decoded.model_year,
            color=defaults.color,
            category=decoded.category.value,
            status=defaults.status,
            location=location.location,
            current_floor=location.current_floor,
            in_showroom=location.in_showroom,
            showroom_entry_date=location.showroom_entry_date,
            battery_percentage=defaults.ev_battery_percentage if is_ev else None,
            customs=defaults.customs,
            selling_price=decoded.price_estimate,
            arrival_date=now.date(),
            pdi_completed=defaults.pdi_completed,
            notes=defaults.note_template.format(code=code),
            last_updated=now,
        )
