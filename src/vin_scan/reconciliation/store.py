"""
Record Stores
=============

The persisted vehicle record and the store contract the resolver uses:

    find_by_code(code, table) -> VehicleRecord | None
    insert(record, table) -> record id
    update_location_fields(record_id, fields, table) -> None

Both bundled stores keep the code unique across all tables. An insert that
would create a second record for a code, in the same table or the other
one, raises DuplicateCodeError, which is how concurrent scans of the same
new vehicle are resolved.

Implementations:
- InMemoryRecordStore: dict-backed, for tests and offline use
- SQLiteRecordStore: sqlite3 file database
"""

import logging
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .placement import StorageTable
from ..core.exceptions import DuplicateCodeError, StoreError

logger = logging.getLogger(__name__)


# =============================================================================
# RECORD SCHEMA
# =============================================================================

class VehicleStatus(str, Enum):
    IN_STOCK = "in_stock"
    RESERVED = "reserved"
    SOLD = "sold"


class CustomsStatus(str, Enum):
    NOT_PAID = "not_paid"
    PAID = "paid"


@dataclass
class VehicleRecord:
    """Authoritative, operator-confirmed vehicle record."""
    vin: str
    brand: str
    model: str
    year: int
    color: str
    category: str
    status: str
    location: str
    current_floor: str
    in_showroom: bool = False
    showroom_entry_date: Optional[datetime] = None
    battery_percentage: Optional[int] = None
    customs: str = CustomsStatus.NOT_PAID.value
    selling_price: Optional[int] = None
    arrival_date: Optional[date] = None
    pdi_completed: bool = False
    notes: str = ""
    last_updated: Optional[datetime] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("showroom_entry_date", "arrival_date", "last_updated"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass(frozen=True)
class LocationFields:
    """
    The only fields a relocation may touch.

    showroom_entry_date of None means "leave unchanged".
    """
    location: str
    current_floor: str
    in_showroom: bool
    last_updated: datetime
    showroom_entry_date: Optional[datetime] = None

    def changes(self) -> Dict[str, Any]:
        values = {
            "location": self.location,
            "current_floor": self.current_floor,
            "in_showroom": self.in_showroom,
            "last_updated": self.last_updated,
        }
        if self.showroom_entry_date is not None:
            values["showroom_entry_date"] = self.showroom_entry_date
        return values


KNOWN_TABLES = frozenset(t.value for t in StorageTable)


def _table_name(table: Union[str, StorageTable]) -> str:
    name = table.value if isinstance(table, StorageTable) else str(table)
    if name not in KNOWN_TABLES:
        raise StoreError(f"Unknown storage table: {name}", operation="resolve_table")
    return name


# =============================================================================
# STORE CONTRACT
# =============================================================================

class RecordStore(ABC):
    """Abstract record store."""

    @abstractmethod
    def find_by_code(self, code: str, table: Union[str, StorageTable]) -> Optional[VehicleRecord]:
        ...

    @abstractmethod
    def insert(self, record: VehicleRecord, table: Union[str, StorageTable]) -> str:
        """
        Persist a new record.

        Raises:
            DuplicateCodeError: If any table already holds this code
            StoreError: On any other failure
        """
        ...

    @abstractmethod
    def update_location_fields(
        self,
        record_id: str,
        location: LocationFields,
        table: Union[str, StorageTable],
    ) -> None:
        ...

    @abstractmethod
    def get(self, record_id: str, table: Union[str, StorageTable]) -> Optional[VehicleRecord]:
        ...

    @abstractmethod
    def count(self, table: Union[str, StorageTable]) -> int:
        ...

    def close(self) -> None:
        """Release connections. Stores without any keep the default no-op."""


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class InMemoryRecordStore(RecordStore):
    """Dict-backed store. Records are copied in and out."""

    def __init__(self):
        self._tables: Dict[str, Dict[str, VehicleRecord]] = {name: {} for name in KNOWN_TABLES}
        self._lock = threading.Lock()

    def find_by_code(self, code, table):
        rows = self._tables[_table_name(table)]
        with self._lock:
            for record in rows.values():
                if record.vin == code:
                    return replace(record)
        return None

    def insert(self, record, table):
        name = _table_name(table)
        rows = self._tables[name]
        with self._lock:
            for other, other_rows in self._tables.items():
                if any(existing.vin == record.vin for existing in other_rows.values()):
                    raise DuplicateCodeError(record.vin, other)
            record_id = record.id or uuid.uuid4().hex
            rows[record_id] = replace(record, id=record_id)
        logger.debug(f"Inserted {record.vin} into {name} as {record_id}")
        return record_id

    def update_location_fields(self, record_id, location, table):
        name = _table_name(table)
        rows = self._tables[name]
        with self._lock:
            if record_id not in rows:
                raise StoreError(f"No record {record_id} in {name}", operation="update")
            rows[record_id] = replace(rows[record_id], **location.changes())

    def get(self, record_id, table):
        record = self._tables[_table_name(table)].get(record_id)
        return replace(record) if record else None

    def count(self, table):
        return len(self._tables[_table_name(table)])

    def all(self, table: Union[str, StorageTable]) -> List[VehicleRecord]:
        return [replace(r) for r in self._tables[_table_name(table)].values()]


# =============================================================================
# SQLITE STORE
# =============================================================================

_DATETIME_COLUMNS = ("showroom_entry_date", "last_updated")
_COLUMNS = [f.name for f in fields(VehicleRecord) if f.name != "id"]

_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    id TEXT PRIMARY KEY,
    vin TEXT NOT NULL UNIQUE,
    brand TEXT NOT NULL,
    model TEXT NOT NULL,
    year INTEGER NOT NULL,
    color TEXT NOT NULL,
    category TEXT NOT NULL,
    status TEXT NOT NULL,
    location TEXT NOT NULL,
    current_floor TEXT NOT NULL,
    in_showroom INTEGER NOT NULL DEFAULT 0,
    showroom_entry_date TEXT,
    battery_percentage INTEGER,
    customs TEXT NOT NULL,
    selling_price INTEGER,
    arrival_date TEXT,
    pdi_completed INTEGER NOT NULL DEFAULT 0,
    notes TEXT NOT NULL DEFAULT '',
    last_updated TEXT
)
"""

# One row per code across every record table
_REGISTRY_SCHEMA = """
CREATE TABLE IF NOT EXISTS vin_registry (
    vin TEXT PRIMARY KEY,
    storage_table TEXT NOT NULL
)
"""


class SQLiteRecordStore(RecordStore):
    """
    sqlite3-backed store with one table per StorageTable.

    The connection is shared across threads behind a lock, so a UI thread
    and a scan thread can use the same store. The vin_registry table holds
    each code once and is written in the same transaction as the record, so
    a code cannot land in both tables.
    """

    def __init__(self, path: Union[str, Path] = ":memory:"):
        self.path = str(path)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            with self._conn:
                self._conn.execute(_REGISTRY_SCHEMA)
                for name in sorted(KNOWN_TABLES):
                    self._conn.execute(_SCHEMA.format(table=name))
                    self._conn.execute(
                        f"INSERT OR IGNORE INTO vin_registry (vin, storage_table) SELECT vin, ? FROM {name}",
                        (name,),
                    )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open record store {self.path}: {e}", operation="open") from e
        logger.info(f"SQLite record store ready at {self.path}")

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "SQLiteRecordStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def find_by_code(self, code, table):
        name = _table_name(table)
        row = self._fetch_one(f"SELECT * FROM {name} WHERE vin = ?", (code,), "lookup")
        return self._to_record(row) if row else None

    def insert(self, record, table):
        name = _table_name(table)
        record_id = record.id or uuid.uuid4().hex
        values = self._to_row(record)
        columns = ["id"] + _COLUMNS
        sql = f"INSERT INTO {name} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})"
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO vin_registry (vin, storage_table) VALUES (?, ?)",
                    (record.vin, name),
                )
                self._conn.execute(sql, [record_id] + [values[c] for c in _COLUMNS])
        except sqlite3.IntegrityError as e:
            if "vin_registry.vin" in str(e) or f"{name}.vin" in str(e):
                raise DuplicateCodeError(record.vin, self._registered_table(record.vin) or name) from e
            raise StoreError(f"Insert into {name} rejected: {e}", operation="insert") from e
        except sqlite3.Error as e:
            raise StoreError(f"Insert into {name} failed: {e}", operation="insert") from e
        logger.debug(f"Inserted {record.vin} into {name} as {record_id}")
        return record_id

    def update_location_fields(self, record_id, location, table):
        name = _table_name(table)
        changes = {key: self._encode(value) for key, value in location.changes().items()}
        assignments = ", ".join(f"{key} = ?" for key in changes)
        sql = f"UPDATE {name} SET {assignments} WHERE id = ?"
        try:
            with self._lock, self._conn:
                cursor = self._conn.execute(sql, list(changes.values()) + [record_id])
        except sqlite3.Error as e:
            raise StoreError(f"Update of {record_id} in {name} failed: {e}", operation="update") from e
        if cursor.rowcount == 0:
            raise StoreError(f"No record {record_id} in {name}", operation="update")

    def get(self, record_id, table):
        name = _table_name(table)
        row = self._fetch_one(f"SELECT * FROM {name} WHERE id = ?", (record_id,), "get")
        return self._to_record(row) if row else None

    def count(self, table):
        name = _table_name(table)
        row = self._fetch_one(f"SELECT COUNT(*) AS n FROM {name}", (), "count")
        return int(row["n"])

    def _registered_table(self, code: str) -> Optional[str]:
        row = self._fetch_one("SELECT storage_table FROM vin_registry WHERE vin = ?", (code,), "lookup")
        return row["storage_table"] if row else None

    def _fetch_one(self, sql: str, params: tuple, operation: str) -> Optional[sqlite3.Row]:
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"{operation} failed: {e}", operation=operation) from e

    @staticmethod
    def _encode(value: Any) -> Any:
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, bool):
            return int(value)
        return value

    def _to_row(self, record: VehicleRecord) -> Dict[str, Any]:
        return {key: self._encode(getattr(record, key)) for key in _COLUMNS}

    @staticmethod
    def _to_record(row: sqlite3.Row) -> VehicleRecord:
        data = dict(row)
        for key in _DATETIME_COLUMNS:
            if data[key]:
                data[key] = datetime.fromisoformat(data[key])
        if data["arrival_date"]:
            data["arrival_date"] = date.fromisoformat(data["arrival_date"])
        data["in_showroom"] = bool(data["in_showroom"])
        data["pdi_completed"] = bool(data["pdi_completed"])
        return VehicleRecord(**data)
