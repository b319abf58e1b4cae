"""
Database access layer for the maintenance validation service.

Accepted maintenance records live in a single SQLite table.  Records are
append-only: there is no update or delete path, and saving a record whose
id is already stored leaves the stored row untouched.  Connections are
opened per call so the functions are safe to use from FastAPI's worker
threads.

The module also owns the per-equipment lock registry used to make the
"read history, validate, write" sequence atomic for one equipment id.
"""
import logging
import sqlite3
import threading
import time
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from typing import Dict, Iterator, List, Optional

import config
from models import MaintenanceRecord

logger = logging.getLogger(__name__)


class _LockEntry:
    """A per-equipment lock and the number of callers holding or waiting on it."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


_equipment_locks: Dict[uuid.UUID, _LockEntry] = {}
_registry_lock = threading.Lock()


def get_connection(db_path: str = config.DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection that is safe for multi-threaded FastAPI use."""
    conn = sqlite3.connect(db_path, timeout=10, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def safe_commit(conn: sqlite3.Connection, retries: int = 5, delay: float = 0.5) -> None:
    """Retry commits if the database is locked."""
    for attempt in range(retries):
        try:
            conn.commit()
            return
        except sqlite3.OperationalError as e:
            if "database is locked" not in str(e).lower():
                raise
            logger.warning("Database locked on commit (attempt %d/%d)", attempt + 1, retries)
            time.sleep(delay)
    raise sqlite3.OperationalError("Database remained locked after multiple retries")


def init_db(db_path: str = config.DB_PATH) -> None:
    """Create the maintenance table if it does not exist.  Safe to call on every start-up."""
    conn = get_connection(db_path)
    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS maintenance (
                id TEXT PRIMARY KEY,
                equipment_id TEXT NOT NULL,
                equipment_name TEXT NOT NULL,
                maintenance_date TEXT NOT NULL,
                maintenance_type TEXT NOT NULL,
                description TEXT NOT NULL,
                user_id TEXT NOT NULL,
                user_name TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_maintenance_equipment ON maintenance (equipment_id);"
        )
        safe_commit(conn)
    finally:
        conn.close()


def _row_to_record(row: sqlite3.Row) -> MaintenanceRecord:
    return MaintenanceRecord(
        id=uuid.UUID(row["id"]),
        equipment_id=uuid.UUID(row["equipment_id"]),
        equipment_name=row["equipment_name"],
        maintenance_date=datetime.fromisoformat(row["maintenance_date"]),
        maintenance_type=row["maintenance_type"],
        description=row["description"],
        user_id=uuid.UUID(row["user_id"]),
        user_name=row["user_name"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def save_maintenance(record: MaintenanceRecord, db_path: str = config.DB_PATH) -> MaintenanceRecord:
    """Persist an accepted record and return it.

    Saving the same record twice is a no-op; an existing row is never
    overwritten.
    """
    conn = get_connection(db_path)
    try:
        conn.execute(
            """
            INSERT OR IGNORE INTO maintenance (
                id, equipment_id, equipment_name, maintenance_date, maintenance_type,
                description, user_id, user_name, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(record.id),
                str(record.equipment_id),
                record.equipment_name,
                record.maintenance_date.isoformat(),
                record.maintenance_type,
                record.description,
                str(record.user_id),
                record.user_name,
                record.created_at.isoformat(),
            ),
        )
        safe_commit(conn)
    finally:
        conn.close()
    return record


def fetch_maintenance(
    db_path: str = config.DB_PATH,
    equipment_id: Optional[uuid.UUID] = None,
    maintenance_type: Optional[str] = None,
    on_date: Optional[date] = None,
) -> List[MaintenanceRecord]:
    """Return stored records, newest created first.

    The optional arguments narrow the result to one equipment id, one
    (normalised) maintenance type or one calendar day.
    """
    clauses = []
    params: list = []
    if equipment_id is not None:
        clauses.append("equipment_id = ?")
        params.append(str(equipment_id))
    if maintenance_type:
        clauses.append("maintenance_type = ?")
        params.append(maintenance_type.strip().lower())
    if on_date is not None:
        clauses.append("substr(maintenance_date, 1, 10) = ?")
        params.append(on_date.isoformat())

    sql = "SELECT * FROM maintenance"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    # rowid breaks ties between records created in the same instant
    sql += " ORDER BY created_at DESC, rowid DESC"

    conn = get_connection(db_path)
    try:
        rows = conn.execute(sql, params).fetchall()
    finally:
        conn.close()
    return [_row_to_record(row) for row in rows]


def fetch_maintenance_by_id(record_id: uuid.UUID, db_path: str = config.DB_PATH) -> Optional[MaintenanceRecord]:
    conn = get_connection(db_path)
    try:
        row = conn.execute("SELECT * FROM maintenance WHERE id = ?", (str(record_id),)).fetchone()
    finally:
        conn.close()
    return _row_to_record(row) if row is not None else None


@contextmanager
def equipment_lock(equipment_id: uuid.UUID) -> Iterator[None]:
    """Hold the lock for ``equipment_id`` for the duration of the block.

    Locks are process-local; submissions for different equipment never wait
    on each other.  A registry entry lives only while some caller holds or
    waits on it.
    """
    with _registry_lock:
        entry = _equipment_locks.get(equipment_id)
        if entry is None:
            entry = _equipment_locks[equipment_id] = _LockEntry()
        entry.holders += 1
    try:
        with entry.lock:
            yield
    finally:
        with _registry_lock:
            entry.holders -= 1
            if entry.holders == 0:
                del _equipment_locks[equipment_id]
