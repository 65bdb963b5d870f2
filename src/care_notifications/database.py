"""SQLite connection manager for the facility and notification databases."""
import sqlite3
from contextlib import contextmanager
from typing import Generator
import logging

from .config import get_settings

log = logging.getLogger(__name__)

# Tables the facility dashboard writes; the engine only ever reads them
FACILITY_SCHEMA = """
CREATE TABLE IF NOT EXISTS residents (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    name TEXT NOT NULL,
    health_status TEXT NOT NULL DEFAULT 'stable'
);
CREATE TABLE IF NOT EXISTS medications (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    resident_id TEXT NOT NULL,
    name TEXT NOT NULL,
    status TEXT NOT NULL,
    end_date TEXT
);
CREATE TABLE IF NOT EXISTS intercurrences (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    resident_id TEXT NOT NULL,
    description TEXT NOT NULL,
    severity TEXT NOT NULL,
    occurred_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS vital_signs (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    resident_id TEXT NOT NULL,
    systolic_pressure REAL,
    oxygen_saturation REAL,
    temperature REAL,
    heart_rate REAL,
    recorded_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS elimination_records (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    resident_id TEXT NOT NULL,
    type TEXT,
    recorded_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS family_messages (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    resident_id TEXT,
    sender TEXT NOT NULL,
    message TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'general',
    date TEXT NOT NULL,
    read INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS monthly_fees (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    resident_id TEXT,
    amount REAL NOT NULL,
    late_fee REAL NOT NULL DEFAULT 0,
    due_date TEXT,
    status TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS accounts_payable (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    description TEXT,
    amount REAL NOT NULL,
    due_date TEXT,
    status TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS accounts_receivable (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    description TEXT,
    amount REAL NOT NULL,
    due_date TEXT,
    status TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS caregivers (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    name TEXT,
    status TEXT NOT NULL
);
"""


def create_facility_schema(conn: sqlite3.Connection) -> None:
    """Create the facility tables on a writable connection."""
    conn.executescript(FACILITY_SCHEMA)
    conn.commit()


class DatabaseManager:
    """
    SQLite database manager for the notification engine.
    The facility database is opened read-only; the notification database is
    the only one the engine writes to.
    """

    def __init__(self, settings=None, facility_db_path=None, alert_db_path=None):
        self.settings = settings or get_settings()
        self.facility_db_path = facility_db_path or self.settings.facility_db_path
        self.alert_db_path = alert_db_path or self.settings.alert_db_path

    @contextmanager
    def get_facility_conn(self) -> Generator[sqlite3.Connection, None, None]:
        """Get read-only connection to the facility database."""
        yield from self._connect(self.facility_db_path, read_only=True)

    @contextmanager
    def get_alert_conn(self) -> Generator[sqlite3.Connection, None, None]:
        """Get read-write connection to the notification database."""
        yield from self._connect(self.alert_db_path, read_only=False)

    def _connect(self, db_path: str, read_only: bool) -> Generator[sqlite3.Connection, None, None]:
        """
        Open a connection per unit of work.
        Read-only connections use URI mode with mode=ro.
        """
        mode = "ro" if read_only else "rwc"
        uri = f"file:{db_path}?mode={mode}"
        conn = sqlite3.connect(uri, uri=True, check_same_thread=False, timeout=10.0)
        conn.row_factory = sqlite3.Row  # Enable dict-like row access
        try:
            yield conn
        finally:
            conn.close()
