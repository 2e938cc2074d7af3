"""
FIREDESK - sqlite Connection, Schema & Transactions

Additive schema only: tables are created if missing, never dropped.
"""
import datetime
import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from .config import get_config
from .errors import ConflictError

logger = logging.getLogger(__name__)


def get_conn() -> sqlite3.Connection:
    conn = sqlite3.connect(
        get_config("db_path"),
        timeout=get_config("db_timeout_seconds", 30),
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _ts() -> str:
    # Server time is authoritative
    return datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """
    Open a write transaction that holds the database write lock from the
    first statement (BEGIN IMMEDIATE). Reads done inside it see the latest
    committed state and no other writer can interleave before commit.
    """
    conn = get_conn()
    conn.isolation_level = None
    try:
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.OperationalError as e:
            raise ConflictError(f"Store is busy, retry the operation ({e}).") from e
        try:
            yield conn
            conn.execute("COMMIT")
        except sqlite3.OperationalError as e:
            conn.execute("ROLLBACK")
            raise ConflictError(f"Store write failed, retry the operation ({e}).") from e
        except BaseException:
            conn.execute("ROLLBACK")
            raise
    finally:
        conn.close()


@contextmanager
def connection(conn: sqlite3.Connection = None) -> Iterator[sqlite3.Connection]:
    """Reuse a caller's connection (inside a transaction) or open a short-lived one."""
    if conn is not None:
        yield conn
        return
    own = get_conn()
    try:
        yield own
    finally:
        own.close()


SCHEMA_SQL = """
-- Reference directory -------------------------------------------------------
CREATE TABLE IF NOT EXISTS Stations (
    station_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    call_sign TEXT,
    status TEXT NOT NULL DEFAULT 'in_commission',
    lat REAL,
    lng REAL,
    location TEXT,
    phone_number TEXT
);

CREATE TABLE IF NOT EXISTS Departments (
    department_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    station_id TEXT NOT NULL REFERENCES Stations(station_id)
);

CREATE TABLE IF NOT EXISTS Units (
    unit_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    department_id TEXT NOT NULL REFERENCES Departments(department_id),
    is_active INTEGER DEFAULT 1
);

-- Incident store ------------------------------------------------------------
CREATE TABLE IF NOT EXISTS Alerts (
    alert_id TEXT PRIMARY KEY,
    incident_type TEXT DEFAULT 'other',
    incident_name TEXT,
    lat REAL,
    lng REAL,
    location_name TEXT,
    location_url TEXT,
    priority TEXT,
    station_id TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    status_reason TEXT,
    reported_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS Incidents (
    incident_id TEXT PRIMARY KEY,
    alert_id TEXT NOT NULL REFERENCES Alerts(alert_id),
    station_id TEXT,
    department_id TEXT,
    unit_id TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    version INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    dispatched_at TEXT,
    en_route_at TEXT,
    arrived_at TEXT,
    closed_at TEXT
);

CREATE TABLE IF NOT EXISTS Narrative (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    incident_id TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    entry_type TEXT,
    text TEXT NOT NULL,
    user TEXT
);

CREATE TABLE IF NOT EXISTS IncidentHistory (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    incident_id TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    user TEXT,
    event_type TEXT NOT NULL,
    from_status TEXT,
    to_status TEXT,
    details TEXT
);

CREATE TABLE IF NOT EXISTS Referrals (
    referral_id TEXT PRIMARY KEY,
    data_type TEXT NOT NULL,
    data_id TEXT NOT NULL,
    alert_id TEXT,
    from_station_id TEXT NOT NULL,
    to_station_id TEXT NOT NULL,
    reason TEXT NOT NULL,
    created_at TEXT NOT NULL,
    created_by TEXT
);

CREATE INDEX IF NOT EXISTS idx_alerts_station ON Alerts (station_id, status);
CREATE INDEX IF NOT EXISTS idx_incidents_station ON Incidents (station_id, status);
CREATE INDEX IF NOT EXISTS idx_narrative_incident ON Narrative (incident_id);
CREATE INDEX IF NOT EXISTS idx_history_incident ON IncidentHistory (incident_id);
CREATE INDEX IF NOT EXISTS idx_referrals_to ON Referrals (to_station_id);
CREATE INDEX IF NOT EXISTS idx_referrals_from ON Referrals (from_station_id);
"""


def init_schema():
    """Create coordinator tables if they don't exist."""
    conn = get_conn()
    conn.executescript(SCHEMA_SQL)
    conn.commit()
    conn.close()
    logger.info(f"[DB] schema ready at {get_config('db_path')}")
