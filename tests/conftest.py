"""
FIREDESK - Test Infrastructure (conftest.py)
=============================================
Provides:
  - Per-test sqlite database (config patched to a temp path)
  - Deterministic reference directory (stations, departments, units)
  - Alert/Incident factory for store-backed tests
  - FastAPI TestClient
  - DB assertion helpers
"""

import os
import sys
import pytest

# Ensure project root is on path
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT_DIR)

from firedesk import config
from firedesk.db import get_conn, init_schema, transaction
from firedesk.directory import Station, Department, Unit, DirectorySnapshot, load_directory
from firedesk.eventstream import init_eventstream_schema
from firedesk.incidents.models import (
    Alert, AlertStatus, IncidentStatus, AlertRepository, IncidentRepository,
)


# ============================================================================
# Reference directory seed
# ============================================================================
# ST1 Central  : D1 Engine Company (units U1, U2), D2 Fire Prevention (no units)
# ST2 North    : D3 Rescue (unit U3)
# ST3 South    : out of commission, D5 Reserve (no units)
# ST4 East     : D4 Medical (no units)

STATIONS = [
    Station("ST1", "Central", "CEN", "in_commission", 5.60, -0.19, "Ring Road", "0300000001"),
    Station("ST2", "North", "NOR", "in_commission"),
    Station("ST3", "South", "SOU", "out_of_commission"),
    Station("ST4", "East", "EAS", "in_commission"),
]

DEPARTMENTS = [
    Department("D1", "Engine Company", "ST1"),
    Department("D2", "Fire Prevention", "ST1"),
    Department("D3", "Rescue", "ST2"),
    Department("D4", "Medical", "ST4"),
    Department("D5", "Reserve", "ST3"),
]

UNITS = [
    Unit("U1", "Engine 1", "D1"),
    Unit("U2", "Engine 2", "D1"),
    Unit("U3", "Rescue 1", "D3"),
]


def seed_snapshot() -> DirectorySnapshot:
    return DirectorySnapshot.build(STATIONS, DEPARTMENTS, UNITS)


# ============================================================================
# DB helpers
# ============================================================================

def db_query(sql, params=()):
    """Run a read query against the test DB, return list of dicts."""
    conn = get_conn()
    rows = conn.execute(sql, params).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def db_count(table, where="1=1", params=()):
    """Count rows in a table matching a condition."""
    conn = get_conn()
    row = conn.execute(f"SELECT COUNT(*) AS n FROM {table} WHERE {where}", params).fetchone()
    conn.close()
    return row["n"]


class StoreFactory:
    """Creates alerts and incidents the way intake and acceptance would."""

    def __init__(self):
        self._seq = 0

    def _next(self, prefix):
        self._seq += 1
        return f"{prefix}{self._seq:03d}"

    def alert(self, station_id="ST1", priority="medium", status=AlertStatus.ACTIVE,
              incident_type="fire", alert_id=None):
        alert_id = alert_id or self._next("A")
        return AlertRepository.record(Alert(
            alert_id=alert_id,
            incident_name=f"Reported {incident_type} {alert_id}",
            incident_type=incident_type,
            priority=priority,
            station_id=station_id,
            status=status,
            location_name="Kaneshie Market",
        ))

    def incident(self, station_id="ST1", priority="medium", status=IncidentStatus.PENDING,
                 department_id="D1", unit_id="U1"):
        alert = self.alert(station_id, priority, status=AlertStatus.ACCEPTED)
        with transaction() as conn:
            incident_id = IncidentRepository.create(
                conn, alert.alert_id, station_id, department_id, unit_id, status,
            )
        return IncidentRepository.get(incident_id)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def test_db(tmp_path, monkeypatch):
    """Fresh database per test."""
    db_path = str(tmp_path / "firedesk_test.db")
    monkeypatch.setitem(config.CONFIG, "db_path", db_path)
    init_schema()
    init_eventstream_schema()
    return db_path


@pytest.fixture
def directory(test_db):
    """Seed the reference directory."""
    load_directory(STATIONS, DEPARTMENTS, UNITS)
    return seed_snapshot()


@pytest.fixture
def snapshot():
    """In-memory directory snapshot for pure validator tests."""
    return seed_snapshot()


@pytest.fixture
def factory(directory):
    return StoreFactory()


@pytest.fixture
def coordinator(directory):
    from firedesk import DispatchCoordinator
    return DispatchCoordinator()


@pytest.fixture
def client(directory):
    """FastAPI TestClient bound to the per-test database."""
    from starlette.testclient import TestClient
    import main
    with TestClient(main.app) as c:
        yield c
