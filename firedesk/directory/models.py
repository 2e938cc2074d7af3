"""
FIREDESK Reference Directory - Stations, Departments & Units

Read-only from the coordinator's perspective. Stations own Departments own
Units; a Unit's effective station is its Department's station.
"""
import sqlite3
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ..db import connection, transaction


class CommissionStatus(str, Enum):
    IN_COMMISSION = "in_commission"
    OUT_OF_COMMISSION = "out_of_commission"


@dataclass
class Station:
    station_id: str
    name: str
    call_sign: str = ""
    status: CommissionStatus = CommissionStatus.IN_COMMISSION
    lat: Optional[float] = None
    lng: Optional[float] = None
    location: Optional[str] = None
    phone_number: Optional[str] = None

    def __post_init__(self):
        self.status = CommissionStatus(self.status)

    @property
    def in_commission(self) -> bool:
        return self.status == CommissionStatus.IN_COMMISSION

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["status"] = self.status.value
        return d

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Station":
        return cls(**dict(row))


@dataclass
class Department:
    department_id: str
    name: str
    station_id: str

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Department":
        return cls(**dict(row))


@dataclass
class Unit:
    unit_id: str
    name: str
    department_id: str
    is_active: bool = True

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Unit":
        d = dict(row)
        d["is_active"] = bool(d.get("is_active", 1))
        return cls(**d)


@dataclass
class DirectorySnapshot:
    """Point-in-time copy of the reference tree, keyed by id."""
    stations: Dict[str, Station] = field(default_factory=dict)
    departments: Dict[str, Department] = field(default_factory=dict)
    units: Dict[str, Unit] = field(default_factory=dict)

    @classmethod
    def build(cls, stations: Iterable[Station] = (), departments: Iterable[Department] = (),
              units: Iterable[Unit] = ()) -> "DirectorySnapshot":
        return cls(
            stations={s.station_id: s for s in stations},
            departments={d.department_id: d for d in departments},
            units={u.unit_id: u for u in units},
        )

    def station(self, station_id: str) -> Optional[Station]:
        return self.stations.get(station_id)

    def department(self, department_id: str) -> Optional[Department]:
        return self.departments.get(department_id)

    def unit(self, unit_id: str) -> Optional[Unit]:
        return self.units.get(unit_id)

    def departments_for_station(self, station_id: str) -> List[Department]:
        return [d for d in self.departments.values() if d.station_id == station_id]

    def units_for_department(self, department_id: str) -> List[Unit]:
        return [u for u in self.units.values() if u.department_id == department_id]


# --- Queries ---

class StationRepository:
    @staticmethod
    def get(station_id: str, conn: sqlite3.Connection = None) -> Optional[Station]:
        with connection(conn) as c:
            row = c.execute("SELECT * FROM Stations WHERE station_id = ?", (station_id,)).fetchone()
        return Station.from_row(row) if row else None

    @staticmethod
    def get_all(conn: sqlite3.Connection = None) -> List[Station]:
        with connection(conn) as c:
            rows = c.execute("SELECT * FROM Stations ORDER BY name, station_id").fetchall()
        return [Station.from_row(r) for r in rows]


def load_snapshot(conn: sqlite3.Connection = None) -> DirectorySnapshot:
    """Read the whole directory tree in one pass."""
    with connection(conn) as c:
        stations = [Station.from_row(r) for r in c.execute("SELECT * FROM Stations").fetchall()]
        departments = [Department.from_row(r) for r in c.execute("SELECT * FROM Departments").fetchall()]
        units = [Unit.from_row(r) for r in c.execute("SELECT * FROM Units").fetchall()]
    return DirectorySnapshot.build(stations, departments, units)


def load_directory(stations: Iterable[Station] = (), departments: Iterable[Department] = (),
                   units: Iterable[Unit] = ()) -> None:
    """Upsert reference records (imports and fixtures). Parents first."""
    with transaction() as conn:
        for s in stations:
            conn.execute("""
                INSERT INTO Stations (station_id, name, call_sign, status, lat, lng, location, phone_number)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(station_id) DO UPDATE SET
                    name = excluded.name, call_sign = excluded.call_sign, status = excluded.status,
                    lat = excluded.lat, lng = excluded.lng, location = excluded.location,
                    phone_number = excluded.phone_number
            """, (s.station_id, s.name, s.call_sign, CommissionStatus(s.status).value,
                  s.lat, s.lng, s.location, s.phone_number))
        for d in departments:
            conn.execute("""
                INSERT INTO Departments (department_id, name, station_id) VALUES (?, ?, ?)
                ON CONFLICT(department_id) DO UPDATE SET name = excluded.name
            """, (d.department_id, d.name, d.station_id))
        for u in units:
            conn.execute("""
                INSERT INTO Units (unit_id, name, department_id, is_active) VALUES (?, ?, ?, ?)
                ON CONFLICT(unit_id) DO UPDATE SET name = excluded.name, is_active = excluded.is_active
            """, (u.unit_id, u.name, u.department_id, 1 if u.is_active else 0))


def set_commission_status(station_id: str, status: CommissionStatus) -> None:
    """Directory-side status change (station taken in or out of service)."""
    with transaction() as conn:
        conn.execute("UPDATE Stations SET status = ? WHERE station_id = ?",
                     (CommissionStatus(status).value, station_id))
