"""
FIREDESK Incidents - Store Models & Queries

Alerts are written by intake; the coordinator only reads them and moves their
status. Incidents are the station-side operational records derived from an
accepted Alert. Every incident update is conditional on the row version read
by the caller.
"""
import datetime
import sqlite3
import uuid
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ..db import connection, _ts
from ..errors import ConflictError, ValidationError

TS_FORMAT = "%Y-%m-%d %H:%M:%S"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class IncidentStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    DISPATCHED = "dispatched"
    EN_ROUTE = "en_route"
    ON_SCENE = "on_scene"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFERRED = "referred"


TERMINAL_STATUSES = frozenset({
    IncidentStatus.COMPLETED, IncidentStatus.CANCELLED, IncidentStatus.REFERRED,
})

# Statuses that count as live load on a station
LOAD_ALERT_STATUSES = (AlertStatus.ACTIVE.value, AlertStatus.PENDING.value)
LOAD_INCIDENT_STATUSES = (IncidentStatus.ACTIVE.value, IncidentStatus.PENDING.value)


def _parse_ts(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value:
        return None
    try:
        return datetime.datetime.strptime(value, TS_FORMAT)
    except (ValueError, TypeError):
        return None


def _minutes_between(start: Optional[str], end: Optional[str]) -> Optional[float]:
    a, b = _parse_ts(start), _parse_ts(end)
    if a is None or b is None:
        return None
    return round((b - a).total_seconds() / 60.0, 1)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class Alert:
    alert_id: str
    incident_name: str = ""
    incident_type: str = "other"
    priority: Optional[str] = None
    station_id: Optional[str] = None
    status: AlertStatus = AlertStatus.PENDING
    lat: Optional[float] = None
    lng: Optional[float] = None
    location_name: Optional[str] = None
    location_url: Optional[str] = None
    status_reason: Optional[str] = None
    reported_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        self.status = AlertStatus(self.status)

    @property
    def is_open(self) -> bool:
        return self.status.value in LOAD_ALERT_STATUSES

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["status"] = self.status.value
        return d

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Alert":
        return cls(**dict(row))


@dataclass
class NarrativeEntry:
    timestamp: str
    entry_type: str
    text: str
    user: Optional[str] = None


@dataclass
class Incident:
    incident_id: str
    alert_id: Optional[str] = None
    station_id: Optional[str] = None
    department_id: Optional[str] = None
    unit_id: Optional[str] = None
    status: IncidentStatus = IncidentStatus.PENDING
    version: int = 1
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    dispatched_at: Optional[str] = None
    en_route_at: Optional[str] = None
    arrived_at: Optional[str] = None
    closed_at: Optional[str] = None
    # Joined from the originating alert
    priority: Optional[str] = None
    incident_name: Optional[str] = None
    incident_type: Optional[str] = None
    alert_station_id: Optional[str] = None
    narrative: List[NarrativeEntry] = field(default_factory=list)

    def __post_init__(self):
        self.status = IncidentStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def owning_station_id(self) -> Optional[str]:
        return self.station_id or self.alert_station_id

    @property
    def response_time_minutes(self) -> Optional[float]:
        return _minutes_between(self.created_at, self.arrived_at)

    @property
    def resolution_time_minutes(self) -> Optional[float]:
        return _minutes_between(self.arrived_at, self.closed_at)

    @property
    def total_incident_time_minutes(self) -> Optional[float]:
        return _minutes_between(self.created_at, self.closed_at)

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["status"] = self.status.value
        d["response_time_minutes"] = self.response_time_minutes
        d["resolution_time_minutes"] = self.resolution_time_minutes
        d["total_incident_time_minutes"] = self.total_incident_time_minutes
        return d

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Incident":
        return cls(**dict(row))


# ============================================================================
# Repositories
# ============================================================================

_INCIDENT_SELECT = """
    SELECT i.*, a.priority AS priority, a.incident_name AS incident_name,
           a.incident_type AS incident_type, a.station_id AS alert_station_id
    FROM Incidents i
    LEFT JOIN Alerts a ON a.alert_id = i.alert_id
"""


def _in_clause(values: Iterable[str]) -> str:
    return ", ".join("?" for _ in values)


class AlertRepository:
    @staticmethod
    def get(alert_id: str, conn: sqlite3.Connection = None) -> Optional[Alert]:
        with connection(conn) as c:
            row = c.execute("SELECT * FROM Alerts WHERE alert_id = ?", (alert_id,)).fetchone()
        return Alert.from_row(row) if row else None

    @staticmethod
    def find(station_id: str = None, statuses: Iterable[str] = None,
             conn: sqlite3.Connection = None) -> List[Alert]:
        conditions, params = [], []
        if station_id is not None:
            conditions.append("station_id = ?")
            params.append(station_id)
        if statuses:
            statuses = [getattr(s, "value", s) for s in statuses]
            conditions.append(f"status IN ({_in_clause(statuses)})")
            params.extend(statuses)
        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        with connection(conn) as c:
            rows = c.execute(f"SELECT * FROM Alerts{where} ORDER BY reported_at, rowid",
                             params).fetchall()
        return [Alert.from_row(r) for r in rows]

    @staticmethod
    def record(alert: Alert, conn: sqlite3.Connection = None) -> Alert:
        """Intake-side insert. The coordinator never calls this itself."""
        ts = _ts()
        alert.reported_at = alert.reported_at or ts
        alert.updated_at = ts
        with connection(conn) as c:
            c.execute("""
                INSERT INTO Alerts (alert_id, incident_type, incident_name, lat, lng, location_name,
                                    location_url, priority, station_id, status, reported_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (alert.alert_id, alert.incident_type, alert.incident_name, alert.lat, alert.lng,
                  alert.location_name, alert.location_url, alert.priority, alert.station_id,
                  alert.status.value, alert.reported_at, alert.updated_at))
            if conn is None:
                c.commit()
        return alert

    @staticmethod
    def transition(conn: sqlite3.Connection, alert_id: str, from_statuses: Iterable[str],
                   to_status: AlertStatus, reason: str = None, station_id: str = None) -> None:
        """
        Conditional status move. Optionally re-attributes the alert to another
        station in the same statement. Raises ConflictError if the alert is no
        longer in one of from_statuses.
        """
        from_statuses = [getattr(s, "value", s) for s in from_statuses]
        sets = ["status = ?", "updated_at = ?"]
        params = [AlertStatus(to_status).value, _ts()]
        if reason is not None:
            sets.append("status_reason = ?")
            params.append(reason)
        if station_id is not None:
            sets.append("station_id = ?")
            params.append(station_id)
        params.append(alert_id)
        params.extend(from_statuses)
        cur = conn.execute(
            f"UPDATE Alerts SET {', '.join(sets)} WHERE alert_id = ? "
            f"AND status IN ({_in_clause(from_statuses)})",
            params,
        )
        if cur.rowcount != 1:
            raise ConflictError(f"Alert {alert_id} changed since it was read; reload and retry.")


class IncidentRepository:
    @staticmethod
    def get(incident_id: str, conn: sqlite3.Connection = None,
            with_narrative: bool = False) -> Optional[Incident]:
        with connection(conn) as c:
            row = c.execute(_INCIDENT_SELECT + " WHERE i.incident_id = ?", (incident_id,)).fetchone()
            if not row:
                return None
            incident = Incident.from_row(row)
            if with_narrative:
                incident.narrative = NarrativeRepository.for_incident(incident_id, c)
        return incident

    @staticmethod
    def find(station_id: str = None, statuses: Iterable[str] = None,
             conn: sqlite3.Connection = None) -> List[Incident]:
        """Incidents in creation order, optionally scoped to a station and statuses."""
        conditions, params = [], []
        if station_id is not None:
            conditions.append("COALESCE(i.station_id, a.station_id) = ?")
            params.append(station_id)
        if statuses:
            statuses = [getattr(s, "value", s) for s in statuses]
            conditions.append(f"i.status IN ({_in_clause(statuses)})")
            params.extend(statuses)
        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        with connection(conn) as c:
            rows = c.execute(_INCIDENT_SELECT + where + " ORDER BY i.created_at, i.rowid",
                             params).fetchall()
        return [Incident.from_row(r) for r in rows]

    @staticmethod
    def create(conn: sqlite3.Connection, alert_id: str, station_id: str, department_id: str,
               unit_id: Optional[str], status: IncidentStatus = IncidentStatus.PENDING) -> str:
        """Every incident derives from an alert; the referral hand-off moves that alert."""
        if not alert_id:
            raise ValidationError.single("alert_id", "AlertRequired",
                                         "An incident must be created from an alert.")
        incident_id = uuid.uuid4().hex
        ts = _ts()
        conn.execute("""
            INSERT INTO Incidents (incident_id, alert_id, station_id, department_id, unit_id,
                                   status, version, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?)
        """, (incident_id, alert_id, station_id, department_id, unit_id,
              IncidentStatus(status).value, ts, ts))
        return incident_id

    @staticmethod
    def update_status(conn: sqlite3.Connection, incident: Incident, to_status: IncidentStatus,
                      stamp_field: str = None) -> str:
        """
        Move the incident to to_status if its row still carries the version the
        caller read. Returns the timestamp written.
        """
        ts = _ts()
        sets = ["status = ?", "updated_at = ?", "version = version + 1"]
        params = [IncidentStatus(to_status).value, ts]
        if stamp_field:
            sets.append(f"{stamp_field} = ?")
            params.append(ts)
        params.extend([incident.incident_id, incident.version])
        cur = conn.execute(
            f"UPDATE Incidents SET {', '.join(sets)} WHERE incident_id = ? AND version = ?",
            params,
        )
        if cur.rowcount != 1:
            raise ConflictError(
                f"Incident {incident.incident_id} was modified concurrently; reload and retry."
            )
        return ts


class NarrativeRepository:
    @staticmethod
    def add(conn: sqlite3.Connection, incident_id: str, entry_type: str, text: str,
            user: str = None) -> None:
        conn.execute(
            "INSERT INTO Narrative (incident_id, timestamp, entry_type, text, user) VALUES (?,?,?,?,?)",
            (incident_id, _ts(), entry_type, text, user or "UNKNOWN_DISPATCHER"),
        )

    @staticmethod
    def for_incident(incident_id: str, conn: sqlite3.Connection = None) -> List[NarrativeEntry]:
        with connection(conn) as c:
            rows = c.execute(
                "SELECT timestamp, entry_type, text, user FROM Narrative WHERE incident_id = ? ORDER BY id",
                (incident_id,),
            ).fetchall()
        return [NarrativeEntry(**dict(r)) for r in rows]


class HistoryRepository:
    @staticmethod
    def add(conn: sqlite3.Connection, incident_id: str, event_type: str, from_status: str = None,
            to_status: str = None, user: str = None, details: str = None) -> None:
        conn.execute("""
            INSERT INTO IncidentHistory (incident_id, timestamp, user, event_type, from_status, to_status, details)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (incident_id, _ts(), user or "UNKNOWN_DISPATCHER", event_type, from_status, to_status, details))

    @staticmethod
    def for_incident(incident_id: str, conn: sqlite3.Connection = None) -> List[Dict]:
        with connection(conn) as c:
            rows = c.execute("SELECT * FROM IncidentHistory WHERE incident_id = ? ORDER BY id",
                             (incident_id,)).fetchall()
        return [dict(r) for r in rows]
