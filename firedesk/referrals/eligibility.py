"""
FIREDESK Referrals - Destination Eligibility

check_referral_eligibility() is a pure function of a station and the alert
and incident rows handed to it. The store-backed helpers below feed it fresh
rows on every call; station load is never cached.
"""
import sqlite3
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Tuple

from ..db import connection
from ..directory import Station, StationRepository
from ..errors import NotFound
from ..incidents.models import (
    Alert, Incident, AlertRepository, IncidentRepository,
    LOAD_ALERT_STATUSES, LOAD_INCIDENT_STATUSES,
)


@dataclass
class StationLoad:
    station_id: str
    active_alerts: int = 0
    active_incidents: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


def _status_value(status) -> str:
    return getattr(status, "value", status)


def count_load(station_id: str, alerts: Iterable[Alert],
               incidents: Iterable[Incident]) -> StationLoad:
    """Count open alerts and live incidents attributed to station_id."""
    n_alerts = sum(
        1 for a in alerts
        if a.station_id == station_id and _status_value(a.status) in LOAD_ALERT_STATUSES
    )
    n_incidents = sum(
        1 for i in incidents
        if i.owning_station_id == station_id and _status_value(i.status) in LOAD_INCIDENT_STATUSES
    )
    return StationLoad(station_id, n_alerts, n_incidents)


def check_referral_eligibility(station: Station, alerts: Iterable[Alert],
                               incidents: Iterable[Incident]) -> Tuple[bool, str]:
    """
    Decide whether `station` may receive a referral. First failing rule wins:
    out of commission, then open alerts, then live incidents.
    """
    if not station.in_commission:
        return False, "Station is out of commission."
    load = count_load(station.station_id, alerts, incidents)
    if load.active_alerts > 0:
        return False, f"Station has {load.active_alerts} active alert(s)."
    if load.active_incidents > 0:
        return False, f"Station has {load.active_incidents} active incident(s)."
    return True, ""


# --- Store-backed helpers ---

def load_rows(station_id: str, conn: sqlite3.Connection = None) -> Tuple[List[Alert], List[Incident]]:
    with connection(conn) as c:
        alerts = AlertRepository.find(station_id, LOAD_ALERT_STATUSES, c)
        incidents = IncidentRepository.find(station_id, LOAD_INCIDENT_STATUSES, c)
    return alerts, incidents


def station_load(station_id: str, conn: sqlite3.Connection = None) -> StationLoad:
    alerts, incidents = load_rows(station_id, conn)
    return count_load(station_id, alerts, incidents)


def evaluate_station(station_id: str, conn: sqlite3.Connection = None,
                     station: Optional[Station] = None) -> Tuple[bool, str]:
    """Run the eligibility check for a stored station against current rows."""
    with connection(conn) as c:
        station = station or StationRepository.get(station_id, c)
        if station is None:
            raise NotFound("station", station_id)
        alerts, incidents = load_rows(station_id, c)
    return check_referral_eligibility(station, alerts, incidents)


def eligible_destinations(from_station_id: str, conn: sqlite3.Connection = None) -> List[Dict]:
    """Every station except the source, annotated for the referral picker."""
    results = []
    with connection(conn) as c:
        for station in StationRepository.get_all(c):
            if station.station_id == from_station_id:
                continue
            eligible, reason = evaluate_station(station.station_id, c, station)
            results.append({"station": station.to_dict(), "eligible": eligible, "reason": reason})
    return results
