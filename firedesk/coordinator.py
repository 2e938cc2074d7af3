"""
FIREDESK - Dispatch Coordinator

Library surface over ranking, lifecycle, referrals and scoping. The
coordinator holds no state of its own: every query reads committed rows and
every command returns only after its transaction has committed.
"""
import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .directory import DirectorySnapshot, Department, StationRepository, Unit, load_snapshot
from .errors import FieldError, NotFound
from .incidents import lifecycle, ranking
from .incidents.models import (
    Alert, Incident, IncidentStatus, TERMINAL_STATUSES, HistoryRepository, IncidentRepository,
)
from .referrals import eligibility, engine
from .referrals.models import Referral, ReferralRepository
from .scoping import validator

logger = logging.getLogger(__name__)

LIVE_STATUSES = tuple(s.value for s in IncidentStatus if s not in TERMINAL_STATUSES)


class DispatchCoordinator:
    """Incident dispatch and referral coordination."""

    def __init__(self, snapshot_loader: Callable[[], DirectorySnapshot] = load_snapshot):
        self._snapshot_loader = snapshot_loader

    # --- Ranking ---

    def rank_incidents(self, incidents: Iterable[Incident]) -> List[Incident]:
        return ranking.rank_incidents(incidents)

    def compute_most_urgent(self, incidents: Sequence[Incident]) -> Optional[Incident]:
        return ranking.compute_most_urgent(incidents)

    def ranked_for_station(self, station_id: Optional[str] = None) -> List[Incident]:
        """Live incidents in the station's scope (all stations when None), ranked."""
        return ranking.rank_incidents(IncidentRepository.find(station_id, LIVE_STATUSES))

    def most_urgent_for_station(self, station_id: Optional[str] = None) -> Optional[Incident]:
        return ranking.compute_most_urgent(IncidentRepository.find(station_id, LIVE_STATUSES))

    def get_incident(self, incident_id: str) -> Incident:
        incident = IncidentRepository.get(incident_id, with_narrative=True)
        if incident is None:
            raise NotFound("incident", incident_id)
        return incident

    def incident_history(self, incident_id: str) -> List[Dict]:
        return HistoryRepository.for_incident(incident_id)

    # --- Lifecycle ---

    def dispatch(self, incident_id: str, user: Optional[str] = None) -> Incident:
        return lifecycle.dispatch(incident_id, user)

    def close(self, incident_id: str, reason: str, user: Optional[str] = None) -> Incident:
        return lifecycle.close(incident_id, reason, user)

    def cancel(self, incident_id: str, reason: str, user: Optional[str] = None) -> Incident:
        return lifecycle.cancel(incident_id, reason, user)

    def advance_to_en_route(self, incident_id: str, user: Optional[str] = None) -> Incident:
        return lifecycle.advance_to_en_route(incident_id, user)

    def advance_to_on_scene(self, incident_id: str, user: Optional[str] = None) -> Incident:
        return lifecycle.advance_to_on_scene(incident_id, user)

    def accept_alert(self, alert_id: str, station_id: str, department_id: Optional[str],
                     unit_id: Optional[str] = None, user: Optional[str] = None) -> Incident:
        return lifecycle.accept_alert(alert_id, station_id, department_id, unit_id, user)

    def reject_alert(self, alert_id: str, reason: str, station_id: Optional[str] = None,
                     user: Optional[str] = None) -> Alert:
        return lifecycle.reject_alert(alert_id, reason, station_id, user)

    # --- Referrals ---

    def check_referral_eligibility(self, station_id: str, alerts: Iterable[Alert] = None,
                                   incidents: Iterable[Incident] = None) -> Tuple[bool, str]:
        """
        Eligibility of a stored station. Rows not supplied by the caller are
        read from the store at call time.
        """
        station = StationRepository.get(station_id)
        if station is None:
            raise NotFound("station", station_id)
        if alerts is None or incidents is None:
            stored_alerts, stored_incidents = eligibility.load_rows(station_id)
            alerts = stored_alerts if alerts is None else alerts
            incidents = stored_incidents if incidents is None else incidents
        return eligibility.check_referral_eligibility(station, alerts, incidents)

    def station_load(self, station_id: str) -> eligibility.StationLoad:
        return eligibility.station_load(station_id)

    def eligible_destinations(self, from_station_id: str) -> List[Dict]:
        return eligibility.eligible_destinations(from_station_id)

    def refer(self, incident_id: str, from_station_id: Optional[str], to_station_id: str,
              reason: str, user: Optional[str] = None) -> Referral:
        return engine.refer_incident(incident_id, from_station_id, to_station_id, reason, user)

    def refer_alert(self, alert_id: str, from_station_id: Optional[str], to_station_id: str,
                    reason: str, user: Optional[str] = None) -> Referral:
        return engine.refer_alert(alert_id, from_station_id, to_station_id, reason, user)

    def list_referrals(self, station_id: str, direction: str = "all") -> List[Referral]:
        return ReferralRepository.for_station(station_id, direction)

    # --- Scoping ---

    def validate_assignment(self, station_id: Optional[str], department_id: Optional[str],
                            unit_id: Optional[str]) -> List[FieldError]:
        return validator.validate_assignment(self._snapshot_loader(), station_id, department_id, unit_id)

    def selectable_departments(self, station_id: str) -> List[Department]:
        return validator.selectable_departments(self._snapshot_loader(), station_id)

    def selectable_units(self, department_id: str) -> List[Unit]:
        return validator.selectable_units(self._snapshot_loader(), department_id)
