"""
FIREDESK Incidents - Lifecycle Engine

Validates and applies status transitions for station incidents:

    pending|active -> dispatched -> en_route -> on_scene
    any non-terminal -> completed (close) | cancelled (cancel)

Referral is the third way out of the live states and lives in
firedesk.referrals.engine. Every command validates its input before touching
the store, runs under the incident's lock, and writes the status, narrative
and history rows in one transaction.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from ..db import transaction
from ..directory import load_snapshot
from ..errors import AlreadyTerminal, InvalidTransition, NotFound, ValidationError
from ..eventstream import emit_event
from ..scoping import validate_assignment
from .locks import alert_lock, incident_lock
from .models import (
    AlertStatus, IncidentStatus, Incident, TERMINAL_STATUSES, LOAD_ALERT_STATUSES,
    AlertRepository, IncidentRepository, NarrativeRepository, HistoryRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    name: str
    to_status: IncidentStatus
    sources: frozenset
    stamp_field: Optional[str] = None
    narrative_type: Optional[str] = None
    event_type: str = ""


_LIVE = frozenset(s for s in IncidentStatus if s not in TERMINAL_STATUSES)

DISPATCH = Command("dispatch", IncidentStatus.DISPATCHED,
                   frozenset({IncidentStatus.PENDING, IncidentStatus.ACTIVE}),
                   stamp_field="dispatched_at", event_type="INCIDENT_DISPATCHED")
EN_ROUTE = Command("en_route", IncidentStatus.EN_ROUTE, frozenset({IncidentStatus.DISPATCHED}),
                   stamp_field="en_route_at", event_type="INCIDENT_EN_ROUTE")
ON_SCENE = Command("on_scene", IncidentStatus.ON_SCENE, frozenset({IncidentStatus.EN_ROUTE}),
                   stamp_field="arrived_at", event_type="INCIDENT_ON_SCENE")
CLOSE = Command("close", IncidentStatus.COMPLETED, _LIVE, stamp_field="closed_at",
                narrative_type="CLOSURE", event_type="INCIDENT_CLOSED")
CANCEL = Command("cancel", IncidentStatus.CANCELLED, _LIVE, stamp_field="closed_at",
                 narrative_type="CANCELLATION", event_type="INCIDENT_CANCELLED")


def plan_transition(status: IncidentStatus, command: Command) -> IncidentStatus:
    """
    Decide whether `command` may run against an incident in `status`.
    Terminal incidents fail AlreadyTerminal before the source check.
    """
    status = IncidentStatus(status)
    if status in TERMINAL_STATUSES:
        raise AlreadyTerminal(status.value, command.to_status.value)
    if status not in command.sources:
        raise InvalidTransition(status.value, command.to_status.value)
    return command.to_status


def require_reason(reason: Optional[str], field: str = "reason") -> str:
    """Return the stripped reason or raise MissingReason."""
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError.single(field, "MissingReason", "A reason is required.")
    return cleaned


def load_incident(incident_id: str, conn=None) -> Incident:
    incident = IncidentRepository.get(incident_id, conn)
    if incident is None:
        raise NotFound("incident", incident_id)
    return incident


def _apply(incident_id: str, command: Command, user: Optional[str] = None,
           reason: Optional[str] = None) -> Incident:
    with incident_lock(incident_id):
        with transaction() as conn:
            incident = load_incident(incident_id, conn)
            from_status = incident.status
            try:
                to_status = plan_transition(from_status, command)
            except InvalidTransition as e:
                logger.warning(f"[Lifecycle] {command.name} rejected for {incident_id}: {e.message}")
                raise

            IncidentRepository.update_status(conn, incident, to_status, command.stamp_field)
            if command.narrative_type:
                NarrativeRepository.add(conn, incident_id, command.narrative_type, reason, user)
            HistoryRepository.add(conn, incident_id, command.event_type, from_status.value,
                                  to_status.value, user, reason)

        updated = IncidentRepository.get(incident_id, with_narrative=True)

    logger.info(f"[Lifecycle] {incident_id} {from_status.value} -> {to_status.value} by {user or 'unknown'}")
    emit_event(
        command.event_type,
        incident_id=incident_id,
        alert_id=updated.alert_id,
        station_id=updated.owning_station_id,
        user=user,
        summary=f"Incident {incident_id} {to_status.value}",
        details={"from_status": from_status.value, "to_status": to_status.value, "reason": reason},
    )
    return updated


# --- Commands ---

def dispatch(incident_id: str, user: Optional[str] = None) -> Incident:
    return _apply(incident_id, DISPATCH, user)


def advance_to_en_route(incident_id: str, user: Optional[str] = None) -> Incident:
    return _apply(incident_id, EN_ROUTE, user)


def advance_to_on_scene(incident_id: str, user: Optional[str] = None) -> Incident:
    return _apply(incident_id, ON_SCENE, user)


def close(incident_id: str, reason: str, user: Optional[str] = None) -> Incident:
    """Complete an incident. The reason becomes a CLOSURE narrative entry."""
    return _apply(incident_id, CLOSE, user, require_reason(reason))


def cancel(incident_id: str, reason: str, user: Optional[str] = None) -> Incident:
    """Cancel an incident. The reason becomes a CANCELLATION narrative entry."""
    return _apply(incident_id, CANCEL, user, require_reason(reason))


# --- Alert intake ---

def _open_alert_for_station(alert_id: str, station_id: str, conn=None):
    alert = AlertRepository.get(alert_id, conn)
    if alert is None:
        raise NotFound("alert", alert_id)
    if not alert.is_open:
        raise InvalidTransition(alert.status.value, AlertStatus.ACCEPTED.value,
                                f"Alert is already {alert.status.value}.")
    if station_id is not None and alert.station_id != station_id:
        raise ValidationError.single(
            "station_id", "StationMismatch",
            f"Alert {alert_id} is attributed to station {alert.station_id}, not {station_id}.",
        )
    return alert


def accept_alert(alert_id: str, station_id: str, department_id: Optional[str],
                 unit_id: Optional[str] = None, user: Optional[str] = None) -> Incident:
    """
    Accept an open alert at `station_id`, creating its local pending incident.

    The department/unit choice is validated against the reference directory
    before anything is written.
    """
    errors = validate_assignment(load_snapshot(), station_id, department_id, unit_id)
    if errors:
        logger.warning(f"[Lifecycle] accept_alert {alert_id} rejected: {[e.code for e in errors]}")
        raise ValidationError(errors)

    with alert_lock(alert_id):
        with transaction() as conn:
            _open_alert_for_station(alert_id, station_id, conn)
            AlertRepository.transition(conn, alert_id, LOAD_ALERT_STATUSES, AlertStatus.ACCEPTED)
            incident_id = IncidentRepository.create(
                conn, alert_id, station_id, department_id, unit_id or None, IncidentStatus.PENDING,
            )
            HistoryRepository.add(conn, incident_id, "INCIDENT_ACCEPTED", None,
                                  IncidentStatus.PENDING.value, user,
                                  f"Accepted from alert {alert_id}")
        incident = IncidentRepository.get(incident_id, with_narrative=True)

    logger.info(f"[Lifecycle] alert {alert_id} accepted at {station_id} as incident {incident_id}")
    emit_event(
        "INCIDENT_ACCEPTED",
        incident_id=incident_id,
        alert_id=alert_id,
        station_id=station_id,
        user=user,
        summary=f"Alert {alert_id} accepted",
        details={"department_id": department_id, "unit_id": unit_id},
    )
    return incident


def reject_alert(alert_id: str, reason: str, station_id: Optional[str] = None,
                 user: Optional[str] = None):
    """Reject an open alert. The reason is kept on the alert row."""
    reason = require_reason(reason)
    with alert_lock(alert_id):
        with transaction() as conn:
            alert = _open_alert_for_station(alert_id, station_id, conn)
            AlertRepository.transition(conn, alert_id, LOAD_ALERT_STATUSES, AlertStatus.REJECTED,
                                       reason=reason)
        alert = AlertRepository.get(alert_id)

    logger.info(f"[Lifecycle] alert {alert_id} rejected by {user or 'unknown'}")
    emit_event(
        "ALERT_REJECTED",
        alert_id=alert_id,
        station_id=alert.station_id,
        user=user,
        summary=f"Alert {alert_id} rejected",
        details={"reason": reason},
    )
    return alert
