"""
FIREDESK Referrals - Referral Engine

Hands an incident (or an un-accepted alert) to another station.

The destination check is advisory in the picker and authoritative here: it is
re-run inside the write transaction, after BEGIN IMMEDIATE has taken the
database write lock. A referral that commits re-attributes the alert to the
destination as `pending`, which is exactly what makes the destination
ineligible for the next referral racing in behind it.
"""
import logging
from typing import List, Optional

from ..db import transaction
from ..directory import StationRepository
from ..errors import (
    AlreadyTerminal, FieldError, IneligibleDestination, InvalidTransition,
    NotFound, ValidationError,
)
from ..eventstream import emit_event
from ..incidents.lifecycle import load_incident
from ..incidents.locks import alert_lock, incident_lock
from ..incidents.models import (
    AlertStatus, IncidentStatus, AlertRepository, IncidentRepository,
    NarrativeRepository, HistoryRepository, LOAD_ALERT_STATUSES,
)
from .eligibility import evaluate_station
from .models import Referral, ReferralDataType, ReferralRepository

logger = logging.getLogger(__name__)

_ANY_ALERT_STATUS = [s.value for s in AlertStatus]


def _validate_request(from_station_id: Optional[str], to_station_id: Optional[str],
                      reason: Optional[str]) -> str:
    """Field checks that need no store access. Returns the stripped reason."""
    errors: List[FieldError] = []
    if not to_station_id:
        errors.append(FieldError("to_station_id", "DestinationRequired",
                                 "A destination station is required."))
    elif from_station_id and from_station_id == to_station_id:
        errors.append(FieldError("to_station_id", "SameStation",
                                 "An incident cannot be referred to its own station."))
    cleaned = (reason or "").strip()
    if not cleaned:
        errors.append(FieldError("reason", "MissingReason", "A reason is required."))
    if errors:
        raise ValidationError(errors)
    return cleaned


def _check_source(owning_station_id: Optional[str], from_station_id: Optional[str],
                  to_station_id: str) -> str:
    source = from_station_id or owning_station_id
    if from_station_id and owning_station_id and from_station_id != owning_station_id:
        raise ValidationError.single(
            "from_station_id", "SourceStationMismatch",
            f"Record is held by station {owning_station_id}, not {from_station_id}.",
        )
    if not source:
        raise ValidationError.single("from_station_id", "StationRequired",
                                     "A source station is required.")
    if source == to_station_id:
        raise ValidationError.single("to_station_id", "SameStation",
                                     "An incident cannot be referred to its own station.")
    return source


def _check_destination(conn, to_station_id: str):
    destination = StationRepository.get(to_station_id, conn)
    if destination is None:
        raise NotFound("station", to_station_id)
    eligible, why = evaluate_station(to_station_id, conn, destination)
    if not eligible:
        logger.warning(f"[Referrals] destination {to_station_id} ineligible: {why}")
        raise IneligibleDestination(to_station_id, why)
    return destination


def refer_incident(incident_id: str, from_station_id: Optional[str], to_station_id: str,
                   reason: str, user: Optional[str] = None) -> Referral:
    """
    Refer a live incident to another station.

    The local incident ends in the terminal `referred` status with a REFERRAL
    narrative entry, its alert is re-attributed to the destination as
    `pending`, and an immutable Referral row is written, all in one commit.
    """
    reason = _validate_request(from_station_id, to_station_id, reason)

    with incident_lock(incident_id):
        with transaction() as conn:
            incident = load_incident(incident_id, conn)
            if incident.is_terminal:
                raise AlreadyTerminal(incident.status.value, IncidentStatus.REFERRED.value)
            source = _check_source(incident.owning_station_id, from_station_id, to_station_id)
            destination = _check_destination(conn, to_station_id)

            IncidentRepository.update_status(conn, incident, IncidentStatus.REFERRED, "closed_at")
            NarrativeRepository.add(conn, incident_id, "REFERRAL",
                                    f"Referred to {destination.name}: {reason}", user)
            HistoryRepository.add(conn, incident_id, "INCIDENT_REFERRED", incident.status.value,
                                  IncidentStatus.REFERRED.value, user,
                                  f"to {to_station_id}: {reason}")
            AlertRepository.transition(conn, incident.alert_id, _ANY_ALERT_STATUS,
                                       AlertStatus.PENDING, station_id=to_station_id)
            referral = ReferralRepository.create(
                conn, ReferralDataType.INCIDENT, incident_id, incident.alert_id,
                source, to_station_id, reason, user,
            )

    logger.info(f"[Referrals] incident {incident_id} referred {source} -> {to_station_id}")
    emit_event(
        "INCIDENT_REFERRED",
        incident_id=incident_id,
        alert_id=incident.alert_id,
        station_id=source,
        user=user,
        summary=f"Incident {incident_id} referred to {destination.name}",
        details={"referral_id": referral.referral_id, "to_station_id": to_station_id, "reason": reason},
    )
    return referral


def refer_alert(alert_id: str, from_station_id: Optional[str], to_station_id: str,
                reason: str, user: Optional[str] = None) -> Referral:
    """Hand an open (not yet accepted) alert to another station."""
    reason = _validate_request(from_station_id, to_station_id, reason)

    with alert_lock(alert_id):
        with transaction() as conn:
            alert = AlertRepository.get(alert_id, conn)
            if alert is None:
                raise NotFound("alert", alert_id)
            if not alert.is_open:
                raise InvalidTransition(alert.status.value, "referred",
                                        f"Alert is already {alert.status.value}.")
            source = _check_source(alert.station_id, from_station_id, to_station_id)
            destination = _check_destination(conn, to_station_id)

            AlertRepository.transition(conn, alert_id, LOAD_ALERT_STATUSES, AlertStatus.PENDING,
                                       reason=reason, station_id=to_station_id)
            referral = ReferralRepository.create(
                conn, ReferralDataType.ALERT, alert_id, alert_id,
                source, to_station_id, reason, user,
            )

    logger.info(f"[Referrals] alert {alert_id} referred {source} -> {to_station_id}")
    emit_event(
        "ALERT_REFERRED",
        alert_id=alert_id,
        station_id=source,
        user=user,
        summary=f"Alert {alert_id} referred to {destination.name}",
        details={"referral_id": referral.referral_id, "to_station_id": to_station_id, "reason": reason},
    )
    return referral
