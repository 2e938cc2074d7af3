"""
FIREDESK Incidents - Urgency Ranker

Orders incidents for operator attention: priority first, then status, both
descending. The rank tables below are the only place these weights live;
anything missing or unknown ranks 0.

The sort is stable. Incidents with identical (priority, status) keep the
relative order the caller passed in, so the "most urgent" banner does not
flap between equally-ranked incidents on refresh.
"""
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import Incident, IncidentStatus, Priority

PRIORITY_RANK = {
    Priority.CRITICAL.value: 4,
    Priority.HIGH.value: 3,
    Priority.MEDIUM.value: 2,
    Priority.LOW.value: 1,
}

STATUS_RANK = {
    IncidentStatus.ACTIVE.value: 5,
    IncidentStatus.PENDING.value: 4,
    IncidentStatus.DISPATCHED.value: 3,
    IncidentStatus.EN_ROUTE.value: 2,
    IncidentStatus.ON_SCENE.value: 1,
    IncidentStatus.COMPLETED.value: 0,
    IncidentStatus.CANCELLED.value: 0,
    IncidentStatus.REFERRED.value: 0,
}

UNKNOWN_RANK = 0


def _normalize(value) -> str:
    value = getattr(value, "value", value)
    return str(value).strip().lower() if value is not None else ""


def priority_rank(priority) -> int:
    return PRIORITY_RANK.get(_normalize(priority), UNKNOWN_RANK)


def status_rank(status) -> int:
    return STATUS_RANK.get(_normalize(status), UNKNOWN_RANK)


def urgency_key(incident: Incident) -> Tuple[int, int]:
    """(priority_rank, status_rank) - larger is more urgent."""
    return priority_rank(incident.priority), status_rank(incident.status)


def rank_incidents(incidents: Iterable[Incident]) -> List[Incident]:
    """
    Total order over the given incidents, most urgent first.

    No scope filtering happens here; callers pass the station or jurisdiction
    set they want ranked. Re-ranking an already ranked list returns it as is.
    """
    # sorted() is stable, and reverse=True keeps ties in input order
    return sorted(incidents, key=urgency_key, reverse=True)


def compute_most_urgent(incidents: Sequence[Incident]) -> Optional[Incident]:
    """Head of the ranked order, or None when there is nothing to rank."""
    ranked = rank_incidents(incidents)
    return ranked[0] if ranked else None
