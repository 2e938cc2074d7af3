"""
FIREDESK Incidents Module
Alert/Incident store, urgency ranking and the incident lifecycle engine.
"""
from .models import (
    Priority, AlertStatus, IncidentStatus, Alert, Incident, NarrativeEntry,
    TERMINAL_STATUSES, AlertRepository, IncidentRepository,
    NarrativeRepository, HistoryRepository,
)
from .ranking import priority_rank, status_rank, rank_incidents, compute_most_urgent
from .lifecycle import (
    dispatch, close, cancel, advance_to_en_route, advance_to_on_scene,
    accept_alert, reject_alert, plan_transition,
)
from .routes import register_incident_routes

__all__ = [
    "Priority",
    "AlertStatus",
    "IncidentStatus",
    "Alert",
    "Incident",
    "NarrativeEntry",
    "TERMINAL_STATUSES",
    "AlertRepository",
    "IncidentRepository",
    "NarrativeRepository",
    "HistoryRepository",
    "priority_rank",
    "status_rank",
    "rank_incidents",
    "compute_most_urgent",
    "dispatch",
    "close",
    "cancel",
    "advance_to_en_route",
    "advance_to_on_scene",
    "accept_alert",
    "reject_alert",
    "plan_transition",
    "register_incident_routes",
]
