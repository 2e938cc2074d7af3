"""
FIREDESK Event Stream - Core Emitter

emit_event() records an operational event after a command has committed.
It is additive: a failure here is logged and never undoes or blocks the
command that triggered it.
"""
import logging
from typing import Optional, Dict

from ..config import get_config
from ..db import _ts
from .models import insert_event, init_eventstream_schema

logger = logging.getLogger(__name__)

_schema_ready_for = None


def _ensure_schema():
    global _schema_ready_for
    db_path = get_config("db_path")
    if _schema_ready_for != db_path:
        init_eventstream_schema()
        _schema_ready_for = db_path


def _severity_for_event(event_type: str) -> str:
    """Default severity based on event type."""
    alert = {"INCIDENT_REFERRED", "ALERT_REFERRED", "ALERT_REJECTED"}
    warning = {"INCIDENT_CANCELLED"}
    if event_type in alert:
        return "alert"
    if event_type in warning:
        return "warning"
    return "info"


def _category_for_event(event_type: str) -> str:
    """Default category based on event type."""
    if event_type in ("INCIDENT_REFERRED", "ALERT_REFERRED"):
        return "referral"
    if event_type.startswith("INCIDENT_"):
        return "incident"
    if event_type.startswith("ALERT_"):
        return "alert"
    return "system"


def emit_event(
    event_type: str,
    incident_id: Optional[str] = None,
    alert_id: Optional[str] = None,
    station_id: Optional[str] = None,
    user: Optional[str] = None,
    summary: Optional[str] = None,
    details: Optional[Dict] = None,
    category: Optional[str] = None,
    severity: Optional[str] = None,
) -> Optional[int]:
    """
    Record an operational event to the event stream.

    Returns the event ID on success, None when disabled or on failure.
    """
    if not get_config("event_stream_enabled", True):
        return None
    try:
        _ensure_schema()
        event_id = insert_event(
            timestamp=_ts(),
            event_type=event_type,
            category=category or _category_for_event(event_type),
            severity=severity or _severity_for_event(event_type),
            incident_id=incident_id,
            alert_id=alert_id,
            station_id=station_id,
            user=user,
            summary=summary,
            details=details,
        )
        logger.debug(f"[EventStream] {event_type} #{event_id} incident={incident_id} alert={alert_id}")
        return event_id
    except Exception as e:
        logger.error(f"[EventStream] emit_event failed for {event_type}: {e}")
        return None
