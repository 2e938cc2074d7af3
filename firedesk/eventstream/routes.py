"""
FIREDESK Event Stream - API Routes
"""
from typing import Optional

from fastapi import FastAPI, Query

from .models import query_events, count_events, init_eventstream_schema


def register_eventstream_routes(app: FastAPI):
    """Register event stream endpoints."""

    @app.on_event("startup")
    async def _eventstream_startup():
        init_eventstream_schema()

    @app.get("/api/event-stream")
    async def api_event_stream(
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
        category: Optional[str] = None,
        event_type: Optional[str] = None,
        incident_id: Optional[str] = None,
        alert_id: Optional[str] = None,
        station_id: Optional[str] = None,
        severity: Optional[str] = None,
        since: Optional[str] = None,
    ):
        """Paginated, filtered event stream JSON."""
        filters = dict(
            category=category, event_type=event_type,
            incident_id=incident_id, alert_id=alert_id, station_id=station_id,
            severity=severity, since=since,
        )
        events = query_events(limit=limit, offset=offset, **filters)
        total = count_events(**filters)
        return {
            "ok": True,
            "events": events,
            "total": total,
            "limit": limit,
            "offset": offset,
        }
