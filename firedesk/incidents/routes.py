"""
FIREDESK Incidents - API Routes

Handlers stay thin: parse the body, call the coordinator, return the entity.
Coordinator errors propagate to the app-level DispatchError handler.
"""
from typing import Optional

from fastapi import FastAPI, Request

from ..api import read_json


def register_incident_routes(app: FastAPI, coordinator):
    """Register incident and alert command endpoints."""

    @app.get("/api/incidents/ranked")
    async def api_ranked_incidents(station_id: Optional[str] = None):
        ranked = coordinator.ranked_for_station(station_id)
        return {"ok": True, "incidents": [i.to_dict() for i in ranked]}

    @app.get("/api/incidents/most-urgent")
    async def api_most_urgent(station_id: Optional[str] = None):
        incident = coordinator.most_urgent_for_station(station_id)
        return {"ok": True, "incident": incident.to_dict() if incident else None}

    @app.get("/api/incidents/{incident_id}")
    async def api_get_incident(incident_id: str):
        incident = coordinator.get_incident(incident_id)
        return {
            "ok": True,
            "incident": incident.to_dict(),
            "history": coordinator.incident_history(incident_id),
        }

    @app.post("/api/incidents/{incident_id}/dispatch")
    async def api_dispatch(incident_id: str, request: Request):
        data = await read_json(request)
        incident = coordinator.dispatch(incident_id, user=data.get("user"))
        return {"ok": True, "incident": incident.to_dict()}

    @app.post("/api/incidents/{incident_id}/en-route")
    async def api_en_route(incident_id: str, request: Request):
        data = await read_json(request)
        incident = coordinator.advance_to_en_route(incident_id, user=data.get("user"))
        return {"ok": True, "incident": incident.to_dict()}

    @app.post("/api/incidents/{incident_id}/on-scene")
    async def api_on_scene(incident_id: str, request: Request):
        data = await read_json(request)
        incident = coordinator.advance_to_on_scene(incident_id, user=data.get("user"))
        return {"ok": True, "incident": incident.to_dict()}

    @app.post("/api/incidents/{incident_id}/close")
    async def api_close(incident_id: str, request: Request):
        data = await read_json(request)
        incident = coordinator.close(incident_id, data.get("reason"), user=data.get("user"))
        return {"ok": True, "incident": incident.to_dict()}

    @app.post("/api/incidents/{incident_id}/cancel")
    async def api_cancel(incident_id: str, request: Request):
        data = await read_json(request)
        incident = coordinator.cancel(incident_id, data.get("reason"), user=data.get("user"))
        return {"ok": True, "incident": incident.to_dict()}

    @app.post("/api/alerts/{alert_id}/accept")
    async def api_accept_alert(alert_id: str, request: Request):
        data = await read_json(request)
        incident = coordinator.accept_alert(
            alert_id,
            station_id=data.get("station_id"),
            department_id=data.get("department_id"),
            unit_id=data.get("unit_id"),
            user=data.get("user"),
        )
        return {"ok": True, "incident": incident.to_dict()}

    @app.post("/api/alerts/{alert_id}/reject")
    async def api_reject_alert(alert_id: str, request: Request):
        data = await read_json(request)
        alert = coordinator.reject_alert(
            alert_id, data.get("reason"),
            station_id=data.get("station_id"), user=data.get("user"),
        )
        return {"ok": True, "alert": alert.to_dict()}
