"""
FIREDESK Scoping - API Routes
"""
from fastapi import FastAPI, Request

from ..api import read_json


def register_scoping_routes(app: FastAPI, coordinator):
    """Register the assignment picker and validation endpoints."""

    @app.get("/api/stations/{station_id}/departments")
    async def api_station_departments(station_id: str):
        departments = coordinator.selectable_departments(station_id)
        return {"ok": True, "departments": [d.to_dict() for d in departments]}

    @app.get("/api/departments/{department_id}/units")
    async def api_department_units(department_id: str):
        units = coordinator.selectable_units(department_id)
        return {
            "ok": True,
            "units": [u.to_dict() for u in units],
            "unit_required": bool(units),
        }

    @app.post("/api/assignments/validate")
    async def api_validate_assignment(request: Request):
        data = await read_json(request)
        errors = coordinator.validate_assignment(
            data.get("station_id"), data.get("department_id"), data.get("unit_id"),
        )
        return {"ok": not errors, "errors": [e.to_dict() for e in errors]}
