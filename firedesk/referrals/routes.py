"""
FIREDESK Referrals - API Routes
"""
from typing import Optional

from fastapi import FastAPI, Request

from ..api import read_json


def register_referral_routes(app: FastAPI, coordinator):
    """Register referral, eligibility and station load endpoints."""

    @app.post("/api/incidents/{incident_id}/refer")
    async def api_refer_incident(incident_id: str, request: Request):
        data = await read_json(request)
        referral = coordinator.refer(
            incident_id,
            data.get("from_station_id"),
            data.get("to_station_id"),
            data.get("reason"),
            user=data.get("user"),
        )
        return {"ok": True, "referral": referral.to_dict()}

    @app.post("/api/alerts/{alert_id}/refer")
    async def api_refer_alert(alert_id: str, request: Request):
        data = await read_json(request)
        referral = coordinator.refer_alert(
            alert_id,
            data.get("from_station_id"),
            data.get("to_station_id"),
            data.get("reason"),
            user=data.get("user"),
        )
        return {"ok": True, "referral": referral.to_dict()}

    @app.get("/api/stations/{station_id}/eligibility")
    async def api_station_eligibility(station_id: str):
        eligible, reason = coordinator.check_referral_eligibility(station_id)
        return {
            "ok": True,
            "station_id": station_id,
            "eligible": eligible,
            "reason": reason,
            "load": coordinator.station_load(station_id).to_dict(),
        }

    @app.get("/api/stations/{station_id}/referral-targets")
    async def api_referral_targets(station_id: str):
        return {"ok": True, "targets": coordinator.eligible_destinations(station_id)}

    @app.get("/api/referrals")
    async def api_list_referrals(station_id: str, direction: Optional[str] = "all"):
        referrals = coordinator.list_referrals(station_id, direction)
        return {"ok": True, "referrals": [r.to_dict() for r in referrals]}
