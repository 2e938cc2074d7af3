# ================================================================
# FIREDESK - Dispatch Coordinator Backend
# Ranking + Lifecycle + Referrals + Assignment Scoping
# ================================================================

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from firedesk import (
    DispatchCoordinator, DispatchError, ValidationError, InvalidTransition,
    IneligibleDestination, ConflictError, NotFound,
)
from firedesk.config import get_config
from firedesk.db import init_schema
from firedesk.eventstream import register_eventstream_routes
from firedesk.incidents import register_incident_routes
from firedesk.referrals import register_referral_routes
from firedesk.scoping import register_scoping_routes

logging.basicConfig(
    level=getattr(logging, str(get_config("log_level", "INFO")).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("firedesk")

# ================================================================
# FASTAPI APP
# ================================================================

app = FastAPI(title="FIREDESK Dispatch Coordinator")
coordinator = DispatchCoordinator()


@app.on_event("startup")
async def _firedesk_startup():
    init_schema()
    logger.info("[Startup] FIREDESK coordinator ready")


# ================================================================
# ERROR MAPPING
# ================================================================

# Most specific class first; AlreadyTerminal is an InvalidTransition
_STATUS_CODES = (
    (ValidationError, 422),
    (InvalidTransition, 409),
    (IneligibleDestination, 409),
    (ConflictError, 409),
    (NotFound, 404),
)


def status_for(exc: DispatchError) -> int:
    for cls, status in _STATUS_CODES:
        if isinstance(exc, cls):
            return status
    return 400


@app.exception_handler(DispatchError)
async def _dispatch_error_handler(request: Request, exc: DispatchError):
    status = status_for(exc)
    logger.warning(f"[API] {request.method} {request.url.path} -> {status} {exc.code}: {exc.message}")
    return JSONResponse({"ok": False, "errors": exc.to_errors()}, status_code=status)


# ================================================================
# ROUTES
# ================================================================

register_incident_routes(app, coordinator)
register_referral_routes(app, coordinator)
register_scoping_routes(app, coordinator)
register_eventstream_routes(app)


@app.get("/api/health")
async def api_health():
    return {"ok": True, "service": "firedesk", "db_path": str(get_config("db_path"))}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
