"""Liveness and readiness probes."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from laarikhojo.infra.db import txn
from laarikhojo.observability.logging import get_logger

router = APIRouter(tags=["health"])

logger = get_logger(__name__)


@router.get("/health")
def health() -> dict:
    """Process is up; touches no dependency."""
    return {"status": "ok"}


@router.get("/ready")
def ready() -> JSONResponse:
    """Database reachable within the connection timeouts."""
    try:
        with txn() as cur:
            cur.execute("SELECT 1")
    except Exception:
        logger.exception("readiness check failed")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return JSONResponse(status_code=200, content={"status": "ok"})
