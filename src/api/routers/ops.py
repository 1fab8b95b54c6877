import logging
import os

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from api import state

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint for container orchestration."""
    health = {
        "status": "healthy",
        "profile": os.getenv("DEPLOYMENT_PROFILE", "unknown"),
    }

    if state.store is None:
        health["status"] = "starting"
        return health

    try:
        db_health = await state.store.health_check()
        health["database"] = db_health
        if db_health.get("status") != "healthy":
            health["status"] = "degraded"
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        health["status"] = "degraded"
        health["database"] = {"status": "error", "error": str(e)}

    return health


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus scrape endpoint.
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
