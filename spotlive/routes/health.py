"""
Health check endpoint.

Used by container health checks, load balancers and the web client to
check API connectivity. Reports the story store separately so callers can
tell "API down" from "API up but story store unreachable", and echoes the
engine settings the spot views are computed with.
"""

import logging
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from spotlive.core import database as db_module
from spotlive.core.config import settings
from spotlive.services import story_store
from spotlive.services.expiry import now_ms

logger = logging.getLogger(__name__)
router = APIRouter()


class EngineSettings(BaseModel):
    story_lifetime_hours: float
    cluster_threshold_deg: float
    neighborhood_radius_deg: float
    default_city: str


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    database: str  # "connected" | "disconnected"
    active_stories: Optional[int] = None  # None while the store is unreachable
    environment: str
    engine: EngineSettings


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """
    Liveness of the API, reachability of the story store and the number of
    stories currently feeding the spot views.

    The API is healthy (HTTP 200) even when the database is disconnected:
    spot views still answer (empty) in that state.
    """
    db_status = "disconnected"
    active = None
    try:
        # Access via module reference so tests can patch db_module.db_client
        if db_module.db_client.client is not None:
            await db_module.db_client.client.admin.command("ping")
            db_status = "connected"
            active = await story_store.count_active_stories(db_module.db_client.db, now_ms())
    except Exception as exc:
        logger.warning("Story store health check failed: %s", exc)

    return HealthResponse(
        status="ok",
        version="0.1.0",
        database=db_status,
        active_stories=active,
        environment=settings.environment,
        engine=EngineSettings(
            story_lifetime_hours=settings.story_lifetime_hours,
            cluster_threshold_deg=settings.cluster_threshold_deg,
            neighborhood_radius_deg=settings.neighborhood_radius_deg,
            default_city=settings.default_city,
        ),
    )
