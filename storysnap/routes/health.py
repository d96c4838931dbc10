"""
StorySnap Backend — Health Check Route
========================================

What:  GET /health for Docker health checks and load balancer probes.
How:   Lightweight probes only: SELECT 1 against the database, plus a
       credentials check for the translation proxy (no Gemini call).

Status levels:
    - healthy:   database reachable, translation configured
    - degraded:  database reachable, GEMINI_API_KEY missing
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from storysnap import __version__
from storysnap.config import settings
from storysnap.database import engine
from storysnap.schemas.common import HealthResponse
from storysnap.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def check_database() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
    summary="Service health check",
)
async def health_check():
    database_ok = await check_database()
    translation_ok = gemini_service.is_configured()

    if not database_ok:
        overall = "unhealthy"
    elif not translation_ok:
        overall = "degraded"
    else:
        overall = "healthy"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database="connected" if database_ok else "disconnected",
        translation="configured" if translation_ok else "not_configured",
        image_backend=settings.image_backend,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if not database_ok:
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
