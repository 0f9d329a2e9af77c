"""
Botanica Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database (SELECT 1) and the image bucket (pre-flight listing).

    Status levels:
    - healthy:   database reachable, bucket accessible (HTTP 200)
    - degraded:  database reachable, bucket missing or refused (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from botanica import __version__
from botanica.config import settings
from botanica.database import engine
from botanica.schemas.common import HealthResponse
from botanica.services.local_storage import object_storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend service and its dependencies: "
        "database connectivity and image bucket accessibility."
    ),
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Image Bucket ────────────────────────────────────────────────
    bucket = await object_storage.check_bucket(settings.storage_folder)
    if not bucket.ok:
        logger.warning("Health check: bucket %s: %s", bucket.status, bucket.message)
        if overall == "healthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=bucket.status,
        storage_message=bucket.message,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
