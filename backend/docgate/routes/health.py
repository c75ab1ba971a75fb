"""
DocGate — Health Check Route
=============================

What:  Health endpoint for monitoring and load balancer checks, served at
       /health.json. The dot keeps the path outside the collection name
       alphabet, so every valid name (including "health") stays a collection.
How:   Pings MongoDB and reports the result with the service version and
       uptime.

Status levels:
    - healthy:   MongoDB answered the ping
    - unhealthy: MongoDB unreachable or no client configured

The endpoint always answers 200: the process itself is up and serving (see
the degraded-availability note in database.py); the body says whether the
store is reachable.
"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo import AsyncMongoClient

from docgate import __version__
from docgate.database import ping
from docgate.dependencies import get_mongo_client
from docgate.schemas.document import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/health.json",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    client: Optional[AsyncMongoClient] = Depends(get_mongo_client),
) -> HealthResponse:
    connected = client is not None and await ping(client)
    if not connected:
        logger.warning("Health check: MongoDB unreachable")

    return HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=__version__,
        database="connected" if connected else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
