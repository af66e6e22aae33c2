# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Liveness and readiness checks.

``/health`` always answers 200 and reports ``degraded`` when a dependency
is down. ``/health/ready`` answers 503 until both the database and the
roster upload directory are usable.
"""

import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from src import __version__
from src.api.middleware.rate_limit import limiter
from src.core.config import get_settings
from src.infrastructure.database import check_database_connection

logger = logging.getLogger(__name__)

router = APIRouter()

_started_at = time.monotonic()


class ComponentHealth(BaseModel):
    status: str
    latency_ms: float | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "healthy"


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str
    uptime_seconds: int
    components: dict[str, ComponentHealth]


class ReadinessResponse(BaseModel):
    ready: bool
    components: dict[str, ComponentHealth]


async def _database() -> ComponentHealth:
    started = time.perf_counter()
    if not await check_database_connection():
        logger.error("Health check: database unreachable")
        return ComponentHealth(status="unhealthy", message="Database unreachable")
    elapsed = (time.perf_counter() - started) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(elapsed, 2))


def _roster_storage() -> ComponentHealth:
    directory = Path(get_settings().upload.directory)
    # The directory is created lazily on first upload.
    existing = directory
    while not existing.exists() and existing != existing.parent:
        existing = existing.parent
    if not os.access(existing, os.W_OK):
        logger.error("Health check: roster directory %s not writable", directory)
        return ComponentHealth(status="unhealthy", message="Roster storage not writable")
    return ComponentHealth(status="healthy")


async def _components() -> dict[str, ComponentHealth]:
    return {"database": await _database(), "roster_storage": _roster_storage()}


@router.get("/health", response_model=HealthResponse)
@limiter.exempt
async def health_check() -> HealthResponse:
    components = await _components()
    all_ok = all(component.ok for component in components.values())
    return HealthResponse(
        status="healthy" if all_ok else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        environment=get_settings().environment,
        uptime_seconds=int(time.monotonic() - _started_at),
        components=components,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
@limiter.exempt
async def readiness_check(response: Response) -> ReadinessResponse:
    components = await _components()
    ready = all(component.ok for component in components.values())
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=ready, components=components)
