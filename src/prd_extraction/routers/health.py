"""Health check router for the PRD extraction service."""
from __future__ import annotations

import time

from fastapi import APIRouter, Request

from src.shared.constants import EXTRACTION_SERVICE_NAME, VERSION
from src.shared.models.common import HealthStatus

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health(request: Request) -> HealthStatus:
    """Health check endpoint returning service status."""
    start_time = getattr(request.app.state, "start_time", None)
    return HealthStatus(
        status="healthy",
        service_name=EXTRACTION_SERVICE_NAME,
        version=VERSION,
        uptime_seconds=time.time() - start_time if start_time is not None else 0.0,
    )
