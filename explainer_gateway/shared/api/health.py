"""
Health check API endpoints.
"""

import time
from typing import Annotated
from fastapi import APIRouter, Depends
from loguru import logger

from ..core.connection_manager import ConnectionManager
from ..core.dependencies import AppSettings, GatewayDep, get_connection_manager
from ..models.responses import HealthResponse


router = APIRouter(
    tags=["health"]
)

# Track server start time
_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    conn_manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
    gateway: GatewayDep,
    settings: AppSettings
):
    """Health check endpoint."""
    uptime = time.time() - _start_time

    try:
        checks = await conn_manager.health_check()
        explanations_enabled = not await gateway.breaker.is_disabled()

        return HealthResponse(
            status="healthy" if all(checks.values()) else "degraded",
            version=settings.version,
            uptime=uptime,
            checks=checks,
            explanations_enabled=explanations_enabled
        )

    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return HealthResponse(
            status="unhealthy",
            version=settings.version,
            uptime=uptime
        )
