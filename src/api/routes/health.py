"""Health check API routes.

Endpoints:
- GET /health        service status with lineage store details
- GET /health/ready  readiness probe (store reachable)
- GET /health/live   liveness probe (process answering)

The only dependency of this service is its lineage store, so health is
the store's health: an in-memory store is up while the service exists;
the SQL store is pinged and its round-trip time reported.
"""

from __future__ import annotations

import os
import time
from datetime import UTC, datetime
from enum import Enum

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel, Field

from src.core.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)

SERVICE_NAME = "citation-lineage"
SERVICE_VERSION = os.environ.get("SERVICE_VERSION", "0.1.0")


class HealthStatus(str, Enum):
    """Overall service status."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


# =============================================================================
# Response Models
# =============================================================================

class StoreHealth(BaseModel):
    """State of the lineage store behind the service.

    Attributes:
        up: Whether the store answered
        backend: Store implementation class, None before startup
        latency_ms: Ping round trip for stores that support it
        message: Reason the store is down
    """

    up: bool
    backend: str | None = None
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    status: HealthStatus
    service: str = SERVICE_NAME
    version: str = SERVICE_VERSION
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    uptime_seconds: float | None = None
    max_lineage_depth: int | None = Field(
        default=None,
        description="Default traversal cutoff of the running service",
    )
    store: StoreHealth


class ReadinessResponse(BaseModel):
    """Response model for readiness check."""

    ready: bool
    store: StoreHealth


class LivenessResponse(BaseModel):
    """Response model for liveness check."""

    alive: bool = True
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


# =============================================================================
# Uptime
# =============================================================================

_service_start_time: datetime | None = None


def set_service_start_time(start_time: datetime | None = None) -> None:
    """Record when the service started (called from the lifespan)."""
    global _service_start_time
    _service_start_time = start_time or datetime.now(UTC)


def get_uptime_seconds() -> float | None:
    """Seconds since ``set_service_start_time``, None if never set."""
    if _service_start_time is None:
        return None
    return (datetime.now(UTC) - _service_start_time).total_seconds()


# =============================================================================
# Store Check
# =============================================================================

def check_store(request: Request) -> StoreHealth:
    """Probe the lineage store attached to the application.

    Returns:
        StoreHealth; ``up`` is False when the service is missing or the
        database does not answer
    """
    service = getattr(request.app.state, "lineage_service", None)
    if service is None:
        return StoreHealth(up=False, message="Lineage service not initialized")

    backend = type(service.edges).__name__
    ping = getattr(service.edges, "ping", None)
    if ping is None:
        return StoreHealth(up=True, backend=backend)

    started = time.perf_counter()
    reachable = ping()
    latency_ms = round((time.perf_counter() - started) * 1000, 3)
    if not reachable:
        logger.warning("health_store_down", backend=backend)
        return StoreHealth(
            up=False,
            backend=backend,
            latency_ms=latency_ms,
            message="Database unreachable",
        )
    return StoreHealth(up=True, backend=backend, latency_ms=latency_ms)


# =============================================================================
# API Endpoints
# =============================================================================

@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
)
def health_check(request: Request) -> HealthResponse:
    """Service status, uptime and lineage store details."""
    store = check_store(request)
    service = getattr(request.app.state, "lineage_service", None)

    return HealthResponse(
        status=HealthStatus.HEALTHY if store.up else HealthStatus.UNHEALTHY,
        uptime_seconds=get_uptime_seconds(),
        max_lineage_depth=service.max_depth if service is not None else None,
        store=store,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
)
def readiness_check(request: Request, response: Response) -> ReadinessResponse:
    """Readiness probe; 503 until the store answers."""
    store = check_store(request)
    if not store.up:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=store.up, store=store)


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness check",
)
def liveness_check() -> LivenessResponse:
    """Liveness probe."""
    return LivenessResponse()


__all__ = [
    "HealthResponse",
    "HealthStatus",
    "LivenessResponse",
    "ReadinessResponse",
    "StoreHealth",
    "check_store",
    "get_uptime_seconds",
    "router",
    "set_service_start_time",
]
