"""API routes module for the citation lineage service.

This module exports all API routers for registration in main.py.
"""

from src.api.routes.chunks import router as chunks_router
from src.api.routes.health import router as health_router


__all__ = [
    "chunks_router",
    "health_router",
]
