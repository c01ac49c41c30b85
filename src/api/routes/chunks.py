"""Chunk and lineage API routes.

Endpoints:
- GET  /v1/chunks/{chunk_id}                  chunk record
- GET  /v1/chunks/{chunk_id}/citations        direct citations (depth 1)
- GET  /v1/chunks/{chunk_id}/lineage          full lineage forest + warnings
- GET  /v1/chunks/{chunk_id}/lineage/rows     flat traversal rows + warnings
- GET  /v1/chunks/{chunk_id}/cited-by         incoming citation edges
- POST /v1/chunks                             create chunk (optionally from markdown)
- POST /v1/chunks/{chunk_id}/citations        add citation edge
- POST /v1/chunks/{chunk_id}/supersede        supersede with a new chunk

Write-path errors are raised as LineageError subclasses and rendered by
src.api.error_handlers.

Anti-Patterns Avoided:
- No bare except clauses
- Service injected via Depends, no module-level store handle
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from src.core.constants import API_PREFIX, DEFAULT_RELATIONSHIP_TYPE, MAX_DEPTH_LIMIT
from src.core.logging import get_logger
from src.lineage.service import LineageService
from src.schemas.lineage_models import (
    Chunk,
    CitationEdge,
    LineageResponse,
    LineageRow,
    LineageTreeNode,
    LineageWarning,
    Supersession,
)


logger = get_logger(__name__)


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix=f"{API_PREFIX}/chunks",
    tags=["Lineage"],
)


# =============================================================================
# Request/Response Models
# =============================================================================

class CreateChunkRequest(BaseModel):
    """Request model for chunk creation.

    When ``markdown`` is given, citations are resolved from its
    References section and stored together with the chunk.
    """

    chunk: Chunk = Field(..., description="Chunk to create")
    markdown: str | None = Field(
        default=None,
        description="Authored document whose References section lists citation targets",
    )


class CreateChunkResponse(BaseModel):
    """Response model for chunk creation."""

    chunk: Chunk
    citations: list[CitationEdge] = Field(default_factory=list)


class AddCitationRequest(BaseModel):
    """Request model for adding a citation edge from the path chunk."""

    target_chunk_id: str = Field(..., min_length=1, description="Cited chunk")
    marker: str | None = Field(default=None, description="Inline marker, e.g. [1]")
    relationship_type: str = Field(default=DEFAULT_RELATIONSHIP_TYPE)


class SupersedeRequest(BaseModel):
    """Request model for superseding the path chunk."""

    new_chunk: Chunk = Field(..., description="Replacement chunk")


class LineageRowsResponse(BaseModel):
    """Flat traversal output."""

    root_chunk_id: str
    max_depth: int
    rows: list[LineageRow] = Field(default_factory=list)
    warnings: list[LineageWarning] = Field(default_factory=list)
    truncated: bool = False


# =============================================================================
# Service Dependency
# =============================================================================

def get_lineage_service(request: Request) -> LineageService:
    """Return the service created by the application lifespan.

    Raises:
        HTTPException: 503 when the service has not been initialized
    """
    service = getattr(request.app.state, "lineage_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Lineage service not initialized")
    return service


# =============================================================================
# Read Endpoints
# =============================================================================

@router.get(
    "/{chunk_id}",
    response_model=Chunk,
    summary="Get chunk",
)
def get_chunk(
    chunk_id: str,
    service: LineageService = Depends(get_lineage_service),
) -> Chunk:
    """Return a single chunk record."""
    chunk = service.get_chunk(chunk_id)
    if chunk is None:
        raise HTTPException(status_code=404, detail=f"Chunk '{chunk_id}' not found")
    return chunk


@router.get(
    "/{chunk_id}/citations",
    response_model=list[LineageTreeNode],
    summary="Direct citations",
)
def get_direct_citations(
    chunk_id: str,
    service: LineageService = Depends(get_lineage_service),
) -> list[LineageTreeNode]:
    """Return the chunks ``chunk_id`` cites directly."""
    service.require_chunk(chunk_id)
    return service.get_direct_citations(chunk_id)


@router.get(
    "/{chunk_id}/lineage",
    response_model=LineageResponse,
    summary="Full lineage",
)
def get_full_lineage(
    chunk_id: str,
    max_depth: int | None = Query(
        default=None, ge=1, le=MAX_DEPTH_LIMIT, description="Traversal cutoff override"
    ),
    service: LineageService = Depends(get_lineage_service),
) -> LineageResponse:
    """Return the full provenance forest of ``chunk_id``."""
    service.require_chunk(chunk_id)
    return service.get_full_lineage(chunk_id, max_depth=max_depth)


@router.get(
    "/{chunk_id}/lineage/rows",
    response_model=LineageRowsResponse,
    summary="Flat lineage rows",
)
def get_lineage_rows(
    chunk_id: str,
    max_depth: int | None = Query(
        default=None, ge=1, le=MAX_DEPTH_LIMIT, description="Traversal cutoff override"
    ),
    service: LineageService = Depends(get_lineage_service),
) -> LineageRowsResponse:
    """Return the flat traversal ordered by (depth, chunk_id)."""
    service.require_chunk(chunk_id)
    result = service.get_lineage_rows(chunk_id, max_depth=max_depth)
    return LineageRowsResponse(
        root_chunk_id=result.root_chunk_id,
        max_depth=result.max_depth,
        rows=result.rows,
        warnings=result.warnings,
        truncated=result.truncated,
    )


@router.get(
    "/{chunk_id}/cited-by",
    response_model=list[CitationEdge],
    summary="Reverse citations",
)
def get_cited_by(
    chunk_id: str,
    service: LineageService = Depends(get_lineage_service),
) -> list[CitationEdge]:
    """Return edges whose target is ``chunk_id``."""
    service.require_chunk(chunk_id)
    return service.get_cited_by(chunk_id)


# =============================================================================
# Write Endpoints
# =============================================================================

@router.post(
    "",
    response_model=CreateChunkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create chunk",
)
def create_chunk(
    request: CreateChunkRequest,
    service: LineageService = Depends(get_lineage_service),
) -> CreateChunkResponse:
    """Create a chunk, plus its citations when markdown is supplied."""
    if request.markdown is None:
        chunk = service.put_chunk(request.chunk)
        return CreateChunkResponse(chunk=chunk)

    citations = service.ingest_document(request.chunk, request.markdown)
    return CreateChunkResponse(chunk=request.chunk, citations=citations)


@router.post(
    "/{chunk_id}/citations",
    response_model=CitationEdge,
    status_code=status.HTTP_201_CREATED,
    summary="Add citation",
)
def add_citation(
    chunk_id: str,
    request: AddCitationRequest,
    service: LineageService = Depends(get_lineage_service),
) -> CitationEdge:
    """Record that ``chunk_id`` cites ``request.target_chunk_id``."""
    return service.add_citation(
        chunk_id,
        request.target_chunk_id,
        marker=request.marker,
        relationship_type=request.relationship_type,
    )


@router.post(
    "/{chunk_id}/supersede",
    response_model=Supersession,
    status_code=status.HTTP_201_CREATED,
    summary="Supersede chunk",
)
def supersede_chunk(
    chunk_id: str,
    request: SupersedeRequest,
    service: LineageService = Depends(get_lineage_service),
) -> Supersession:
    """Replace ``chunk_id`` with a new chunk without mutating either."""
    return service.supersede(chunk_id, request.new_chunk)


__all__ = [
    "AddCitationRequest",
    "CreateChunkRequest",
    "CreateChunkResponse",
    "LineageRowsResponse",
    "SupersedeRequest",
    "get_lineage_service",
    "router",
]
