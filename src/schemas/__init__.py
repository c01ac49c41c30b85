"""Pydantic Schemas Package.

This package contains Pydantic models for:
- Chunks and citation edges (persisted records)
- Lineage rows, tree nodes and warnings (derived, never persisted)
- Supersession records

All schemas support JSON Schema export via model_json_schema().

Pattern: Typed Data Transfer Objects (DTOs)
"""

from src.schemas.lineage_models import (
    Chunk,
    ChunkKind,
    CitationEdge,
    LineageResponse,
    LineageRow,
    LineageTreeNode,
    LineageWarning,
    Supersession,
    WarningKind,
)


__all__ = [
    "Chunk",
    "ChunkKind",
    "CitationEdge",
    "LineageResponse",
    "LineageRow",
    "LineageTreeNode",
    "LineageWarning",
    "Supersession",
    "WarningKind",
]
