"""Chunk, citation and lineage schemas.

Models:
- Chunk: Immutable unit of text tagged with a provenance stage
- CitationEdge: Directed "source cites target" relationship
- LineageRow: One flat traversal entry (chunk, depth, parent)
- LineageTreeNode: Nested, enriched node of an assembled lineage forest
- LineageWarning: Non-fatal read-path anomaly reported with a result
- LineageResponse: Forest plus warnings for a single lineage query
- Supersession: Append-only link from a replaced chunk to its replacement

Anti-Pattern Compliance:
- No mutable default arguments (uses Field(default_factory=list))
- Frozen models for persisted records
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.core.constants import DEFAULT_RELATIONSHIP_TYPE, RAW_STAGE


# =============================================================================
# Enums
# =============================================================================

class ChunkKind(str, Enum):
    """Origin of a chunk.

    RAW chunks come from ingested source documents (stage 0).
    INSIGHT chunks are authored syntheses (stage 1 and above).
    """

    RAW = "raw"
    INSIGHT = "insight"


class WarningKind(str, Enum):
    """Categories of non-fatal anomalies found while reading lineage."""

    DANGLING_REFERENCE = "dangling_reference"
    DEPTH_LIMIT_EXCEEDED = "depth_limit_exceeded"


# =============================================================================
# Persisted Records
# =============================================================================

class Chunk(BaseModel):
    """An immutable, uniquely identified unit of text content.

    ``kind`` may be omitted; it is derived from ``stage`` (0 is raw,
    anything higher is an insight). When both are given they must agree.

    Attributes:
        chunk_id: Stable unique identifier, never reused
        text: Content body
        stage: 0 for raw source data, >=1 for synthesized insights
        kind: raw or insight
        author: Display metadata
        created_at: ISO 8601 creation timestamp (display metadata)
        source_title: Originating source title, e.g. "Market Survey Q3 2024"
        status: Publication status (display metadata)

    Example:
        >>> chunk = Chunk(chunk_id="raw_1", text="Q3 survey...", stage=0)
        >>> chunk.kind
        <ChunkKind.RAW: 'raw'>
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(..., min_length=1, description="Stable unique identifier")
    text: str = Field(..., description="Content body")
    stage: int = Field(..., ge=0, description="Provenance stage (0 = raw)")
    kind: ChunkKind = Field(..., description="raw or insight")
    author: str | None = Field(default=None, description="Author name")
    created_at: str | None = Field(default=None, description="ISO 8601 timestamp")
    source_title: str | None = Field(default=None, description="Originating source title")
    status: str = Field(default="published", description="Publication status")

    @model_validator(mode="before")
    @classmethod
    def derive_kind(cls, data: Any) -> Any:
        """Fill ``kind`` from ``stage`` when it is not supplied."""
        if isinstance(data, dict) and data.get("kind") is None:
            stage = data.get("stage")
            if isinstance(stage, int):
                data = {
                    **data,
                    "kind": ChunkKind.RAW if stage == RAW_STAGE else ChunkKind.INSIGHT,
                }
        return data

    @model_validator(mode="after")
    def check_kind_matches_stage(self) -> Chunk:
        """Raw chunks live at stage 0 and only there."""
        is_raw_stage = self.stage == RAW_STAGE
        if is_raw_stage != (self.kind == ChunkKind.RAW):
            raise ValueError(
                f"kind '{self.kind.value}' is inconsistent with stage {self.stage}"
            )
        return self

    @property
    def is_raw(self) -> bool:
        """Whether this chunk is a leaf of the citation graph."""
        return self.stage == RAW_STAGE


class CitationEdge(BaseModel):
    """A directed assertion that ``source_chunk_id`` cites ``target_chunk_id``.

    Two edges between the same pair with different markers are distinct
    citations and are both kept.

    Attributes:
        edge_id: Store-assigned row id (None before insertion)
        source_chunk_id: Citing chunk
        target_chunk_id: Cited chunk
        marker: Inline label in the source text, e.g. "[1]"
        relationship_type: Defaults to "cites"; no traversal semantics
    """

    model_config = ConfigDict(frozen=True)

    edge_id: int | None = Field(default=None, description="Store-assigned row id")
    source_chunk_id: str = Field(..., min_length=1)
    target_chunk_id: str = Field(..., min_length=1)
    marker: str | None = Field(default=None, description="Inline citation marker")
    relationship_type: str = Field(default=DEFAULT_RELATIONSHIP_TYPE)

    def same_citation(self, other: CitationEdge) -> bool:
        """Whether two edges describe the same textual citation."""
        return (
            self.source_chunk_id == other.source_chunk_id
            and self.target_chunk_id == other.target_chunk_id
            and self.marker == other.marker
            and self.relationship_type == other.relationship_type
        )


class Supersession(BaseModel):
    """Record that ``old_chunk_id`` was replaced by ``new_chunk_id``.

    Neither chunk is mutated; the record is the only trace of the correction.
    """

    model_config = ConfigDict(frozen=True)

    old_chunk_id: str
    new_chunk_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# =============================================================================
# Derived (never persisted)
# =============================================================================

class LineageRow(BaseModel):
    """One entry of a flat traversal result.

    ``node_id`` identifies this occurrence (a chunk reached by two paths
    yields two rows with different node ids). ``parent_node_id`` is None
    for depth-1 rows, whose parent is the query root.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    depth: int = Field(..., ge=1)
    parent_chunk_id: str
    marker: str | None = None
    node_id: int | None = None
    parent_node_id: int | None = None


class LineageWarning(BaseModel):
    """A non-fatal anomaly encountered while computing lineage.

    Attributes:
        kind: dangling_reference or depth_limit_exceeded
        chunk_id: Missing target, or the node whose branch was cut
        parent_chunk_id: Chunk that holds the offending edge
        depth: Depth at which the anomaly occurred
        message: Human-readable description
    """

    model_config = ConfigDict(frozen=True)

    kind: WarningKind
    chunk_id: str
    parent_chunk_id: str | None = None
    depth: int
    message: str


class LineageTreeNode(BaseModel):
    """A node in an assembled lineage forest."""

    node_id: int | None = Field(default=None, description="Per-occurrence identifier")
    chunk_id: str
    depth: int
    parent_chunk_id: str
    marker: str | None = None
    chunk: Chunk
    superseded_by: str | None = Field(
        default=None,
        description="Replacement chunk id when this chunk has been superseded",
    )
    children: list[LineageTreeNode] = Field(default_factory=list)

    def walk(self) -> list[LineageTreeNode]:
        """Return this node and all descendants in depth-first order."""
        nodes: list[LineageTreeNode] = []
        stack = [self]
        while stack:
            node = stack.pop()
            nodes.append(node)
            stack.extend(reversed(node.children))
        return nodes


class LineageResponse(BaseModel):
    """Full lineage of a chunk together with read-path metadata."""

    root_chunk_id: str
    max_depth: int
    nodes: list[LineageTreeNode] = Field(default_factory=list)
    warnings: list[LineageWarning] = Field(default_factory=list)
    truncated: bool = Field(
        default=False,
        description="True when at least one branch hit the depth cutoff",
    )
    node_count: int = 0


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
