"""Breadth-first citation lineage traversal.

Given a root chunk, collects every chunk reachable through outgoing
citation edges, annotated with depth and the citing parent, one level
at a time:

    level 1   outgoing(root)
    level d   outgoing(n) for every node n produced at level d-1

Policies:
- No visited set. A chunk cited along two paths appears once per path;
  cycles are bounded only by ``max_depth``.
- Rows deeper than ``max_depth`` are never produced. A node at the
  cutoff that still has outgoing edges yields a DEPTH_LIMIT_EXCEEDED
  warning instead of an error.
- When a content lookup is supplied, an edge whose target does not
  resolve is skipped with a DANGLING_REFERENCE warning and its branch
  is not expanded.
- Output is ordered by (depth, chunk_id); ties keep generation order.

``iter_lineage_levels`` exposes each level as a discrete batch so a
caller can stop between levels; ``traverse_lineage`` drains it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol

from src.core.constants import DEFAULT_MAX_DEPTH
from src.core.logging import get_logger
from src.schemas.lineage_models import (
    Chunk,
    CitationEdge,
    LineageRow,
    LineageWarning,
    WarningKind,
)


logger = get_logger(__name__)


class _OutgoingEdges(Protocol):
    def outgoing(self, chunk_id: str) -> list[CitationEdge]: ...


class _ChunkLookup(Protocol):
    def get(self, chunk_id: str) -> Chunk | None: ...


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True, slots=True)
class TraversalLevel:
    """Rows and warnings produced for one depth.

    Attributes:
        depth: Depth of every row in this level (1 = direct citations)
        rows: Rows sorted by chunk id
        warnings: Anomalies found while producing this level
    """

    depth: int
    rows: tuple[LineageRow, ...]
    warnings: tuple[LineageWarning, ...] = ()


@dataclass(slots=True)
class TraversalResult:
    """Flat lineage of ``root_chunk_id``.

    Attributes:
        root_chunk_id: Query root (never itself a row)
        max_depth: Cutoff the traversal ran with
        rows: All rows, ordered by (depth, chunk_id)
        warnings: Dangling references and truncated branches
    """

    root_chunk_id: str
    max_depth: int
    rows: list[LineageRow] = field(default_factory=list)
    warnings: list[LineageWarning] = field(default_factory=list)

    @property
    def truncated(self) -> bool:
        """Whether any branch was cut by the depth limit."""
        return any(w.kind == WarningKind.DEPTH_LIMIT_EXCEEDED for w in self.warnings)

    @property
    def depth_reached(self) -> int:
        """Deepest level that produced rows (0 for an empty lineage)."""
        return self.rows[-1].depth if self.rows else 0

    def at_depth(self, depth: int) -> list[LineageRow]:
        """Rows at a single depth."""
        return [row for row in self.rows if row.depth == depth]


# =============================================================================
# Traversal
# =============================================================================

def _dangling_warning(edge: CitationEdge, depth: int) -> LineageWarning:
    return LineageWarning(
        kind=WarningKind.DANGLING_REFERENCE,
        chunk_id=edge.target_chunk_id,
        parent_chunk_id=edge.source_chunk_id,
        depth=depth,
        message=(
            f"'{edge.source_chunk_id}' cites missing chunk "
            f"'{edge.target_chunk_id}'"
        ),
    )


def _truncation_warning(row: LineageRow, max_depth: int) -> LineageWarning:
    return LineageWarning(
        kind=WarningKind.DEPTH_LIMIT_EXCEEDED,
        chunk_id=row.chunk_id,
        parent_chunk_id=row.parent_chunk_id,
        depth=row.depth,
        message=f"lineage truncated at depth {max_depth} below '{row.chunk_id}'",
    )


def iter_lineage_levels(
    root_chunk_id: str,
    edges: _OutgoingEdges,
    content: _ChunkLookup | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Iterator[TraversalLevel]:
    """Yield the lineage of ``root_chunk_id`` one depth at a time.

    Node ids are assigned sequentially in output order, so across all
    yielded levels they number rows 1..N and every ``parent_node_id``
    refers to a row of the previous level.

    Args:
        root_chunk_id: Chunk whose citations are followed
        edges: Anything with ``outgoing(chunk_id)``
        content: Optional ``get(chunk_id)`` lookup used to skip dangling edges
        max_depth: Deepest level to produce (>= 1)

    Yields:
        TraversalLevel per non-empty depth, in ascending depth order

    Raises:
        ValueError: If ``max_depth`` < 1
    """
    if max_depth < 1:
        raise ValueError(f"max_depth must be >= 1, got {max_depth}")

    next_node_id = 1
    # (parent_chunk_id, parent_node_id) pairs to expand at the current depth
    frontier: list[tuple[str, int | None]] = [(root_chunk_id, None)]
    depth = 1

    while frontier:
        candidates: list[LineageRow] = []
        warnings: list[LineageWarning] = []

        for parent_chunk_id, parent_node_id in frontier:
            for edge in edges.outgoing(parent_chunk_id):
                if content is not None and content.get(edge.target_chunk_id) is None:
                    warning = _dangling_warning(edge, depth)
                    logger.warning(
                        "dangling_reference",
                        root=root_chunk_id,
                        source=edge.source_chunk_id,
                        target=edge.target_chunk_id,
                        depth=depth,
                    )
                    warnings.append(warning)
                    continue
                candidates.append(
                    LineageRow(
                        chunk_id=edge.target_chunk_id,
                        depth=depth,
                        parent_chunk_id=parent_chunk_id,
                        marker=edge.marker,
                        parent_node_id=parent_node_id,
                    )
                )

        # Stable: equal chunk ids keep parent/edge order
        candidates.sort(key=lambda row: row.chunk_id)
        rows: list[LineageRow] = []
        for row in candidates:
            rows.append(row.model_copy(update={"node_id": next_node_id}))
            next_node_id += 1

        if depth >= max_depth:
            for row in rows:
                if edges.outgoing(row.chunk_id):
                    warnings.append(_truncation_warning(row, max_depth))
            if any(w.kind == WarningKind.DEPTH_LIMIT_EXCEEDED for w in warnings):
                logger.warning(
                    "lineage_truncated",
                    root=root_chunk_id,
                    max_depth=max_depth,
                )
            frontier = []
        else:
            frontier = [(row.chunk_id, row.node_id) for row in rows]

        if rows or warnings:
            yield TraversalLevel(depth=depth, rows=tuple(rows), warnings=tuple(warnings))
        depth += 1


def traverse_lineage(
    root_chunk_id: str,
    edges: _OutgoingEdges,
    content: _ChunkLookup | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> TraversalResult:
    """Compute the full flat lineage of ``root_chunk_id``.

    An empty result is a valid outcome: the root is raw, or an insight
    with no recorded sources.

    Example:
        >>> result = traverse_lineage("ins_1", edge_store, content_store)
        >>> [(r.chunk_id, r.depth, r.parent_chunk_id) for r in result.rows]
        [('raw_1', 1, 'ins_1')]
    """
    result = TraversalResult(root_chunk_id=root_chunk_id, max_depth=max_depth)
    for level in iter_lineage_levels(root_chunk_id, edges, content, max_depth):
        result.rows.extend(level.rows)
        result.warnings.extend(level.warnings)

    logger.debug(
        "lineage_traversed",
        root=root_chunk_id,
        rows=len(result.rows),
        depth=result.depth_reached,
        warnings=len(result.warnings),
    )
    return result


__all__ = [
    "TraversalLevel",
    "TraversalResult",
    "iter_lineage_levels",
    "traverse_lineage",
]
