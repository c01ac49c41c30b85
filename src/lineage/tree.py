"""Lineage tree assembly.

Turns the flat, depth-ordered rows of a traversal into a forest rooted
at the query root's direct citations, enriching each node with its
chunk record.

Assembly works over an arena of occurrences keyed by ``node_id`` rather
than by chunk id, because one chunk reached along two paths is two
nodes in two places of the forest and must never be merged.

Rows are dropped (and logged) when:
- their chunk cannot be found in the content store
- their parent occurrence is missing or was itself dropped
- their depth is not exactly one more than their parent's
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable
from typing import Protocol, cast

from src.core.logging import get_logger
from src.schemas.lineage_models import Chunk, LineageRow, LineageTreeNode


logger = get_logger(__name__)


class _ChunkLookup(Protocol):
    def get(self, chunk_id: str) -> Chunk | None: ...


def _with_node_ids(rows: Iterable[LineageRow]) -> list[LineageRow]:
    """Give every row an occurrence id and link unlinked children.

    Rows produced by the traversal already carry ids and pass through
    untouched. Rows that only name a parent chunk are attached to the
    first occurrence of that chunk one level up.
    """
    ordered = sorted(rows, key=lambda row: row.depth)
    used = {row.node_id for row in ordered if row.node_id is not None}
    next_id = max(used, default=0) + 1

    linked: list[LineageRow] = []
    first_at: dict[tuple[str, int], int] = {}
    for row in ordered:
        updates: dict[str, int] = {}
        if row.node_id is None:
            updates["node_id"] = next_id
            next_id += 1
        if row.depth > 1 and row.parent_node_id is None:
            parent = first_at.get((row.parent_chunk_id, row.depth - 1))
            if parent is not None:
                updates["parent_node_id"] = parent
        if updates:
            row = row.model_copy(update=updates)
        first_at.setdefault((row.chunk_id, row.depth), row.node_id)  # type: ignore[arg-type]
        linked.append(row)
    return linked


def build_lineage_tree(
    rows: Iterable[LineageRow],
    content: _ChunkLookup,
    superseded_by: Callable[[str], str | None] | None = None,
) -> list[LineageTreeNode]:
    """Assemble a lineage forest from flat traversal rows.

    Args:
        rows: Flat rows, e.g. ``TraversalResult.rows``
        content: Lookup used to enrich each node with its Chunk
        superseded_by: Optional lookup of a chunk's replacement id

    Returns:
        Root nodes (depth-1 citations) with nested children, in row order

    Example:
        >>> forest = build_lineage_tree(result.rows, content_store)
        >>> [(n.chunk_id, [c.chunk_id for c in n.children]) for n in forest]
        [('ins_B', ['raw_A']), ('raw_A', [])]
    """
    arena = _with_node_ids(rows)

    # Forward pass: decide which occurrences survive.
    chunks: dict[str, Chunk | None] = {}
    kept: dict[int, LineageRow] = {}
    for row in arena:
        if row.chunk_id not in chunks:
            chunks[row.chunk_id] = content.get(row.chunk_id)
        if chunks[row.chunk_id] is None:
            logger.warning("lineage_node_missing_chunk", chunk_id=row.chunk_id, depth=row.depth)
            continue
        if row.depth == 1:
            kept[row.node_id] = row  # type: ignore[index]
            continue
        parent = kept.get(row.parent_node_id) if row.parent_node_id is not None else None
        if parent is None or parent.depth != row.depth - 1:
            logger.warning(
                "lineage_orphan_dropped",
                chunk_id=row.chunk_id,
                parent_chunk_id=row.parent_chunk_id,
                depth=row.depth,
            )
            continue
        kept[row.node_id] = row  # type: ignore[index]

    # Group children under their parent occurrence; None groups the roots.
    children_of: dict[int | None, list[int]] = defaultdict(list)
    for node_id, row in kept.items():
        children_of[row.parent_node_id if row.depth > 1 else None].append(node_id)

    # Deepest occurrences first, so every child exists before its parent.
    built: dict[int, LineageTreeNode] = {}
    for node_id, row in sorted(kept.items(), key=lambda item: item[1].depth, reverse=True):
        built[node_id] = LineageTreeNode(
            node_id=node_id,
            chunk_id=row.chunk_id,
            depth=row.depth,
            parent_chunk_id=row.parent_chunk_id,
            marker=row.marker,
            chunk=cast(Chunk, chunks[row.chunk_id]),
            superseded_by=superseded_by(row.chunk_id) if superseded_by else None,
            children=[built[child_id] for child_id in children_of.get(node_id, ())],
        )

    return [built[node_id] for node_id in children_of.get(None, ())]


def count_nodes(forest: Iterable[LineageTreeNode]) -> int:
    """Total number of nodes in a forest."""
    total = 0
    stack = list(forest)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.children)
    return total


__all__ = [
    "build_lineage_tree",
    "count_nodes",
]
