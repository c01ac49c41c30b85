"""Store Protocols.

Duck typing protocols for the content and edge stores - enables
in-memory and SQL implementations (and test doubles) to be swapped
behind the lineage service.

Pattern: Protocol duck typing
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from src.schemas.lineage_models import Chunk, CitationEdge, Supersession


@runtime_checkable
class ContentStoreProtocol(Protocol):
    """Keyed, append-only storage of chunks.

    Methods:
        get: Point lookup, None when absent
        put: Insert a new chunk, DuplicateIdError when the id is taken
        supersede: Insert a replacement chunk and link it to the old one
        get_supersession: Replacement record for a chunk, if any
        close: Release resources
    """

    def get(self, chunk_id: str) -> Chunk | None:
        """Return the chunk, or None when no chunk has this id."""
        ...

    def put(self, chunk: Chunk) -> Chunk:
        """Insert a chunk.

        Raises:
            DuplicateIdError: If ``chunk.chunk_id`` already exists
        """
        ...

    def supersede(self, old_chunk_id: str, new_chunk: Chunk) -> Supersession:
        """Insert ``new_chunk`` as the replacement of ``old_chunk_id``.

        Raises:
            ChunkNotFoundError: If the old chunk does not exist
            ImmutableChunkError: If the old chunk was already superseded
            DuplicateIdError: If the new chunk id already exists
        """
        ...

    def get_supersession(self, chunk_id: str) -> Supersession | None:
        """Return the record superseding ``chunk_id``, if any."""
        ...

    def close(self) -> None:
        """Release store resources."""
        ...


@runtime_checkable
class EdgeStoreProtocol(Protocol):
    """Append-only storage of citation edges.

    Methods:
        add_edge: Validate and insert a single edge
        add_edges: Validate and insert a batch atomically
        put_with_edges: Insert a chunk and its edges atomically
        outgoing: Edges whose source is the given chunk, insertion order
        incoming: Edges whose target is the given chunk, insertion order
        close: Release resources
    """

    def add_edge(
        self,
        source_chunk_id: str,
        target_chunk_id: str,
        marker: str | None = None,
        relationship_type: str | None = None,
    ) -> CitationEdge:
        """Insert an edge.

        Raises:
            InvalidReferenceError: If either chunk id is unknown
            RawChunkCitesError: If the source is a stage-0 chunk
        """
        ...

    def add_edges(self, edges: Sequence[CitationEdge]) -> list[CitationEdge]:
        """Insert several edges; either all are stored or none are."""
        ...

    def put_with_edges(self, chunk: Chunk, edges: Sequence[CitationEdge]) -> list[CitationEdge]:
        """Insert a new chunk and its edges as one write.

        Either the chunk and every edge are stored, or nothing is.
        """
        ...

    def outgoing(self, chunk_id: str) -> list[CitationEdge]:
        """Edges citing from ``chunk_id``; empty when it cites nothing."""
        ...

    def incoming(self, chunk_id: str) -> list[CitationEdge]:
        """Edges citing ``chunk_id``; empty when nothing cites it."""
        ...

    def close(self) -> None:
        """Release store resources."""
        ...


__all__ = [
    "ContentStoreProtocol",
    "EdgeStoreProtocol",
]
