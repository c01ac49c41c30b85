"""In-memory content and edge stores.

Implements:
- Chunk insertion with duplicate-id rejection (no upsert path)
- Point lookup returning None for unknown ids
- Append-only supersession records
- Citation edges indexed by source and by target
- Thread-safe writes using threading.Lock

Readers take the same lock only long enough to copy a list, so
concurrent lineage queries never observe a half-written edge.
"""

from __future__ import annotations

import itertools
import threading
from collections import defaultdict
from collections.abc import Callable, Sequence

from src.core.constants import DEFAULT_RELATIONSHIP_TYPE
from src.core.exceptions import (
    ChunkNotFoundError,
    DuplicateIdError,
    ImmutableChunkError,
)
from src.core.logging import get_logger
from src.lineage.validation import validate_citation
from src.schemas.lineage_models import Chunk, CitationEdge, Supersession


logger = get_logger(__name__)


class InMemoryContentStore:
    """In-memory chunk storage with thread-safe writes.

    Attributes:
        _chunks: Mapping of chunk id to Chunk
        _supersessions: Mapping of old chunk id to its Supersession record
        _lock: Serializes writes so id checks and inserts are atomic
    """

    def __init__(self) -> None:
        """Initialize empty store with thread lock."""
        self._chunks: dict[str, Chunk] = {}
        self._supersessions: dict[str, Supersession] = {}
        self._lock = threading.Lock()

    def get(self, chunk_id: str) -> Chunk | None:
        """Retrieve chunk by ID.

        Args:
            chunk_id: Chunk identifier

        Returns:
            Chunk if found, None otherwise
        """
        return self._chunks.get(chunk_id)

    def put(self, chunk: Chunk) -> Chunk:
        """Insert a new chunk.

        Args:
            chunk: Chunk to store

        Returns:
            The stored chunk

        Raises:
            DuplicateIdError: If the chunk id is already in use
        """
        with self._lock:
            self._insert(chunk)
        return chunk

    @property
    def write_lock(self) -> threading.Lock:
        """Lock held by every content write."""
        return self._lock

    def _insert(self, chunk: Chunk) -> None:
        # Caller holds write_lock
        if chunk.chunk_id in self._chunks:
            raise DuplicateIdError(chunk.chunk_id)
        self._chunks[chunk.chunk_id] = chunk
        logger.debug("chunk_stored", chunk_id=chunk.chunk_id, stage=chunk.stage)

    def supersede(self, old_chunk_id: str, new_chunk: Chunk) -> Supersession:
        """Insert ``new_chunk`` and record it as the replacement of ``old_chunk_id``.

        Args:
            old_chunk_id: Chunk being corrected
            new_chunk: Replacement chunk (must be new)

        Returns:
            The Supersession record
        """
        with self._lock:
            if old_chunk_id not in self._chunks:
                raise ChunkNotFoundError(old_chunk_id)
            existing = self._supersessions.get(old_chunk_id)
            if existing is not None:
                raise ImmutableChunkError(
                    old_chunk_id,
                    f"already superseded by '{existing.new_chunk_id}'",
                )
            if new_chunk.chunk_id in self._chunks:
                raise DuplicateIdError(new_chunk.chunk_id)

            record = Supersession(
                old_chunk_id=old_chunk_id,
                new_chunk_id=new_chunk.chunk_id,
            )
            self._chunks[new_chunk.chunk_id] = new_chunk
            self._supersessions[old_chunk_id] = record
        return record

    def get_supersession(self, chunk_id: str) -> Supersession | None:
        """Return the record superseding ``chunk_id``, or None."""
        return self._supersessions.get(chunk_id)

    def list_chunks(self) -> list[Chunk]:
        """List all chunks in insertion order."""
        with self._lock:
            return list(self._chunks.values())

    def close(self) -> None:
        """Nothing to release for an in-memory store."""


class InMemoryEdgeStore:
    """In-memory citation edge storage indexed by source and target.

    Edge validity is checked against the content store at write time
    only; reads never consult it.
    """

    def __init__(
        self,
        content: InMemoryContentStore,
        strict_stage_ordering: bool = False,
    ) -> None:
        """Initialize empty edge store.

        Args:
            content: Content store used to validate edge endpoints
            strict_stage_ordering: Reject citations of later-stage chunks
        """
        self._content = content
        self._strict_stage_ordering = strict_stage_ordering
        self._by_source: dict[str, list[CitationEdge]] = defaultdict(list)
        self._by_target: dict[str, list[CitationEdge]] = defaultdict(list)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add_edge(
        self,
        source_chunk_id: str,
        target_chunk_id: str,
        marker: str | None = None,
        relationship_type: str | None = None,
    ) -> CitationEdge:
        """Validate and insert a single citation edge.

        Returns:
            The stored edge (with ``edge_id`` assigned)
        """
        edge = CitationEdge(
            source_chunk_id=source_chunk_id,
            target_chunk_id=target_chunk_id,
            marker=marker,
            relationship_type=relationship_type or DEFAULT_RELATIONSHIP_TYPE,
        )
        return self.add_edges([edge])[0]

    def add_edges(self, edges: Sequence[CitationEdge]) -> list[CitationEdge]:
        """Validate every edge, then insert them all.

        An edge identical to one already stored (same source, target,
        marker and relationship type) is not duplicated; the stored edge
        is returned in its place.

        Args:
            edges: Edges to insert, ``edge_id`` is ignored

        Returns:
            Stored edges in input order
        """
        with self._lock:
            self._validate(edges, self._content.get)
            stored = self._insert(edges)

        logger.debug("edges_stored", count=len(stored))
        return stored

    def put_with_edges(self, chunk: Chunk, edges: Sequence[CitationEdge]) -> list[CitationEdge]:
        """Insert a new chunk together with the edges it declares.

        Both locks are held for the whole step, and every check runs
        before the first insert, so a rejected document leaves neither
        the chunk nor any of its edges behind.

        Raises:
            DuplicateIdError: If the chunk id is already in use
            InvalidReferenceError: If an edge names an unknown chunk
            RawChunkCitesError: If a raw chunk declares citations
            StageOrderError: Under strict stage ordering
        """
        with self._content.write_lock, self._lock:
            if self._content.get(chunk.chunk_id) is not None:
                raise DuplicateIdError(chunk.chunk_id)

            def lookup(chunk_id: str) -> Chunk | None:
                return chunk if chunk_id == chunk.chunk_id else self._content.get(chunk_id)

            self._validate(edges, lookup)
            self._content._insert(chunk)
            stored = self._insert(edges)

        logger.debug("document_stored", chunk_id=chunk.chunk_id, edges=len(stored))
        return stored

    def _validate(
        self,
        edges: Sequence[CitationEdge],
        lookup: Callable[[str], Chunk | None],
    ) -> None:
        for edge in edges:
            validate_citation(
                edge.source_chunk_id,
                edge.target_chunk_id,
                lookup(edge.source_chunk_id),
                lookup(edge.target_chunk_id),
                strict_stage_ordering=self._strict_stage_ordering,
            )

    def _insert(self, edges: Sequence[CitationEdge]) -> list[CitationEdge]:
        # Caller holds _lock and has validated every edge
        stored: list[CitationEdge] = []
        for edge in edges:
            existing = self._find_same(edge)
            if existing is not None:
                stored.append(existing)
                continue
            saved = edge.model_copy(update={"edge_id": next(self._ids)})
            self._by_source[saved.source_chunk_id].append(saved)
            self._by_target[saved.target_chunk_id].append(saved)
            stored.append(saved)
        return stored

    def _find_same(self, edge: CitationEdge) -> CitationEdge | None:
        for candidate in self._by_source.get(edge.source_chunk_id, ()):
            if candidate.same_citation(edge):
                return candidate
        return None

    def outgoing(self, chunk_id: str) -> list[CitationEdge]:
        """Edges whose source is ``chunk_id``, in insertion order."""
        with self._lock:
            return list(self._by_source.get(chunk_id, ()))

    def incoming(self, chunk_id: str) -> list[CitationEdge]:
        """Edges whose target is ``chunk_id``, in insertion order."""
        with self._lock:
            return list(self._by_target.get(chunk_id, ()))

    def close(self) -> None:
        """Nothing to release for an in-memory store."""


__all__ = [
    "InMemoryContentStore",
    "InMemoryEdgeStore",
]
