"""Custom exceptions for the citation lineage service.

All exceptions are namespaced under LineageError so callers can catch
any write-path rejection with a single except clause.

Read-path anomalies (dangling references, depth truncation) are not
exceptions; they are reported as LineageWarning records alongside a
partial result (see src.schemas.lineage_models).

Pattern: Namespaced Custom Exceptions
"""

from collections.abc import Iterable


class LineageError(Exception):
    """Base exception for all lineage-related errors.

    All lineage exceptions inherit from this class to enable
    catching any lineage error with a single except clause.
    """

    def __init__(self, message: str, chunk_id: str | None = None) -> None:
        """Initialize lineage error.

        Args:
            message: Error description
            chunk_id: Identifier of the chunk the error concerns
        """
        self.chunk_id = chunk_id
        super().__init__(message)


class ChunkNotFoundError(LineageError):
    """Raised when an operation requires a chunk that does not exist.

    Point lookups return None instead of raising; this error is for
    operations (supersede, add citation from the API) that cannot
    proceed without the chunk.
    """

    def __init__(self, chunk_id: str) -> None:
        super().__init__(f"Chunk '{chunk_id}' not found", chunk_id)


class DuplicateIdError(LineageError):
    """Raised when a chunk is written with an identifier already in use.

    Chunks are immutable and there is no upsert path.
    """

    def __init__(self, chunk_id: str) -> None:
        super().__init__(f"Chunk '{chunk_id}' already exists", chunk_id)


class InvalidReferenceError(LineageError):
    """Raised when a citation edge references a chunk that does not exist."""

    def __init__(
        self,
        source_chunk_id: str,
        target_chunk_id: str,
        missing_ids: Iterable[str],
    ) -> None:
        """Initialize invalid reference error.

        Args:
            source_chunk_id: Citing chunk of the rejected edge
            target_chunk_id: Cited chunk of the rejected edge
            missing_ids: The identifiers that could not be resolved
        """
        self.source_chunk_id = source_chunk_id
        self.target_chunk_id = target_chunk_id
        self.missing_ids = tuple(missing_ids)
        super().__init__(
            f"Citation {source_chunk_id} -> {target_chunk_id} references "
            f"unknown chunk(s): {', '.join(self.missing_ids)}",
            source_chunk_id,
        )


class RawChunkCitesError(LineageError):
    """Raised when a stage-0 (raw) chunk would gain an outgoing edge.

    Raw chunks are leaves of the citation graph.
    """

    def __init__(self, chunk_id: str, target_chunk_id: str) -> None:
        self.target_chunk_id = target_chunk_id
        super().__init__(
            f"Raw chunk '{chunk_id}' cannot cite '{target_chunk_id}'",
            chunk_id,
        )


class StageOrderError(LineageError):
    """Raised under strict stage ordering when a chunk cites a later stage."""

    def __init__(
        self,
        chunk_id: str,
        source_stage: int,
        target_chunk_id: str,
        target_stage: int,
    ) -> None:
        self.source_stage = source_stage
        self.target_chunk_id = target_chunk_id
        self.target_stage = target_stage
        super().__init__(
            f"Chunk '{chunk_id}' (stage {source_stage}) cannot cite "
            f"'{target_chunk_id}' (stage {target_stage})",
            chunk_id,
        )


class ImmutableChunkError(LineageError):
    """Raised when a supersession would rewrite existing provenance.

    A chunk can be superseded once; the replacement must be a new chunk.
    """

    def __init__(self, chunk_id: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Chunk '{chunk_id}': {reason}", chunk_id)


__all__ = [
    "ChunkNotFoundError",
    "DuplicateIdError",
    "ImmutableChunkError",
    "InvalidReferenceError",
    "LineageError",
    "RawChunkCitesError",
    "StageOrderError",
]
