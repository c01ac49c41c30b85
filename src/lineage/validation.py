"""Write-path invariant checks shared by every store implementation.

Each check raises before anything is written so a rejected write never
leaves a partial chunk or edge behind.
"""

from __future__ import annotations

from src.core.exceptions import (
    InvalidReferenceError,
    RawChunkCitesError,
    StageOrderError,
)
from src.schemas.lineage_models import Chunk


def validate_citation(
    source_chunk_id: str,
    target_chunk_id: str,
    source: Chunk | None,
    target: Chunk | None,
    strict_stage_ordering: bool = False,
) -> None:
    """Check that an edge ``source -> target`` may be stored.

    Args:
        source_chunk_id: Id of the citing chunk
        target_chunk_id: Id of the cited chunk
        source: Resolved citing chunk, None if it does not exist
        target: Resolved cited chunk, None if it does not exist
        strict_stage_ordering: Also reject targets at a later stage

    Raises:
        InvalidReferenceError: If either chunk is missing
        RawChunkCitesError: If the source is a raw (stage 0) chunk
        StageOrderError: Under strict ordering, if target.stage > source.stage
    """
    if source is None or target is None:
        missing = [
            chunk_id
            for chunk_id, chunk in ((source_chunk_id, source), (target_chunk_id, target))
            if chunk is None
        ]
        raise InvalidReferenceError(source_chunk_id, target_chunk_id, missing)

    if source.is_raw:
        raise RawChunkCitesError(source_chunk_id, target_chunk_id)

    if strict_stage_ordering and target.stage > source.stage:
        raise StageOrderError(
            source_chunk_id,
            source.stage,
            target_chunk_id,
            target.stage,
        )
