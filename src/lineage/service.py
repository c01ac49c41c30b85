"""Lineage service - the public façade over the content and edge stores.

Read path:
    get_chunk            point lookup (None when absent)
    get_direct_citations depth-1 slice of the lineage forest
    get_full_lineage     full forest + warnings
    get_lineage_rows     flat traversal rows + warnings
    get_cited_by         reverse lookup ("who cites me")

Write path:
    put_chunk            insert an immutable chunk
    add_citation         insert one validated edge
    ingest_document      chunk + edges resolved from its References section
    supersede            replacement chunk + append-only supersession link

Write-path errors propagate to the caller and abort only the offending
write. Read-path anomalies never raise; they come back as warnings.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache

from src.citations.markers import resolve_citations
from src.core.config import Settings, get_settings
from src.core.constants import DEFAULT_RELATIONSHIP_TYPE
from src.core.exceptions import (
    ChunkNotFoundError,
    DuplicateIdError,
    LineageError,
)
from src.core.logging import get_logger
from src.lineage.traversal import TraversalResult, traverse_lineage
from src.lineage.tree import build_lineage_tree, count_nodes
from src.schemas.lineage_models import (
    Chunk,
    CitationEdge,
    LineageResponse,
    LineageTreeNode,
    Supersession,
)
from src.stores.protocols import ContentStoreProtocol, EdgeStoreProtocol


logger = get_logger(__name__)


class LineageService:
    """Citation lineage operations over injected stores.

    Example:
        >>> content = InMemoryContentStore()
        >>> service = LineageService(content, InMemoryEdgeStore(content))
        >>> service.put_chunk(Chunk(chunk_id="raw_1", text="...", stage=0))
        >>> service.put_chunk(Chunk(chunk_id="ins_1", text="... [1]", stage=1))
        >>> service.add_citation("ins_1", "raw_1", "[1]")
        >>> service.get_lineage_rows("ins_1").rows[0].chunk_id
        'raw_1'
    """

    def __init__(
        self,
        content: ContentStoreProtocol,
        edges: EdgeStoreProtocol,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            content: Chunk store
            edges: Citation edge store
            settings: Supplies the default depth cutoff
        """
        self._content = content
        self._edges = edges
        self._settings = settings or get_settings()

    @property
    def content(self) -> ContentStoreProtocol:
        """The injected content store."""
        return self._content

    @property
    def edges(self) -> EdgeStoreProtocol:
        """The injected edge store."""
        return self._edges

    @property
    def max_depth(self) -> int:
        """Default traversal cutoff."""
        return self._settings.max_lineage_depth

    # =========================================================================
    # Read path
    # =========================================================================

    def get_chunk(self, chunk_id: str) -> Chunk | None:
        """Return the chunk, or None when it does not exist."""
        return self._content.get(chunk_id)

    def get_lineage_rows(
        self,
        chunk_id: str,
        max_depth: int | None = None,
    ) -> TraversalResult:
        """Flat lineage of ``chunk_id`` ordered by (depth, chunk_id).

        Args:
            chunk_id: Query root
            max_depth: Cutoff override, defaults to settings

        Returns:
            TraversalResult with rows and warnings
        """
        return traverse_lineage(
            chunk_id,
            self._edges,
            self._content,
            max_depth=self.max_depth if max_depth is None else max_depth,
        )

    def get_full_lineage(
        self,
        chunk_id: str,
        max_depth: int | None = None,
    ) -> LineageResponse:
        """Full provenance forest of ``chunk_id``.

        Each node carries its chunk record and, when the chunk has been
        superseded, the id of its replacement.
        """
        result = self.get_lineage_rows(chunk_id, max_depth)
        forest = build_lineage_tree(
            result.rows,
            self._content,
            superseded_by=self._superseded_by_lookup(),
        )
        response = LineageResponse(
            root_chunk_id=chunk_id,
            max_depth=result.max_depth,
            nodes=forest,
            warnings=result.warnings,
            truncated=result.truncated,
            node_count=count_nodes(forest),
        )
        logger.info(
            "lineage_computed",
            root=chunk_id,
            nodes=response.node_count,
            warnings=len(response.warnings),
            truncated=response.truncated,
        )
        return response

    def get_direct_citations(self, chunk_id: str) -> list[LineageTreeNode]:
        """Depth-1 nodes of the lineage forest (no children)."""
        result = traverse_lineage(chunk_id, self._edges, self._content, max_depth=1)
        return build_lineage_tree(
            result.rows,
            self._content,
            superseded_by=self._superseded_by_lookup(),
        )

    def get_cited_by(self, chunk_id: str) -> list[CitationEdge]:
        """Edges that cite ``chunk_id``, in insertion order."""
        return self._edges.incoming(chunk_id)

    def get_superseded_by(self, chunk_id: str) -> str | None:
        """Replacement chunk id for ``chunk_id``, if it has been superseded."""
        record = self._content.get_supersession(chunk_id)
        return record.new_chunk_id if record is not None else None

    def _superseded_by_lookup(self) -> Callable[[str], str | None]:
        return lru_cache(maxsize=None)(self.get_superseded_by)

    # =========================================================================
    # Write path
    # =========================================================================

    def put_chunk(self, chunk: Chunk) -> Chunk:
        """Insert an immutable chunk.

        Raises:
            DuplicateIdError: If the id is already in use
        """
        try:
            return self._content.put(chunk)
        except DuplicateIdError:
            logger.info("chunk_rejected", chunk_id=chunk.chunk_id, reason="duplicate_id")
            raise

    def add_citation(
        self,
        source_chunk_id: str,
        target_chunk_id: str,
        marker: str | None = None,
        relationship_type: str = DEFAULT_RELATIONSHIP_TYPE,
    ) -> CitationEdge:
        """Insert a citation edge ``source -> target``.

        Raises:
            InvalidReferenceError: If either chunk does not exist
            RawChunkCitesError: If the source is a raw chunk
            StageOrderError: Under strict stage ordering
        """
        try:
            edge = self._edges.add_edge(
                source_chunk_id,
                target_chunk_id,
                marker=marker,
                relationship_type=relationship_type,
            )
        except LineageError as e:
            logger.info(
                "citation_rejected",
                source=source_chunk_id,
                target=target_chunk_id,
                reason=type(e).__name__,
            )
            raise
        logger.info(
            "citation_added",
            source=source_chunk_id,
            target=target_chunk_id,
            marker=marker,
        )
        return edge

    def ingest_document(self, chunk: Chunk, markdown: str | None = None) -> list[CitationEdge]:
        """Store ``chunk`` with the citations declared in its References section.

        ``markdown`` defaults to the chunk's own text. The chunk and its
        edges are stored as one write, so a bad reference rejects the
        whole document and leaves nothing behind.

        Returns:
            The stored edges, in marker order

        Raises:
            DuplicateIdError: If the chunk id is already in use
            InvalidReferenceError: If a reference names an unknown chunk
            RawChunkCitesError: If a raw chunk declares references
            StageOrderError: Under strict stage ordering
        """
        triples = resolve_citations(chunk.chunk_id, markdown if markdown is not None else chunk.text)
        try:
            edges = self._edges.put_with_edges(
                chunk,
                [
                    CitationEdge(source_chunk_id=source, target_chunk_id=target, marker=marker)
                    for source, target, marker in triples
                ],
            )
        except LineageError as e:
            logger.info("document_rejected", chunk_id=chunk.chunk_id, reason=type(e).__name__)
            raise
        logger.info("document_ingested", chunk_id=chunk.chunk_id, citations=len(edges))
        return edges

    def supersede(self, old_chunk_id: str, new_chunk: Chunk) -> Supersession:
        """Replace ``old_chunk_id`` with ``new_chunk`` without mutating either.

        The old chunk and its edges stay queryable; lineage nodes for it
        report ``superseded_by``.

        Raises:
            ChunkNotFoundError: If the old chunk does not exist
            ImmutableChunkError: If the old chunk is already superseded
            DuplicateIdError: If the new chunk id is in use
        """
        record = self._content.supersede(old_chunk_id, new_chunk)
        logger.info("chunk_superseded", old=old_chunk_id, new=new_chunk.chunk_id)
        return record

    def require_chunk(self, chunk_id: str) -> Chunk:
        """Return the chunk or raise ChunkNotFoundError."""
        chunk = self._content.get(chunk_id)
        if chunk is None:
            raise ChunkNotFoundError(chunk_id)
        return chunk

    def close(self) -> None:
        """Close both stores."""
        self._edges.close()
        if self._content is not self._edges:
            self._content.close()


def build_lineage_service(settings: Settings | None = None) -> LineageService:
    """Create a LineageService over the stores selected by settings.

    Args:
        settings: Application settings, defaults to ``get_settings()``

    Returns:
        Service owning freshly opened stores; call ``close()`` at shutdown
    """
    # Imported here: the store modules import src.lineage.validation
    from src.stores import build_stores

    settings = settings or get_settings()
    content, edges = build_stores(settings)
    logger.info("lineage_service_created", backend=settings.storage_backend)
    return LineageService(content, edges, settings=settings)


__all__ = [
    "LineageService",
    "build_lineage_service",
]
