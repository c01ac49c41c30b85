"""SQL-backed lineage store (SQLAlchemy).

Persists chunks, citation edges and supersession records in three
tables. Secondary indexes on ``citations.source_chunk_id`` and
``citations.target_chunk_id`` keep the per-level traversal lookups
off a full scan.

A single SqlLineageStore satisfies both ContentStoreProtocol and
EdgeStoreProtocol. Writes run inside one transaction each and are
serialized through a lock, so an invariant failure rolls back cleanly.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from src.core.constants import DEFAULT_RELATIONSHIP_TYPE
from src.core.exceptions import (
    ChunkNotFoundError,
    DuplicateIdError,
    ImmutableChunkError,
)
from src.core.logging import get_logger
from src.lineage.validation import validate_citation
from src.schemas.lineage_models import Chunk, ChunkKind, CitationEdge, Supersession


logger = get_logger(__name__)


# =============================================================================
# Table Definitions
# =============================================================================

class Base(DeclarativeBase):
    pass


class ContentRow(Base):
    __tablename__ = "content"

    chunk_id: Mapped[str] = mapped_column(String(512), primary_key=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    stage: Mapped[int] = mapped_column(Integer, nullable=False)
    # 'raw' or 'insight'
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    author: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source_title: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="published")


class CitationRow(Base):
    __tablename__ = "citations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_chunk_id: Mapped[str] = mapped_column(
        String(512), ForeignKey("content.chunk_id"), nullable=False
    )
    target_chunk_id: Mapped[str] = mapped_column(
        String(512), ForeignKey("content.chunk_id"), nullable=False
    )
    citation_marker: Mapped[str | None] = mapped_column(String(64), nullable=True)
    relationship_type: Mapped[str] = mapped_column(
        String(64), nullable=False, default=DEFAULT_RELATIONSHIP_TYPE
    )

    __table_args__ = (
        Index("idx_citations_source", "source_chunk_id"),
        Index("idx_citations_target", "target_chunk_id"),
    )


class SupersessionRow(Base):
    __tablename__ = "supersessions"

    old_chunk_id: Mapped[str] = mapped_column(
        String(512), ForeignKey("content.chunk_id"), primary_key=True
    )
    new_chunk_id: Mapped[str] = mapped_column(
        String(512), ForeignKey("content.chunk_id"), nullable=False, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# =============================================================================
# Row <-> Model Mapping
# =============================================================================

def _chunk_from_row(row: ContentRow) -> Chunk:
    return Chunk(
        chunk_id=row.chunk_id,
        text=row.text,
        stage=row.stage,
        kind=ChunkKind(row.type),
        author=row.author,
        created_at=row.created_at,
        source_title=row.source_title,
        status=row.status,
    )


def _row_from_chunk(chunk: Chunk) -> ContentRow:
    return ContentRow(
        chunk_id=chunk.chunk_id,
        text=chunk.text,
        stage=chunk.stage,
        type=chunk.kind.value,
        author=chunk.author,
        created_at=chunk.created_at,
        source_title=chunk.source_title,
        status=chunk.status,
    )


def _edge_from_row(row: CitationRow) -> CitationEdge:
    return CitationEdge(
        edge_id=row.id,
        source_chunk_id=row.source_chunk_id,
        target_chunk_id=row.target_chunk_id,
        marker=row.citation_marker,
        relationship_type=row.relationship_type,
    )


def _supersession_from_row(row: SupersessionRow) -> Supersession:
    created_at = row.created_at
    # SQLite drops tzinfo on the way back
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return Supersession(
        old_chunk_id=row.old_chunk_id,
        new_chunk_id=row.new_chunk_id,
        created_at=created_at,
    )


# =============================================================================
# Store
# =============================================================================

class SqlLineageStore:
    """Content and edge store backed by a relational database.

    Example:
        >>> store = SqlLineageStore("sqlite:///./data/lineage.db")
        >>> store.put(Chunk(chunk_id="raw_1", text="...", stage=0))
        >>> store.outgoing("raw_1")
        []
        >>> store.close()
    """

    def __init__(
        self,
        database_url: str,
        strict_stage_ordering: bool = False,
        engine: Engine | None = None,
    ) -> None:
        """Open the database and create tables if missing.

        Args:
            database_url: SQLAlchemy URL
            strict_stage_ordering: Reject citations of later-stage chunks
            engine: Pre-built engine (overrides ``database_url``)
        """
        if engine is None:
            _ensure_sqlite_directory(database_url)
            engine = create_engine(database_url, pool_pre_ping=True)
        self._engine = engine
        self._sessions = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False, future=True
        )
        self._strict_stage_ordering = strict_stage_ordering
        self._write_lock = threading.Lock()
        Base.metadata.create_all(engine)
        logger.info("sql_store_opened", url=engine.url.render_as_string(hide_password=True))

    @property
    def engine(self) -> Engine:
        """Underlying SQLAlchemy engine."""
        return self._engine

    def _session(self) -> Session:
        return self._sessions()

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def get(self, chunk_id: str) -> Chunk | None:
        """Retrieve chunk by ID, None when absent."""
        with self._session() as session:
            row = session.get(ContentRow, chunk_id)
            return _chunk_from_row(row) if row is not None else None

    def put(self, chunk: Chunk) -> Chunk:
        """Insert a new chunk.

        Raises:
            DuplicateIdError: If the chunk id is already in use
        """
        with self._write_lock, self._session() as session, session.begin():
            if session.get(ContentRow, chunk.chunk_id) is not None:
                raise DuplicateIdError(chunk.chunk_id)
            session.add(_row_from_chunk(chunk))
        logger.debug("chunk_stored", chunk_id=chunk.chunk_id, stage=chunk.stage)
        return chunk

    def supersede(self, old_chunk_id: str, new_chunk: Chunk) -> Supersession:
        """Insert ``new_chunk`` and record it as the replacement of ``old_chunk_id``."""
        with self._write_lock, self._session() as session, session.begin():
            if session.get(ContentRow, old_chunk_id) is None:
                raise ChunkNotFoundError(old_chunk_id)
            existing = session.get(SupersessionRow, old_chunk_id)
            if existing is not None:
                raise ImmutableChunkError(
                    old_chunk_id,
                    f"already superseded by '{existing.new_chunk_id}'",
                )
            if session.get(ContentRow, new_chunk.chunk_id) is not None:
                raise DuplicateIdError(new_chunk.chunk_id)

            record = Supersession(
                old_chunk_id=old_chunk_id,
                new_chunk_id=new_chunk.chunk_id,
            )
            session.add(_row_from_chunk(new_chunk))
            session.flush()
            session.add(
                SupersessionRow(
                    old_chunk_id=record.old_chunk_id,
                    new_chunk_id=record.new_chunk_id,
                    created_at=record.created_at,
                )
            )
        return record

    def get_supersession(self, chunk_id: str) -> Supersession | None:
        """Return the record superseding ``chunk_id``, or None."""
        with self._session() as session:
            row = session.get(SupersessionRow, chunk_id)
            return _supersession_from_row(row) if row is not None else None

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def add_edge(
        self,
        source_chunk_id: str,
        target_chunk_id: str,
        marker: str | None = None,
        relationship_type: str | None = None,
    ) -> CitationEdge:
        """Validate and insert a single citation edge."""
        edge = CitationEdge(
            source_chunk_id=source_chunk_id,
            target_chunk_id=target_chunk_id,
            marker=marker,
            relationship_type=relationship_type or DEFAULT_RELATIONSHIP_TYPE,
        )
        return self.add_edges([edge])[0]

    def add_edges(self, edges: Sequence[CitationEdge]) -> list[CitationEdge]:
        """Validate and insert edges in one transaction.

        Identical citations already stored are returned instead of
        being inserted again.
        """
        with self._write_lock, self._session() as session, session.begin():
            stored = self._store_edges(session, edges)

        logger.debug("edges_stored", count=len(stored))
        return stored

    def put_with_edges(self, chunk: Chunk, edges: Sequence[CitationEdge]) -> list[CitationEdge]:
        """Insert a new chunk and the edges it declares in one transaction.

        Any rejection rolls back the chunk together with its edges.

        Raises:
            DuplicateIdError: If the chunk id is already in use
            InvalidReferenceError: If an edge names an unknown chunk
            RawChunkCitesError: If a raw chunk declares citations
            StageOrderError: Under strict stage ordering
        """
        with self._write_lock, self._session() as session, session.begin():
            if session.get(ContentRow, chunk.chunk_id) is not None:
                raise DuplicateIdError(chunk.chunk_id)
            session.add(_row_from_chunk(chunk))
            session.flush()
            stored = self._store_edges(session, edges)

        logger.debug("document_stored", chunk_id=chunk.chunk_id, edges=len(stored))
        return stored

    def _store_edges(self, session: Session, edges: Sequence[CitationEdge]) -> list[CitationEdge]:
        # Validates every edge before inserting any; runs inside the caller's transaction
        for edge in edges:
            source = session.get(ContentRow, edge.source_chunk_id)
            target = session.get(ContentRow, edge.target_chunk_id)
            validate_citation(
                edge.source_chunk_id,
                edge.target_chunk_id,
                _chunk_from_row(source) if source is not None else None,
                _chunk_from_row(target) if target is not None else None,
                strict_stage_ordering=self._strict_stage_ordering,
            )

        rows: list[CitationRow] = []
        for edge in edges:
            row = session.scalars(
                select(CitationRow).where(
                    CitationRow.source_chunk_id == edge.source_chunk_id,
                    CitationRow.target_chunk_id == edge.target_chunk_id,
                    CitationRow.citation_marker.is_(None)
                    if edge.marker is None
                    else CitationRow.citation_marker == edge.marker,
                    CitationRow.relationship_type == edge.relationship_type,
                )
            ).first()
            if row is None:
                row = CitationRow(
                    source_chunk_id=edge.source_chunk_id,
                    target_chunk_id=edge.target_chunk_id,
                    citation_marker=edge.marker,
                    relationship_type=edge.relationship_type,
                )
                session.add(row)
                session.flush()
            rows.append(row)
        return [_edge_from_row(row) for row in rows]

    def outgoing(self, chunk_id: str) -> list[CitationEdge]:
        """Edges whose source is ``chunk_id``, in insertion order."""
        with self._session() as session:
            rows = session.scalars(
                select(CitationRow)
                .where(CitationRow.source_chunk_id == chunk_id)
                .order_by(CitationRow.id)
            )
            return [_edge_from_row(row) for row in rows]

    def incoming(self, chunk_id: str) -> list[CitationEdge]:
        """Edges whose target is ``chunk_id``, in insertion order."""
        with self._session() as session:
            rows = session.scalars(
                select(CitationRow)
                .where(CitationRow.target_chunk_id == chunk_id)
                .order_by(CitationRow.id)
            )
            return [_edge_from_row(row) for row in rows]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def ping(self) -> bool:
        """Check that the database answers a trivial query."""
        try:
            with self._session() as session:
                session.execute(select(1))
        except SQLAlchemyError as e:
            logger.warning("sql_store_unreachable", error=str(e))
            return False
        return True

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self._engine.dispose()
        logger.info("sql_store_closed")


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database:
        return
    if url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


__all__ = [
    "Base",
    "CitationRow",
    "ContentRow",
    "SqlLineageStore",
    "SupersessionRow",
]
