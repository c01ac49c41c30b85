"""Storage backends for chunks and citation edges.

- InMemoryContentStore / InMemoryEdgeStore: thread-locked dictionaries
- SqlLineageStore: SQLAlchemy tables ``content``, ``citations``, ``supersessions``
- build_stores: construct the configured backend
"""

from __future__ import annotations

from src.core.config import Settings
from src.stores.memory import InMemoryContentStore, InMemoryEdgeStore
from src.stores.protocols import ContentStoreProtocol, EdgeStoreProtocol
from src.stores.sql import SqlLineageStore


def build_stores(settings: Settings) -> tuple[ContentStoreProtocol, EdgeStoreProtocol]:
    """Create the content and edge stores selected by ``settings.storage_backend``.

    Args:
        settings: Application settings

    Returns:
        (content_store, edge_store); the SQL backend returns one object twice
    """
    if settings.storage_backend == "sql":
        store = SqlLineageStore(
            settings.database_url,
            strict_stage_ordering=settings.strict_stage_ordering,
        )
        return store, store

    content = InMemoryContentStore()
    edges = InMemoryEdgeStore(
        content,
        strict_stage_ordering=settings.strict_stage_ordering,
    )
    return content, edges


__all__ = [
    "ContentStoreProtocol",
    "EdgeStoreProtocol",
    "InMemoryContentStore",
    "InMemoryEdgeStore",
    "SqlLineageStore",
    "build_stores",
]
