"""Integration Test Fixtures.

Pattern: Shared fixtures for integration tests
Anti-Pattern Avoided: Fixture reuse without explicit scope

Provides:
- A SQL-backed store on a throwaway SQLite file
- A LineageService over that store
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from src.core.config import Settings
from src.lineage.service import LineageService
from src.stores.sql import SqlLineageStore


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite URL in a nested directory that does not exist yet."""
    return f"sqlite:///{tmp_path / 'data' / 'lineage.db'}"


@pytest.fixture
def sql_store(database_url: str) -> Iterator[SqlLineageStore]:
    """Open a fresh SQL store and dispose of it afterwards."""
    store = SqlLineageStore(database_url)
    yield store
    store.close()


@pytest.fixture
def sql_service(sql_store: SqlLineageStore) -> LineageService:
    """LineageService with one SQL store acting as content and edge store."""
    return LineageService(
        sql_store,
        sql_store,
        settings=Settings(storage_backend="sql", max_lineage_depth=10),
    )
