"""Test configuration and shared fixtures.

Pattern: Pytest fixtures, conftest.py
Anti-Pattern Avoided: Fixture reuse without explicit scope
"""

import pytest

from src.core.config import Settings
from src.lineage.service import LineageService
from src.schemas.lineage_models import Chunk
from src.stores.memory import InMemoryContentStore, InMemoryEdgeStore
from tests.fakes.fake_stores import FakeLineageStore


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        environment="test",
        log_level="DEBUG",
        storage_backend="memory",
        max_lineage_depth=10,
        strict_stage_ordering=False,
    )


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def content_store() -> InMemoryContentStore:
    """Create an empty in-memory content store."""
    return InMemoryContentStore()


@pytest.fixture
def edge_store(content_store: InMemoryContentStore) -> InMemoryEdgeStore:
    """Create an empty in-memory edge store bound to ``content_store``."""
    return InMemoryEdgeStore(content_store)


@pytest.fixture
def fake_store() -> FakeLineageStore:
    """Create an unvalidated fake store for malformed graphs."""
    return FakeLineageStore()


@pytest.fixture
def service(
    content_store: InMemoryContentStore,
    edge_store: InMemoryEdgeStore,
    test_settings: Settings,
) -> LineageService:
    """Create a LineageService over empty in-memory stores."""
    return LineageService(content_store, edge_store, settings=test_settings)


# ============================================================================
# Scenario Fixtures
# ============================================================================

@pytest.fixture
def simple_chain(service: LineageService) -> LineageService:
    """raw_1 (stage 0) <- ins_1 (stage 1) via marker [1]."""
    service.put_chunk(Chunk(chunk_id="raw_1", text="Q3 survey: 78% adoption.", stage=0))
    service.put_chunk(Chunk(chunk_id="ins_1", text="Adoption is accelerating [1].", stage=1))
    service.add_citation("ins_1", "raw_1", "[1]")
    return service


@pytest.fixture
def two_hop(service: LineageService) -> LineageService:
    """raw_A <- ins_B <- ins_C, plus ins_C -> raw_A directly."""
    service.put_chunk(
        Chunk(
            chunk_id="raw_A",
            text="Revenue grew 24% YoY.",
            stage=0,
            source_title="Q3 2024 Financial Report",
        )
    )
    service.put_chunk(Chunk(chunk_id="ins_B", text="Growth is strong [1].", stage=1))
    service.put_chunk(Chunk(chunk_id="ins_C", text="Outlook favorable [1][2].", stage=2))
    service.add_citation("ins_B", "raw_A", "[1]")
    service.add_citation("ins_C", "ins_B", "[1]")
    service.add_citation("ins_C", "raw_A", "[2]")
    return service
