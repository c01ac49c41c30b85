"""Tests for the in-memory content and edge stores.

Pattern: Thread-safe in-memory storage
"""

import threading

import pytest

from src.core.exceptions import (
    ChunkNotFoundError,
    DuplicateIdError,
    ImmutableChunkError,
    InvalidReferenceError,
    RawChunkCitesError,
    StageOrderError,
)
from src.schemas.lineage_models import Chunk, CitationEdge
from src.stores import build_stores
from src.stores.memory import InMemoryContentStore, InMemoryEdgeStore
from src.stores.protocols import ContentStoreProtocol, EdgeStoreProtocol


@pytest.fixture
def seeded(content_store: InMemoryContentStore) -> InMemoryContentStore:
    content_store.put(Chunk(chunk_id="raw_1", text="source one", stage=0))
    content_store.put(Chunk(chunk_id="raw_2", text="source two", stage=0))
    content_store.put(Chunk(chunk_id="ins_1", text="synthesis", stage=1))
    return content_store


# =============================================================================
# Content store
# =============================================================================

class TestInMemoryContentStore:
    """Keyed, append-only chunk storage."""

    def test_satisfies_protocol(self, content_store: InMemoryContentStore) -> None:
        assert isinstance(content_store, ContentStoreProtocol)

    def test_put_and_get(self, content_store: InMemoryContentStore) -> None:
        chunk = Chunk(chunk_id="raw_1", text="t", stage=0)

        assert content_store.put(chunk) == chunk
        assert content_store.get("raw_1") == chunk

    def test_get_unknown_returns_none(self, content_store: InMemoryContentStore) -> None:
        assert content_store.get("nope") is None

    def test_duplicate_put_rejected_and_original_kept(
        self, seeded: InMemoryContentStore
    ) -> None:
        with pytest.raises(DuplicateIdError):
            seeded.put(Chunk(chunk_id="raw_1", text="overwrite", stage=0))

        assert seeded.get("raw_1").text == "source one"

    def test_list_chunks_in_insertion_order(self, seeded: InMemoryContentStore) -> None:
        assert [c.chunk_id for c in seeded.list_chunks()] == ["raw_1", "raw_2", "ins_1"]

    def test_supersede(self, seeded: InMemoryContentStore) -> None:
        record = seeded.supersede("ins_1", Chunk(chunk_id="ins_1b", text="fixed", stage=1))

        assert seeded.get("ins_1b").text == "fixed"
        assert seeded.get_supersession("ins_1") == record
        assert seeded.get_supersession("ins_1b") is None

    def test_supersede_unknown(self, seeded: InMemoryContentStore) -> None:
        with pytest.raises(ChunkNotFoundError):
            seeded.supersede("nope", Chunk(chunk_id="x", text="t", stage=1))

    def test_supersede_with_existing_id(self, seeded: InMemoryContentStore) -> None:
        with pytest.raises(DuplicateIdError):
            seeded.supersede("ins_1", Chunk(chunk_id="raw_2", text="t", stage=0))

        assert seeded.get_supersession("ins_1") is None

    def test_supersede_is_once_only(self, seeded: InMemoryContentStore) -> None:
        seeded.supersede("ins_1", Chunk(chunk_id="ins_1b", text="t", stage=1))

        with pytest.raises(ImmutableChunkError, match="ins_1b"):
            seeded.supersede("ins_1", Chunk(chunk_id="ins_1c", text="t", stage=1))

    def test_concurrent_puts_of_same_id(self, content_store: InMemoryContentStore) -> None:
        """Exactly one writer wins a race on the same id."""
        errors: list[Exception] = []

        def writer(n: int) -> None:
            try:
                content_store.put(Chunk(chunk_id="ins_race", text=f"v{n}", stage=1))
            except DuplicateIdError as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == 7
        assert content_store.get("ins_race") is not None


# =============================================================================
# Edge store
# =============================================================================

class TestInMemoryEdgeStore:
    """Validated citation edges indexed both ways."""

    @pytest.fixture
    def edges(self, seeded: InMemoryContentStore) -> InMemoryEdgeStore:
        return InMemoryEdgeStore(seeded)

    def test_satisfies_protocol(self, edges: InMemoryEdgeStore) -> None:
        assert isinstance(edges, EdgeStoreProtocol)

    def test_add_edge_assigns_ids(self, edges: InMemoryEdgeStore) -> None:
        first = edges.add_edge("ins_1", "raw_1", "[1]")
        second = edges.add_edge("ins_1", "raw_2", "[2]")

        assert (first.edge_id, second.edge_id) == (1, 2)
        assert first.relationship_type == "cites"

    def test_outgoing_and_incoming(self, edges: InMemoryEdgeStore) -> None:
        edges.add_edge("ins_1", "raw_2", "[1]")
        edges.add_edge("ins_1", "raw_1", "[2]")

        assert [e.target_chunk_id for e in edges.outgoing("ins_1")] == ["raw_2", "raw_1"]
        assert [e.source_chunk_id for e in edges.incoming("raw_1")] == ["ins_1"]
        assert edges.outgoing("raw_1") == []
        assert edges.incoming("nope") == []

    def test_identical_citation_not_duplicated(self, edges: InMemoryEdgeStore) -> None:
        first = edges.add_edge("ins_1", "raw_1", "[1]")
        again = edges.add_edge("ins_1", "raw_1", "[1]")

        assert again == first
        assert len(edges.outgoing("ins_1")) == 1

    def test_same_pair_different_marker_kept(self, edges: InMemoryEdgeStore) -> None:
        edges.add_edge("ins_1", "raw_1", "[1]")
        edges.add_edge("ins_1", "raw_1", "[3]")

        assert [e.marker for e in edges.outgoing("ins_1")] == ["[1]", "[3]"]

    def test_unknown_target_rejected(self, edges: InMemoryEdgeStore) -> None:
        with pytest.raises(InvalidReferenceError):
            edges.add_edge("ins_1", "raw_missing")

        assert edges.outgoing("ins_1") == []

    def test_raw_source_rejected(self, edges: InMemoryEdgeStore) -> None:
        with pytest.raises(RawChunkCitesError):
            edges.add_edge("raw_1", "raw_2")

    def test_batch_is_all_or_nothing(self, edges: InMemoryEdgeStore) -> None:
        batch = [
            CitationEdge(source_chunk_id="ins_1", target_chunk_id="raw_1", marker="[1]"),
            CitationEdge(source_chunk_id="ins_1", target_chunk_id="raw_missing", marker="[2]"),
        ]

        with pytest.raises(InvalidReferenceError):
            edges.add_edges(batch)

        assert edges.outgoing("ins_1") == []

    def test_outgoing_returns_copy(self, edges: InMemoryEdgeStore) -> None:
        edges.add_edge("ins_1", "raw_1")

        edges.outgoing("ins_1").clear()

        assert len(edges.outgoing("ins_1")) == 1


class TestPutWithEdges:
    """Chunk and declared edges stored as one write."""

    @staticmethod
    def _cites(source: str, *targets: str) -> list[CitationEdge]:
        return [
            CitationEdge(source_chunk_id=source, target_chunk_id=target, marker=f"[{n}]")
            for n, target in enumerate(targets, start=1)
        ]

    def test_stores_chunk_and_edges(self, seeded: InMemoryContentStore) -> None:
        edges = InMemoryEdgeStore(seeded)
        chunk = Chunk(chunk_id="ins_2", text="both [1][2]", stage=1)

        stored = edges.put_with_edges(chunk, self._cites("ins_2", "raw_1", "raw_2"))

        assert seeded.get("ins_2") == chunk
        assert [e.target_chunk_id for e in stored] == ["raw_1", "raw_2"]
        assert all(e.edge_id is not None for e in stored)

    def test_unknown_target_leaves_nothing(self, seeded: InMemoryContentStore) -> None:
        edges = InMemoryEdgeStore(seeded)
        chunk = Chunk(chunk_id="ins_2", text="t", stage=1)

        with pytest.raises(InvalidReferenceError):
            edges.put_with_edges(chunk, self._cites("ins_2", "raw_1", "raw_missing"))

        assert seeded.get("ins_2") is None
        assert edges.incoming("raw_1") == []

    def test_stage_order_rejection_leaves_nothing(self, seeded: InMemoryContentStore) -> None:
        seeded.put(Chunk(chunk_id="ins_late", text="t", stage=3))
        edges = InMemoryEdgeStore(seeded, strict_stage_ordering=True)
        chunk = Chunk(chunk_id="ins_early", text="t", stage=1)

        with pytest.raises(StageOrderError):
            edges.put_with_edges(chunk, self._cites("ins_early", "ins_late"))

        assert seeded.get("ins_early") is None
        assert edges.incoming("ins_late") == []

    def test_duplicate_id_checked_first(self, seeded: InMemoryContentStore) -> None:
        edges = InMemoryEdgeStore(seeded)

        with pytest.raises(DuplicateIdError):
            edges.put_with_edges(
                Chunk(chunk_id="ins_1", text="other", stage=1),
                self._cites("ins_1", "raw_1"),
            )

        assert seeded.get("ins_1").text == "synthesis"
        assert edges.outgoing("ins_1") == []

    def test_raw_chunk_with_edges_rejected(self, seeded: InMemoryContentStore) -> None:
        edges = InMemoryEdgeStore(seeded)

        with pytest.raises(RawChunkCitesError):
            edges.put_with_edges(
                Chunk(chunk_id="raw_3", text="t", stage=0),
                self._cites("raw_3", "raw_1"),
            )

        assert seeded.get("raw_3") is None

    def test_no_edges_stores_chunk(self, seeded: InMemoryContentStore) -> None:
        edges = InMemoryEdgeStore(seeded)

        assert edges.put_with_edges(Chunk(chunk_id="ins_2", text="t", stage=1), []) == []
        assert seeded.get("ins_2") is not None


class TestBuildStores:
    """build_stores wiring for the memory backend."""

    def test_memory_pair_shares_content(self, test_settings) -> None:
        content, edges = build_stores(test_settings)
        content.put(Chunk(chunk_id="raw_1", text="t", stage=0))
        content.put(Chunk(chunk_id="ins_1", text="t", stage=1))

        edges.add_edge("ins_1", "raw_1")

        assert isinstance(content, InMemoryContentStore)
        assert len(edges.outgoing("ins_1")) == 1
