"""Unit tests for src/core/constants module."""

from src.core.constants import (
    API_PREFIX,
    API_VERSION,
    DEFAULT_MAX_DEPTH,
    DEFAULT_RELATIONSHIP_TYPE,
    MAX_DEPTH_LIMIT,
    RAW_STAGE,
    REFERENCES_HEADING,
)


class TestApiConstants:
    """Tests for API versioning constants."""

    def test_api_prefix_matches_version(self) -> None:
        assert API_VERSION == "v1"
        assert API_PREFIX == f"/{API_VERSION}"


class TestLineageConstants:
    """Tests for traversal and graph constants."""

    def test_default_max_depth(self) -> None:
        assert DEFAULT_MAX_DEPTH == 10

    def test_depth_limit_above_default(self) -> None:
        assert MAX_DEPTH_LIMIT == 100
        assert MAX_DEPTH_LIMIT > DEFAULT_MAX_DEPTH

    def test_raw_stage_is_zero(self) -> None:
        assert RAW_STAGE == 0

    def test_default_relationship_type(self) -> None:
        assert DEFAULT_RELATIONSHIP_TYPE == "cites"

    def test_references_heading(self) -> None:
        assert REFERENCES_HEADING == "References"
