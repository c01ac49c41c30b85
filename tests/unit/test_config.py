"""Unit tests for core configuration.

Pattern: Pydantic Settings testing
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.core.config import Settings, get_settings
from src.core.constants import MAX_DEPTH_LIMIT


class TestSettings:
    """Tests for Settings configuration class."""

    def test_settings_default_values(self) -> None:
        """Test that Settings has sensible defaults.

        Note: Environment variables may override defaults, so we check the
        Field defaults from the model rather than instantiated values.
        """
        fields = Settings.model_fields
        assert fields["service_name"].default == "citation-lineage"
        assert fields["port"].default == 8090
        assert fields["storage_backend"].default == "memory"
        assert fields["database_url"].default == "sqlite:///./data/lineage.db"
        assert fields["max_lineage_depth"].default == 10
        assert fields["strict_stage_ordering"].default is False
        assert fields["log_level"].default == "INFO"
        assert fields["environment"].default == "development"

    def test_settings_from_environment(self) -> None:
        """Test that Settings loads from environment variables."""
        env_vars = {
            "LINEAGE_STORAGE_BACKEND": "sql",
            "LINEAGE_DATABASE_URL": "sqlite:////tmp/lineage-test.db",
            "LINEAGE_MAX_LINEAGE_DEPTH": "4",
            "LINEAGE_STRICT_STAGE_ORDERING": "true",
            "LINEAGE_LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.storage_backend == "sql"
            assert settings.database_url == "sqlite:////tmp/lineage-test.db"
            assert settings.max_lineage_depth == 4
            assert settings.strict_stage_ordering is True
            assert settings.log_level == "DEBUG"

    def test_settings_env_prefix(self) -> None:
        """Test that Settings uses LINEAGE_ prefix correctly."""
        env_vars = {
            "MAX_LINEAGE_DEPTH": "2",
            "LINEAGE_MAX_LINEAGE_DEPTH": "7",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.max_lineage_depth == 7

    def test_max_depth_must_be_positive(self) -> None:
        """A zero cutoff would produce no lineage at all and is rejected."""
        with pytest.raises(ValidationError):
            Settings(max_lineage_depth=0)

    def test_max_depth_has_upper_bound(self) -> None:
        """Cutoffs past MAX_DEPTH_LIMIT are rejected at startup."""
        assert Settings(max_lineage_depth=MAX_DEPTH_LIMIT).max_lineage_depth == MAX_DEPTH_LIMIT
        with pytest.raises(ValidationError):
            Settings(max_lineage_depth=MAX_DEPTH_LIMIT + 1)

    def test_unknown_backend_rejected(self) -> None:
        """Only memory and sql backends exist."""
        with pytest.raises(ValidationError):
            Settings(storage_backend="neo4j")


class TestGetSettings:
    """Tests for get_settings cached factory."""

    def test_get_settings_returns_settings(self) -> None:
        """Test that get_settings returns a Settings instance."""
        get_settings.cache_clear()

        settings = get_settings()

        assert isinstance(settings, Settings)

    def test_get_settings_is_cached(self) -> None:
        """Test that get_settings returns the same instance (cached)."""
        get_settings.cache_clear()

        first_settings = get_settings()
        second_settings = get_settings()

        assert first_settings is second_settings

    def test_get_settings_cache_can_be_cleared(self) -> None:
        """Test that cache can be cleared for testing."""
        first_settings = get_settings()

        get_settings.cache_clear()
        second_settings = get_settings()

        assert first_settings.max_lineage_depth == second_settings.max_lineage_depth
