"""Application configuration using Pydantic Settings.

Environment variables are loaded with the LINEAGE_ prefix.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.constants import DEFAULT_MAX_DEPTH, MAX_DEPTH_LIMIT


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Pattern: Pydantic Settings with Environment Variables
    """

    # Service configuration
    service_name: str = "citation-lineage"
    port: int = 8090
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")

    # Storage configuration
    storage_backend: Literal["memory", "sql"] = Field(
        default="memory",
        description="Store implementation used by the service",
    )
    database_url: str = Field(
        default="sqlite:///./data/lineage.db",
        description="SQLAlchemy database URL (sql backend only)",
    )

    # Lineage configuration
    max_lineage_depth: int = Field(
        default=DEFAULT_MAX_DEPTH,
        ge=1,
        le=MAX_DEPTH_LIMIT,
        description="Traversal cutoff; branches deeper than this are truncated",
    )
    strict_stage_ordering: bool = Field(
        default=False,
        description="Reject citations whose target stage exceeds the source stage",
    )

    model_config = SettingsConfigDict(
        env_prefix="LINEAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
