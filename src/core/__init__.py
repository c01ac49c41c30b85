"""Core module - Configuration, logging, constants and exceptions.

Exports:
    - Settings, get_settings: Pydantic Settings configuration
    - configure_logging, get_logger: Structured logging (structlog)
    - Traversal and API constants
    - Exception classes: LineageError and its write-path subclasses
"""

from src.core.config import Settings, get_settings
from src.core.constants import (
    API_PREFIX,
    API_VERSION,
    DEFAULT_MAX_DEPTH,
    DEFAULT_RELATIONSHIP_TYPE,
    RAW_STAGE,
)
from src.core.exceptions import (
    ChunkNotFoundError,
    DuplicateIdError,
    ImmutableChunkError,
    InvalidReferenceError,
    LineageError,
    RawChunkCitesError,
    StageOrderError,
)
from src.core.logging import configure_logging, get_logger


__all__ = [
    # Constants
    "API_PREFIX",
    "API_VERSION",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_RELATIONSHIP_TYPE",
    "RAW_STAGE",
    # Exceptions
    "ChunkNotFoundError",
    "DuplicateIdError",
    "ImmutableChunkError",
    "InvalidReferenceError",
    "LineageError",
    "RawChunkCitesError",
    # Configuration
    "Settings",
    "StageOrderError",
    # Logging
    "configure_logging",
    "get_logger",
    "get_settings",
]
