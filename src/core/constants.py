"""Service constants and default values.

Provides centralized constants for the citation lineage service:
- API versioning
- Traversal defaults
- Relationship and marker conventions
"""

from typing import Final


# =============================================================================
# API Configuration
# =============================================================================

API_VERSION: Final[str] = "v1"
API_PREFIX: Final[str] = f"/{API_VERSION}"


# =============================================================================
# Traversal Defaults
# =============================================================================

# Safety valve against cycles and pathological chains, not a semantic limit.
DEFAULT_MAX_DEPTH: Final[int] = 10

# Largest cutoff accepted from configuration or a request.
MAX_DEPTH_LIMIT: Final[int] = 100

# Stage 0 chunks are raw source data and never cite anything.
RAW_STAGE: Final[int] = 0


# =============================================================================
# Citation Conventions
# =============================================================================

DEFAULT_RELATIONSHIP_TYPE: Final[str] = "cites"
REFERENCES_HEADING: Final[str] = "References"


__all__ = [
    "API_PREFIX",
    "API_VERSION",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_RELATIONSHIP_TYPE",
    "MAX_DEPTH_LIMIT",
    "RAW_STAGE",
    "REFERENCES_HEADING",
]
