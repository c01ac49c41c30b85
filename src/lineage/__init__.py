"""Citation lineage engine.

- traversal: bounded breadth-first transitive closure over citation edges
- tree: flat rows to nested, enriched forest
- service: LineageService façade over injected stores
"""

from src.lineage.service import LineageService, build_lineage_service
from src.lineage.traversal import (
    TraversalLevel,
    TraversalResult,
    iter_lineage_levels,
    traverse_lineage,
)
from src.lineage.tree import build_lineage_tree, count_nodes


__all__ = [
    "LineageService",
    "TraversalLevel",
    "TraversalResult",
    "build_lineage_service",
    "build_lineage_tree",
    "count_nodes",
    "iter_lineage_levels",
    "traverse_lineage",
]
