"""Citation marker package.

Resolves inline ``[N]`` markers of an authored document to target chunk
ids through the document's References section. Used by ingestion only;
lineage traversal never parses text.
"""

from src.citations.markers import (
    document_body,
    extract_citation_markers,
    parse_citation_map,
    resolve_citations,
)


__all__ = [
    "document_body",
    "extract_citation_markers",
    "parse_citation_map",
    "resolve_citations",
]
