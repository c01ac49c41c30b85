"""Citation marker resolution for authored markdown.

An authored document cites its sources with numeric markers in the
body and lists their targets in a trailing References section:

    ... suggests sustainable competitive positioning[1].

    ## References

    [1] ins_strategic_analysis_chunk_1
    [2] ins_growth_opportunity_chunk_2 - Growth Opportunity Analysis

Resolution is purely syntactic; chunk ids are read from the reference
lines, never inferred from the body text.
"""

from __future__ import annotations

import re

from src.core.constants import REFERENCES_HEADING
from src.core.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Module Constants
# =============================================================================

_REFERENCES_SECTION = re.compile(
    rf"##\s+{REFERENCES_HEADING}\s+(.*?)(?:\Z|##)",
    re.DOTALL,
)
_REFERENCE_LINE = re.compile(r"\[(\d+)\]\s+([a-zA-Z0-9_]+)")
_MARKER = re.compile(r"\[(\d+)\]")
_REFERENCES_HEADING_START = re.compile(rf"##\s+{REFERENCES_HEADING}\b")


def parse_citation_map(markdown: str) -> dict[str, str]:
    """Map each marker in the References section to its chunk id.

    Args:
        markdown: Full document text

    Returns:
        Ordered mapping such as ``{"[1]": "raw_market_survey_chunk_1"}``;
        empty when there is no References section. A marker listed twice
        keeps its last target.
    """
    match = _REFERENCES_SECTION.search(markdown)
    if match is None:
        return {}

    citation_map: dict[str, str] = {}
    for number, chunk_id in _REFERENCE_LINE.findall(match.group(1)):
        citation_map[f"[{number}]"] = chunk_id
    return citation_map


def extract_citation_markers(text: str) -> list[str]:
    """Unique citation markers in ``text``, in first-seen order.

    Example:
        >>> extract_citation_markers("A [2] b [1] c [2]")
        ['[2]', '[1]']
    """
    markers: list[str] = []
    for match in _MARKER.finditer(text):
        marker = match.group(0)
        if marker not in markers:
            markers.append(marker)
    return markers


def document_body(markdown: str) -> str:
    """Text preceding the References heading (the whole text if absent)."""
    match = _REFERENCES_HEADING_START.search(markdown)
    return markdown[: match.start()] if match else markdown


def resolve_citations(source_chunk_id: str, markdown: str) -> list[tuple[str, str, str]]:
    """Resolve a document's citations to ``(source, target, marker)`` triples.

    One triple is produced per reference line, in reference order, so
    two markers pointing at the same chunk become two citations. Body
    markers with no reference line are logged and skipped.

    Args:
        source_chunk_id: Id of the chunk the document becomes
        markdown: Document text including its References section

    Returns:
        Triples ready for the edge store
    """
    citation_map = parse_citation_map(markdown)

    unresolved = [
        marker
        for marker in extract_citation_markers(document_body(markdown))
        if marker not in citation_map
    ]
    if unresolved:
        logger.warning(
            "unresolved_citation_markers",
            chunk_id=source_chunk_id,
            markers=unresolved,
        )

    return [
        (source_chunk_id, target_chunk_id, marker)
        for marker, target_chunk_id in citation_map.items()
    ]


__all__ = [
    "document_body",
    "extract_citation_markers",
    "parse_citation_map",
    "resolve_citations",
]
