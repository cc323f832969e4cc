"""Project search results into UI-safe citation records."""

from collections.abc import Iterable

from models.answer import CitationRecord
from models.search_result import SearchResult

PREVIEW_CHARS = 150


def _preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    collapsed = " ".join((text or "").split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[: limit - 3].rstrip() + "..."


def to_citation(result: SearchResult, preview_chars: int = PREVIEW_CHARS) -> CitationRecord:
    return CitationRecord(
        title=result.title,
        url=result.url,
        content_preview=_preview(result.content, preview_chars),
        score=round(result.relevance_score, 4),
    )


def format_citations(results: Iterable[SearchResult]) -> tuple[CitationRecord, ...]:
    return tuple(to_citation(r) for r in results)
