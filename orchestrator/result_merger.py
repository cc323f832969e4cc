from collections.abc import Iterable, Sequence

from config.config import DEFAULT_EVIDENCE_CAP
from models.search_result import SearchResult


class ResultMerger:
    """
    Combines result sets from several queries/backends into one evidence bundle.

    Concatenate, drop repeated URLs (first occurrence wins), stable-sort by
    descending score, truncate to the cap. Deterministic for deterministic input
    and idempotent on its own output.
    """

    def __init__(self, cap: int = DEFAULT_EVIDENCE_CAP):
        if cap < 1:
            raise ValueError("evidence cap must be at least 1")
        self.cap = cap

    def merge(self, result_sets: Iterable[Sequence[SearchResult]]) -> tuple[SearchResult, ...]:
        seen: set[str] = set()
        unique: list[SearchResult] = []
        for results in result_sets:
            for result in results:
                if result.url in seen:
                    continue
                seen.add(result.url)
                unique.append(result)

        ranked = sorted(unique, key=lambda r: r.relevance_score, reverse=True)
        return tuple(ranked[: self.cap])
