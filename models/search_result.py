from dataclasses import dataclass
from enum import Enum


class BackendId(str, Enum):
    VECTOR_STORE = "vector_store"
    TAVILY = "tavily"


class SearchDepth(str, Enum):
    BASIC = "basic"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class SearchResult:
    """
    One ranked document from a search backend, normalized at the adapter boundary.

    ``relevance_score`` is only compared within a single merge pass; backends
    without a score report 0.0. ``url`` is the de-duplication key.
    """

    title: str
    url: str
    source_backend: BackendId
    content: str = ""
    relevance_score: float = 0.0

    def __post_init__(self):
        try:
            score = float(self.relevance_score or 0.0)
        except (TypeError, ValueError):
            score = 0.0
        object.__setattr__(self, "relevance_score", score)


@dataclass(frozen=True)
class RequestHints:
    """Where the question came from; rendered into the synthesis prompt when present."""

    latitude: str | None = None
    longitude: str | None = None
    city: str | None = None
    country: str | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.latitude, self.longitude, self.city, self.country))
