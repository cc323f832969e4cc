from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Sentinel(str, Enum):
    NONE = "none"
    DENIED = "denied"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class CitationRecord:
    title: str
    url: str
    content_preview: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        # Stable UI shape
        return {
            "title": self.title,
            "url": self.url,
            "contentPreview": self.content_preview,
            "score": self.score,
        }


@dataclass(frozen=True)
class Answer:
    """
    Synthesizer output as a tagged result.

    ``sentinel`` distinguishes Denied / NotFound / Answered(text). ``error`` is
    set when generation failed and a static apology replaced the model output.
    """

    text: str
    sentinel: Sentinel = Sentinel.NONE
    citations: tuple[CitationRecord, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def is_denied(self) -> bool:
        return self.sentinel == Sentinel.DENIED

    @property
    def is_not_found(self) -> bool:
        return self.sentinel == Sentinel.NOT_FOUND

    @property
    def is_usable(self) -> bool:
        return self.sentinel == Sentinel.NONE and self.error is None
