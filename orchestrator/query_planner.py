import json
import re
from dataclasses import dataclass, field

from orchestrator.prompts import build_keyword_prompt
from utils.logger import get_logger

logger = get_logger(__name__)

MAX_KEYWORDS = 5
STOP_WORDS = frozenset(
    {"what", "how", "where", "when", "why", "the", "and", "for", "are", "can", "will", "do", "does"}
)
_WORD_RE = re.compile(r"\b\w+\b")


@dataclass(frozen=True)
class QueryPlan:
    restricted: str
    unrestricted: str
    keywords: tuple[str, ...] = field(default_factory=tuple)


def _fallback_keywords(text: str) -> list[str]:
    words = _WORD_RE.findall(text.lower())
    return [w for w in words if len(w) > 2 and w not in STOP_WORDS][:MAX_KEYWORDS]


class QueryPlanner:
    """
    Turns a raw query into backend search expressions.

    ``restricted`` scopes the query to the primary domain with a ``site:``
    token; ``unrestricted`` is meant for broad web search. Passing the raw query
    through is always valid; keyword extraction is an optional refinement.
    """

    def __init__(self, primary_domain: str, llm=None, extract_keywords: bool = False):
        self.primary_domain = primary_domain
        self._llm = llm
        self._extract = extract_keywords and llm is not None

    def plan(self, query: str) -> QueryPlan:
        if not self._extract:
            return self.passthrough(query)

        keywords = self.extract_keywords(query)
        if not keywords:
            return self.passthrough(query)

        expression = " ".join(f'"{k}"' for k in keywords)
        return QueryPlan(
            restricted=f"site:{self.primary_domain} {expression}",
            unrestricted=expression,
            keywords=tuple(keywords),
        )

    def passthrough(self, query: str) -> QueryPlan:
        """Plan that sends the raw query text unchanged."""
        return QueryPlan(restricted=f"site:{self.primary_domain} {query}", unrestricted=query)

    def extract_keywords(self, query: str) -> list[str]:
        """
        Extract up to five salient search terms.

        Uses the classify capability and falls back to a stop-word tokenizer
        when the capability fails.
        """
        if self._llm is None:
            return _fallback_keywords(query)

        try:
            content = self._llm.classify(build_keyword_prompt(query))
        except Exception as e:
            logger.warning(f"Keyword extraction failed, using manual fallback: {e}")
            return _fallback_keywords(query)

        if not content or not content.strip():
            return _fallback_keywords(query)

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            words = _WORD_RE.findall(content.lower())
            return [w for w in words if len(w) > 2][:MAX_KEYWORDS]

        if isinstance(parsed, list):
            return [k.strip() for k in parsed if isinstance(k, str) and k.strip()][:MAX_KEYWORDS]
        return []
