from dataclasses import dataclass

from models.errors import ClassificationFailure
from orchestrator.prompts import DENIED_TOKEN, build_classification_prompt
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClassificationResult:
    in_domain: bool
    reason: str = "in_domain"  # in_domain | denied | fail_open


class QueryClassifier:
    """
    Decides whether a query is in scope for the restricted domain.

    Fails open: if the classify capability errors or returns nothing usable the
    query is treated as in-domain, so a broken classifier never blocks a
    legitimate question.
    """

    def __init__(self, llm):
        self._llm = llm

    def _verdict(self, query: str) -> str:
        try:
            raw = self._llm.classify(build_classification_prompt(query))
        except Exception as e:
            raise ClassificationFailure(f"{type(e).__name__}: {e}") from e

        if not isinstance(raw, str) or not raw.strip():
            raise ClassificationFailure("classifier returned no verdict")
        return raw.strip().strip("\"'.`").strip().upper()

    def classify(self, query: str) -> ClassificationResult:
        try:
            verdict = self._verdict(query)
        except ClassificationFailure as e:
            logger.warning(
                "Query classification failed; allowing query",
                extra={"extra_fields": {"error": str(e)}},
            )
            return ClassificationResult(in_domain=True, reason="fail_open")

        if verdict == DENIED_TOKEN:
            logger.info(f"Query denied by classifier: '{query[:80]}'")
            return ClassificationResult(in_domain=False, reason="denied")

        return ClassificationResult(in_domain=True)
