from models.answer import Answer, Sentinel
from models.errors import GenerationFailure
from models.search_result import RequestHints, SearchResult
from orchestrator.citation_formatter import format_citations
from orchestrator.prompts import (
    DENIED_MESSAGE,
    DENIED_TOKEN,
    GENERATION_ERROR_MESSAGE,
    NOT_FOUND_MESSAGE,
    NOT_FOUND_TOKEN,
    build_synthesis_prompt,
)
from utils.logger import get_logger

logger = get_logger(__name__)


def generation_failed_answer(reason: str) -> Answer:
    return Answer(text=GENERATION_ERROR_MESSAGE, sentinel=Sentinel.NONE, error=reason)


class EvidenceSynthesizer:
    """
    Produces an answer grounded strictly in the supplied evidence.

    The generation prompt asks for the literal tokens DENIED / NOT_FOUND as
    control signals. Only an exact match (after trimming whitespace) counts; a
    token embedded in a longer answer is returned as a normal answer.
    """

    def __init__(self, llm):
        self._llm = llm

    def _generate(self, prompt: str) -> str:
        try:
            raw = self._llm.generate(prompt)
        except Exception as e:
            raise GenerationFailure(f"{type(e).__name__}: {e}") from e

        if not isinstance(raw, str) or not raw.strip():
            raise GenerationFailure("empty_output")
        return raw.strip()

    def synthesize(
        self,
        query: str,
        evidence: tuple[SearchResult, ...],
        hints: RequestHints | None = None,
    ) -> Answer:
        try:
            output = self._generate(build_synthesis_prompt(query, evidence, hints))
        except GenerationFailure as e:
            logger.error(
                f"Answer generation failed: {e}",
                extra={"extra_fields": {"evidence": len(evidence)}},
            )
            return generation_failed_answer(str(e))

        if output == DENIED_TOKEN:
            return Answer(text=DENIED_MESSAGE, sentinel=Sentinel.DENIED)

        citations = format_citations(evidence)
        if output == NOT_FOUND_TOKEN:
            return Answer(text=NOT_FOUND_MESSAGE, sentinel=Sentinel.NOT_FOUND, citations=citations)

        return Answer(text=output, sentinel=Sentinel.NONE, citations=citations)
