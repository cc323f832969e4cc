"""
RetrievalOrchestrator - answers domain-restricted questions from search evidence.

Pipeline per call:
    VALIDATING -> PER_BACKEND_SEARCH -> FILTER_AND_MERGE -> SYNTHESIZING -> DONE

Key guarantees:
- No exceptions bubble up from orchestrate(); every failure maps to an outcome
- A denied query never reaches a search backend
- Synthesis only ever sees the complete merged evidence bundle
- No state is shared between calls
"""

import asyncio
import concurrent.futures
import functools
import time
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from config.config import BACKEND_ORDER, BackendConfig, BackendLimits, CombineMode, Config
from models.answer import Answer, CitationRecord, Sentinel
from models.errors import BackendError
from models.outcome import BackendDiagnostics, BackendStatus, Diagnostics, OrchestrationOutcome
from models.search_result import BackendId, RequestHints, SearchResult
from orchestrator.domain_filter import DomainFilter
from orchestrator.evidence_synthesizer import EvidenceSynthesizer, generation_failed_answer
from orchestrator.progress import ProgressSink, ProgressStep, emit_safely
from orchestrator.prompts import (
    DENIED_MESSAGE,
    NOT_FOUND_MESSAGE,
    NOTHING_FOUND_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
)
from orchestrator.query_classifier import ClassificationResult, QueryClassifier
from orchestrator.query_planner import QueryPlan, QueryPlanner
from orchestrator.result_merger import ResultMerger
from tools.search.contracts import SearchBackend
from tools.search.factory import DISPLAY_NAMES
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BackendRun:
    diagnostics: BackendDiagnostics
    results: tuple[SearchResult, ...] = ()


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class RetrievalOrchestrator:
    """
    Sequences classifier, planner, search backends, domain filter, merger and
    synthesizer for one question at a time.

    Example usage:
        orchestrator = RetrievalOrchestrator.from_config(Config.from_env())
        outcome = orchestrator.orchestrate_sync("What financial aid options exist?")
        print(outcome.text)
        for citation in outcome.citations:
            print(citation.url)
    """

    def __init__(
        self,
        *,
        llm,
        backends: Mapping[BackendId, SearchBackend | None],
        allowed_domains: Iterable[str],
        primary_domain: str,
        backend_config: BackendConfig | None = None,
        llm_timeout_s: float = 30.0,
        extract_keywords: bool = False,
    ):
        """
        Args:
            llm: Object exposing ``classify(prompt) -> str`` and ``generate(prompt) -> str``
            backends: Adapter per backend; ``None`` marks a backend without credentials
            allowed_domains: Default allow-list for the domain filter
            primary_domain: Site used for domain-restricted queries
            backend_config: Default per-call backend selection and limits
            llm_timeout_s: Bound on each classify/generate call
            extract_keywords: Enable keyword extraction in the planner
        """
        self._classifier = QueryClassifier(llm)
        self._planner = QueryPlanner(primary_domain, llm=llm, extract_keywords=extract_keywords)
        self._synthesizer = EvidenceSynthesizer(llm)
        self._backends = dict(backends)
        self.allowed_domains = frozenset(allowed_domains)
        self.backend_config = backend_config or BackendConfig()
        self.llm_timeout_s = llm_timeout_s

    @classmethod
    def from_config(cls, config: Config) -> "RetrievalOrchestrator":
        from api.factory import create_llm_client
        from tools.search.factory import create_backends_from_config

        return cls(
            llm=create_llm_client(config),
            backends=create_backends_from_config(config),
            allowed_domains=config.allowed_domains,
            primary_domain=config.primary_domain,
            backend_config=config.backend_config,
            llm_timeout_s=config.llm_timeout_s,
            extract_keywords=config.enable_keyword_extraction,
        )

    # ---------- helpers ----------

    async def _run_blocking(self, fn, *args, timeout_s: float):
        """Run a blocking SDK call in the default executor, bounded by ``timeout_s``."""
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, functools.partial(fn, *args)), timeout=timeout_s
        )

    def _finish(
        self,
        *,
        request_id: str,
        start: float,
        answer: Answer,
        diagnostics: Diagnostics,
        progress: ProgressSink | None,
    ) -> OrchestrationOutcome:
        outcome = OrchestrationOutcome(
            request_id=request_id,
            text=answer.text,
            sentinel=answer.sentinel,
            citations=answer.citations,
            diagnostics=diagnostics,
            latency_ms=_elapsed_ms(start),
        )
        emit_safely(
            progress,
            ProgressStep.DONE,
            "Search complete",
            sentinel=outcome.sentinel.value,
            citations=len(outcome.citations),
        )
        logger.info(
            "Orchestration complete",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "sentinel": outcome.sentinel.value,
                    "citations": len(outcome.citations),
                    "evidence": diagnostics.evidence_count,
                    "latency_ms": outcome.latency_ms,
                    "generation_error": answer.error,
                }
            },
        )
        return outcome

    # ---------- VALIDATING ----------

    async def _classify(self, query: str) -> ClassificationResult:
        try:
            return await self._run_blocking(
                self._classifier.classify, query, timeout_s=self.llm_timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(f"Query classification timed out after {self.llm_timeout_s}s; allowing query")
        except Exception as e:
            logger.warning(f"Query classification failed; allowing query: {e}")
        return ClassificationResult(in_domain=True, reason="fail_open")

    # ---------- PER_BACKEND_SEARCH ----------

    async def _plan(self, query: str) -> QueryPlan:
        try:
            return await self._run_blocking(self._planner.plan, query, timeout_s=self.llm_timeout_s)
        except asyncio.TimeoutError:
            logger.warning("Query planning timed out; using raw query")
        except Exception as e:
            logger.warning(f"Query planning failed; using raw query: {e}")
        return self._planner.passthrough(query)

    def _skipped(
        self, backend_id: BackendId, reason: str, progress: ProgressSink | None
    ) -> BackendRun:
        emit_safely(
            progress,
            ProgressStep.SEARCH_SKIP,
            f"{backend_id.value} search unavailable ({reason})",
            backend=backend_id.value,
            reason=reason,
        )
        return BackendRun(
            diagnostics=BackendDiagnostics(
                backend=backend_id, status=BackendStatus.SKIPPED, reason=reason
            )
        )

    def _failed(
        self, backend_id: BackendId, reason: str, start: float, progress: ProgressSink | None
    ) -> BackendRun:
        emit_safely(
            progress,
            ProgressStep.SEARCH_ERROR,
            f"{backend_id.value} search encountered an error, continuing",
            backend=backend_id.value,
            reason=reason,
        )
        return BackendRun(
            diagnostics=BackendDiagnostics(
                backend=backend_id,
                status=BackendStatus.ERROR,
                reason=reason,
                latency_ms=_elapsed_ms(start),
            )
        )

    async def _search_backend(
        self,
        backend: SearchBackend,
        plan: QueryPlan,
        limits: BackendLimits,
        domain_filter: DomainFilter,
        progress: ProgressSink | None,
    ) -> BackendRun:
        backend_id = backend.backend_id
        start = time.perf_counter()
        emit_safely(
            progress,
            ProgressStep.SEARCH_START,
            f"Searching {backend.display_name or backend_id.value}...",
            backend=backend_id.value,
        )

        try:
            if backend.domain_scoped:
                # Restricted results are scoped by construction; only the broad
                # query goes through the domain filter.
                restricted = await self._run_blocking(
                    backend.search,
                    plan.restricted,
                    limits.max_results,
                    limits.search_depth,
                    timeout_s=limits.timeout_s,
                )
                unrestricted = await self._run_blocking(
                    backend.search,
                    plan.unrestricted,
                    limits.max_results,
                    limits.search_depth,
                    timeout_s=limits.timeout_s,
                )
                kept = domain_filter.filter(unrestricted)[: limits.max_results]
                raw_count = len(restricted) + len(unrestricted)
                results = tuple(restricted) + kept
            else:
                found = await self._run_blocking(
                    backend.search,
                    plan.unrestricted,
                    limits.max_results,
                    limits.search_depth,
                    timeout_s=limits.timeout_s,
                )
                raw_count = len(found)
                results = tuple(found)
        except asyncio.TimeoutError:
            logger.warning(
                f"Search backend {backend_id.value} timed out",
                extra={"extra_fields": {"backend": backend_id.value, "timeout_s": limits.timeout_s}},
            )
            return self._failed(backend_id, "timeout", start, progress)
        except BackendError as e:
            logger.warning(
                f"Search backend {backend_id.value} failed: {e.message}",
                extra={"extra_fields": {"backend": backend_id.value, "code": e.code}},
            )
            return self._failed(backend_id, e.code, start, progress)
        except Exception as e:
            logger.error(
                f"Unexpected error from search backend {backend_id.value}: {e}",
                exc_info=True,
                extra={"extra_fields": {"backend": backend_id.value, "error_type": type(e).__name__}},
            )
            return self._failed(backend_id, "unexpected_error", start, progress)

        diagnostics = BackendDiagnostics(
            backend=backend_id,
            status=BackendStatus.OK if results else BackendStatus.EMPTY,
            raw_count=raw_count,
            filtered_count=len(results),
            latency_ms=_elapsed_ms(start),
        )
        emit_safely(
            progress,
            ProgressStep.SEARCH_COMPLETE,
            f"Found {len(results)} results from {backend.display_name or backend_id.value} "
            f"({raw_count} before filtering)",
            backend=backend_id.value,
            raw_count=raw_count,
            filtered_count=len(results),
            results_found=bool(results),
        )
        return BackendRun(diagnostics=diagnostics, results=results)

    async def _search_all(
        self,
        query: str,
        config: BackendConfig,
        domain_filter: DomainFilter,
        progress: ProgressSink | None,
    ) -> list[BackendRun]:
        runs: dict[BackendId, BackendRun] = {}
        runnable: list[SearchBackend] = []

        for backend_id in BACKEND_ORDER:
            if not config.is_enabled(backend_id):
                runs[backend_id] = self._skipped(backend_id, "disabled", progress)
            elif self._backends.get(backend_id) is None:
                runs[backend_id] = self._skipped(backend_id, "not_configured", progress)
            else:
                runnable.append(self._backends[backend_id])

        if runnable:
            plan = await self._plan(query)

            def search(backend: SearchBackend):
                limits = config.limits_for(backend.backend_id)
                return self._search_backend(backend, plan, limits, domain_filter, progress)

            if config.parallel:
                # Each run converts its own failures into a BackendRun
                completed = await asyncio.gather(*(search(b) for b in runnable))
            else:
                completed = [await search(b) for b in runnable]
            for run in completed:
                runs[run.diagnostics.backend] = run

        return [runs[b] for b in BACKEND_ORDER]

    # ---------- SYNTHESIZING ----------

    async def _synthesize(
        self, query: str, evidence: tuple[SearchResult, ...], hints: RequestHints | None
    ) -> Answer:
        try:
            return await self._run_blocking(
                self._synthesizer.synthesize, query, evidence, hints, timeout_s=self.llm_timeout_s
            )
        except asyncio.TimeoutError:
            logger.error(f"Answer generation timed out after {self.llm_timeout_s}s")
            return generation_failed_answer("timeout")
        except Exception as e:
            logger.error(f"Answer generation failed: {e}", exc_info=True)
            return generation_failed_answer(f"{type(e).__name__}: {e}")

    async def _synthesize_merged(
        self,
        query: str,
        runs: list[BackendRun],
        config: BackendConfig,
        hints: RequestHints | None,
        progress: ProgressSink | None,
    ) -> tuple[Answer, int]:
        evidence = ResultMerger(config.evidence_cap).merge(run.results for run in runs)
        emit_safely(
            progress,
            ProgressStep.FILTER_COMPLETE,
            f"Merged {sum(len(r.results) for r in runs)} results into {len(evidence)} documents",
            evidence=len(evidence),
        )
        if not evidence:
            return Answer(text=NOTHING_FOUND_MESSAGE), 0

        emit_safely(
            progress,
            ProgressStep.SYNTHESIZE_START,
            "Analyzing documents and generating answer...",
            evidence=len(evidence),
        )
        return await self._synthesize(query, evidence, hints), len(evidence)

    async def _synthesize_per_backend(
        self,
        query: str,
        runs: list[BackendRun],
        config: BackendConfig,
        hints: RequestHints | None,
        progress: ProgressSink | None,
    ) -> tuple[Answer, int]:
        merger = ResultMerger(config.evidence_cap)
        bundles = [
            (run.diagnostics.backend, merger.merge([run.results])) for run in runs if run.results
        ]
        evidence_count = sum(len(evidence) for _, evidence in bundles)
        emit_safely(
            progress,
            ProgressStep.FILTER_COMPLETE,
            f"Prepared {evidence_count} documents from {len(bundles)} backends",
            evidence=evidence_count,
        )
        if not bundles:
            return Answer(text=NOTHING_FOUND_MESSAGE), 0

        emit_safely(
            progress,
            ProgressStep.SYNTHESIZE_START,
            "Analyzing documents and generating answers...",
            evidence=evidence_count,
            backends=[b.value for b, _ in bundles],
        )
        if config.parallel:
            answers = await asyncio.gather(
                *(self._synthesize(query, evidence, hints) for _, evidence in bundles)
            )
        else:
            answers = [await self._synthesize(query, evidence, hints) for _, evidence in bundles]

        sections = [(backend_id, answer) for (backend_id, _), answer in zip(bundles, answers)]
        return self._combine_sections(sections, runs), evidence_count

    def _display_name(self, backend_id: BackendId) -> str:
        adapter = self._backends.get(backend_id)
        if adapter is not None and adapter.display_name:
            return adapter.display_name
        return DISPLAY_NAMES.get(backend_id, backend_id.value)

    def _single_source_footer(
        self, backend_id: BackendId, answer: Answer, runs: list[BackendRun]
    ) -> str:
        notes = [f"Results from {self._display_name(backend_id)} ({len(answer.citations)} sources)."]
        for run in runs:
            other = run.diagnostics
            if other.backend == backend_id:
                continue
            if other.status == BackendStatus.SKIPPED:
                notes.append(f"{self._display_name(other.backend)} search was unavailable.")
            else:
                notes.append(f"{self._display_name(other.backend)} search found no relevant information.")
        return f"\n\n*{' '.join(notes)}*"

    def _combine_sections(
        self, sections: list[tuple[BackendId, Answer]], runs: list[BackendRun]
    ) -> Answer:
        """
        Combine per-backend answers without re-synthesizing them.

        Usable answers are kept in their own voice under provenance headers so
        each citation stays attributable to the backend that produced it. A
        lone usable answer gets a footer saying what the other backends did.
        """
        usable = [(b, a) for b, a in sections if a.is_usable]

        if len(usable) == 1:
            backend_id, answer = usable[0]
            footer = self._single_source_footer(backend_id, answer, runs)
            return replace(answer, text=answer.text + footer)

        if usable:
            blocks = [f"## {self._display_name(b)}\n\n{a.text}" for b, a in usable]
            citations = _dedupe_citations(c for _, a in usable for c in a.citations)
            footer = (
                f"\n\n---\n\n*Results compiled from {len(citations)} sources "
                f"across {len(usable)} search backends.*"
            )
            return Answer(text="\n\n".join(blocks) + footer, citations=citations)

        if any(a.is_denied for _, a in sections):
            return Answer(text=DENIED_MESSAGE, sentinel=Sentinel.DENIED)

        not_found = [a for _, a in sections if a.is_not_found]
        if not_found:
            return Answer(
                text=NOT_FOUND_MESSAGE,
                sentinel=Sentinel.NOT_FOUND,
                citations=_dedupe_citations(c for a in not_found for c in a.citations),
            )

        return sections[0][1]

    # ---------- public API ----------

    async def orchestrate(
        self,
        query: str,
        allowed_domains: Iterable[str] | None = None,
        backend_config: BackendConfig | None = None,
        hints: RequestHints | None = None,
        progress: ProgressSink | None = None,
    ) -> OrchestrationOutcome:
        """
        Answer one question from search evidence.

        Args:
            query: The user's question
            allowed_domains: Allow-list for unrestricted web results (defaults to configured set)
            backend_config: Backend selection and limits for this call (defaults to configured)
            hints: Optional geo/context hints for the answer prompt
            progress: Optional sink for progress events

        Returns:
            OrchestrationOutcome; never raises (except cancellation)
        """
        request_id = str(uuid.uuid4())
        start = time.perf_counter()
        config = backend_config or self.backend_config
        domains = frozenset(allowed_domains) if allowed_domains is not None else self.allowed_domains

        logger.info(
            "Orchestration started",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "query_chars": len(query or ""),
                    "enabled_backends": sorted(b.value for b in config.enabled),
                    "parallel": config.parallel,
                    "combine_mode": config.combine_mode.value,
                }
            },
        )

        try:
            return await self._orchestrate(
                request_id, start, query, domains, config, hints, progress
            )
        except Exception as e:
            logger.error(
                f"Orchestration failed unexpectedly: {e}",
                exc_info=True,
                extra={"extra_fields": {"request_id": request_id}},
            )
            return self._finish(
                request_id=request_id,
                start=start,
                answer=Answer(text=UNEXPECTED_ERROR_MESSAGE, error=f"{type(e).__name__}: {e}"),
                diagnostics=Diagnostics(classification="error", combine_mode=config.combine_mode.value),
                progress=progress,
            )

    async def _orchestrate(
        self,
        request_id: str,
        start: float,
        query: str,
        domains: frozenset,
        config: BackendConfig,
        hints: RequestHints | None,
        progress: ProgressSink | None,
    ) -> OrchestrationOutcome:
        emit_safely(progress, ProgressStep.VALIDATE_START, "Validating query relevance...")
        classification = await self._classify(query)
        emit_safely(
            progress,
            ProgressStep.VALIDATE_COMPLETE,
            "Query validated" if classification.in_domain else "Query is out of scope",
            in_domain=classification.in_domain,
            reason=classification.reason,
        )

        if not classification.in_domain:
            emit_safely(progress, ProgressStep.QUERY_DENIED, "Query not related to supported topics")
            return self._finish(
                request_id=request_id,
                start=start,
                answer=Answer(text=DENIED_MESSAGE, sentinel=Sentinel.DENIED),
                diagnostics=Diagnostics(
                    classification=classification.reason, combine_mode=config.combine_mode.value
                ),
                progress=progress,
            )

        runs = await self._search_all(query, config, DomainFilter(domains), progress)

        if config.combine_mode == CombineMode.PROVENANCE:
            answer, evidence_count = await self._synthesize_per_backend(
                query, runs, config, hints, progress
            )
        else:
            answer, evidence_count = await self._synthesize_merged(
                query, runs, config, hints, progress
            )

        return self._finish(
            request_id=request_id,
            start=start,
            answer=answer,
            diagnostics=Diagnostics(
                classification=classification.reason,
                per_backend=tuple(run.diagnostics for run in runs),
                evidence_count=evidence_count,
                combine_mode=config.combine_mode.value,
            ),
            progress=progress,
        )

    def orchestrate_sync(
        self,
        query: str,
        allowed_domains: Iterable[str] | None = None,
        backend_config: BackendConfig | None = None,
        hints: RequestHints | None = None,
        progress: ProgressSink | None = None,
    ) -> OrchestrationOutcome:
        """
        Synchronous wrapper for orchestrate.

        When an event loop is already running in this thread, the call runs in a
        separate thread with its own loop.
        """
        coro_args = (query, allowed_domains, backend_config, hints, progress)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.orchestrate(*coro_args))

        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(asyncio.run, self.orchestrate(*coro_args))
            return future.result()


def _dedupe_citations(citations: Iterable[CitationRecord]) -> tuple[CitationRecord, ...]:
    seen: set[str] = set()
    unique = []
    for citation in citations:
        if citation.url in seen:
            continue
        seen.add(citation.url)
        unique.append(citation)
    return tuple(unique)
