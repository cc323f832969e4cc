from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from models.answer import CitationRecord, Sentinel
from models.search_result import BackendId


class BackendStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class BackendDiagnostics:
    backend: BackendId
    status: BackendStatus
    raw_count: int = 0
    filtered_count: int = 0
    reason: str | None = None  # "disabled", "not_configured", "timeout", ...
    latency_ms: int = 0

    @property
    def ran(self) -> bool:
        return self.status in (BackendStatus.OK, BackendStatus.EMPTY, BackendStatus.ERROR)


@dataclass(frozen=True)
class Diagnostics:
    classification: str = "in_domain"  # in_domain | denied | fail_open
    per_backend: tuple[BackendDiagnostics, ...] = field(default_factory=tuple)
    evidence_count: int = 0
    combine_mode: str = "merged"

    def status_of(self, backend: BackendId) -> BackendStatus | None:
        for diag in self.per_backend:
            if diag.backend == backend:
                return diag.status
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "classification": self.classification,
            "combineMode": self.combine_mode,
            "perBackendStatus": {
                d.backend.value: {
                    "status": d.status.value,
                    "reason": d.reason,
                    "latencyMs": d.latency_ms,
                }
                for d in self.per_backend
            },
            "counts": {
                "backendsRun": [d.backend.value for d in self.per_backend if d.ran],
                "rawResults": {d.backend.value: d.raw_count for d in self.per_backend},
                "filteredResults": {d.backend.value: d.filtered_count for d in self.per_backend},
                "evidence": self.evidence_count,
            },
        }


@dataclass(frozen=True)
class OrchestrationOutcome:
    request_id: str
    text: str
    sentinel: Sentinel
    citations: tuple[CitationRecord, ...]
    diagnostics: Diagnostics
    latency_ms: int = 0
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )

    @property
    def denied(self) -> bool:
        return self.sentinel == Sentinel.DENIED

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "answer": self.text,
            "sentinel": self.sentinel.value,
            "citations": [c.to_dict() for c in self.citations],
            "diagnostics": self.diagnostics.to_dict(),
            "latency_ms": self.latency_ms,
            "timestamp": self.timestamp,
        }
