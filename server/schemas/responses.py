"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CitationDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    url: str
    content_preview: str = Field(..., alias="contentPreview")
    score: float


class AskResponseDTO(BaseModel):
    request_id: str
    answer: str
    sentinel: str
    citations: list[CitationDTO] = Field(default_factory=list)
    diagnostics: dict[str, Any] = Field(default_factory=dict)
    latency_ms: int
    timestamp: str

    @classmethod
    def from_outcome(cls, outcome):
        """Convert OrchestrationOutcome to DTO."""
        return cls(
            request_id=outcome.request_id,
            answer=outcome.text,
            sentinel=outcome.sentinel.value,
            citations=[
                CitationDTO(
                    title=c.title,
                    url=c.url,
                    content_preview=c.content_preview,
                    score=c.score,
                )
                for c in outcome.citations
            ],
            diagnostics=outcome.diagnostics.to_dict(),
            latency_ms=outcome.latency_ms,
            timestamp=outcome.timestamp,
        )


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str = "1.0.0"
    backends: dict[str, bool] = Field(default_factory=dict)
