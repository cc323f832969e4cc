"""Pydantic request models for FastAPI endpoints."""

from typing import Optional

from pydantic import BaseModel, Field

from config.config import CombineMode
from models.search_result import BackendId, RequestHints


class RequestHintsDTO(BaseModel):
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    def to_hints(self) -> RequestHints:
        return RequestHints(
            latitude=self.latitude,
            longitude=self.longitude,
            city=self.city,
            country=self.country,
        )


class AskRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=2000)
    allowed_domains: Optional[list[str]] = Field(None, min_length=1, max_length=20)
    backends: Optional[list[BackendId]] = None
    max_results: Optional[int] = Field(None, ge=1, le=10)
    parallel: Optional[bool] = None
    combine_mode: Optional[CombineMode] = None
    hints: Optional[RequestHintsDTO] = None
