"""Shared utilities for FastAPI routes."""

from collections.abc import Mapping
from dataclasses import replace

from config.config import BACKEND_ORDER, BackendConfig
from server.schemas.requests import AskRequest

SENSITIVE_HEADERS = {"x-api-key", "authorization"}


def build_backend_config(request: AskRequest, defaults: BackendConfig) -> BackendConfig:
    """Apply per-request overrides on top of the process-wide backend configuration."""
    limits = dict(defaults.limits)
    if request.max_results is not None:
        limits = {
            backend: replace(defaults.limits_for(backend), max_results=request.max_results)
            for backend in BACKEND_ORDER
        }

    return defaults.with_overrides(
        enabled=frozenset(request.backends) if request.backends is not None else None,
        limits=limits,
        parallel=request.parallel,
        combine_mode=request.combine_mode,
    )


def redact_sensitive_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Redact auth-bearing headers before logging.
    """
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS and value:
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = value
    return redacted
