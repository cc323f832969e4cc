"""
Progress side-channel.

The orchestrator reports state transitions to an injected sink. Sinks are
fire-and-forget: the default sink discards events, and a sink that raises is
logged and ignored so listeners can never change an orchestration's result.
"""

import asyncio
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TextIO

from utils.logger import get_logger

logger = get_logger(__name__)


class ProgressStep(str, Enum):
    VALIDATE_START = "validate-start"
    VALIDATE_COMPLETE = "validate-complete"
    QUERY_DENIED = "query-denied"
    SEARCH_START = "search-start"
    SEARCH_COMPLETE = "search-complete"
    SEARCH_SKIP = "search-skip"
    SEARCH_ERROR = "search-error"
    FILTER_COMPLETE = "filter-complete"
    SYNTHESIZE_START = "synthesize-start"
    DONE = "done"


@dataclass(frozen=True)
class ProgressEvent:
    step: ProgressStep
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "progress", "step": self.step.value, "message": self.message, "data": self.data}


class ProgressSink:
    def emit(self, event: ProgressEvent) -> None:
        raise NotImplementedError


class NullProgressSink(ProgressSink):
    def emit(self, event: ProgressEvent) -> None:
        return None


class CollectingProgressSink(ProgressSink):
    """Keeps every event in order; used by tests and batch callers."""

    def __init__(self):
        self.events: list[ProgressEvent] = []

    def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def steps(self) -> list[ProgressStep]:
        return [e.step for e in self.events]


class QueueProgressSink(ProgressSink):
    """Feeds an asyncio queue so an HTTP handler can stream events while the call runs."""

    def __init__(self, queue: asyncio.Queue | None = None):
        self.queue: asyncio.Queue = queue or asyncio.Queue()

    def emit(self, event: ProgressEvent) -> None:
        self.queue.put_nowait(event)


class ConsoleProgressSink(ProgressSink):
    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stderr

    def emit(self, event: ProgressEvent) -> None:
        self.stream.write(f"\033[90m[{event.step.value}] {event.message}\033[0m\n")
        self.stream.flush()


def emit_safely(
    sink: ProgressSink | None, step: ProgressStep, message: str, **data: Any
) -> None:
    if sink is None:
        return
    try:
        sink.emit(ProgressEvent(step=step, message=message, data=data))
    except Exception as e:
        logger.warning(
            "Progress sink failed; event dropped",
            extra={"extra_fields": {"step": step.value, "error": str(e)}},
        )
