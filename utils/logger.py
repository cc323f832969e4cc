"""
Structured logging for the Policy Assistant.

Every module logs through ``get_logger(__name__)``. Records are written as one
JSON object per line to rotating files under ``LOG_DIR``; per-call fields
(request id, backend, counts) travel in ``extra={"extra_fields": {...}}`` and
are merged into the JSON object.

Environment:
    LOG_DIR          directory for log files (default: logs)
    LOG_LEVEL        root level (default: INFO); DEBUG also writes debug.log
    LOG_TO_CONSOLE   "true" mirrors errors to stderr in plain text
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_RECORD_FIELDS = ("module", "funcName", "lineno")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update({name: getattr(record, name, None) for name in _RECORD_FIELDS})

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        fields = getattr(record, "extra_fields", None)
        if isinstance(fields, dict):
            payload.update(fields)

        return json.dumps(payload, default=str, ensure_ascii=False)


class LoggerConfig:
    """Configures the root logger once per process."""

    LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_TO_CONSOLE = os.getenv("LOG_TO_CONSOLE", "false").lower() == "true"
    MAX_BYTES = 10 * 1024 * 1024
    BACKUP_COUNT = 5

    # SDK request logging is too chatty at INFO
    QUIET_LOGGERS = ("httpx", "httpcore", "openai", "google_genai", "urllib3")

    _initialized = False

    @classmethod
    def _file_handler(cls, filename: str, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            cls.LOG_DIR / filename,
            maxBytes=cls.MAX_BYTES,
            backupCount=cls.BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(JsonFormatter())
        return handler

    @classmethod
    def setup_logging(cls) -> None:
        if cls._initialized:
            return

        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
        level = getattr(logging, cls.LOG_LEVEL, logging.INFO)

        root = logging.getLogger()
        root.setLevel(level)
        root.handlers.clear()

        files = [("app.log", logging.INFO), ("error.log", logging.ERROR)]
        if level <= logging.DEBUG:
            files.append(("debug.log", logging.DEBUG))
        for filename, file_level in files:
            root.addHandler(cls._file_handler(filename, file_level))

        if cls.LOG_TO_CONSOLE:
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(logging.ERROR)
            console.setFormatter(
                logging.Formatter("[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s")
            )
            root.addHandler(console)

        for name in cls.QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        cls._initialized = True
        logging.getLogger(__name__).info(
            "Logging configured",
            extra={
                "extra_fields": {
                    "log_level": cls.LOG_LEVEL,
                    "log_dir": str(cls.LOG_DIR),
                    "files": [f for f, _ in files],
                    "console_logging": cls.LOG_TO_CONSOLE,
                }
            },
        )


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger wired to the JSON handlers.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.warning("Backend failed", extra={"extra_fields": {"backend": "tavily"}})
    """
    LoggerConfig.setup_logging()
    return logging.getLogger(name)


LoggerConfig.setup_logging()
