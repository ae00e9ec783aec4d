"""Logging configuration for webguard with structlog.

Events go through stdlib handlers: a human-readable console stream, plus JSON
lines in a log file when one is configured. Provider API keys known to the
settings are scrubbed from every event before it is rendered, and the httpx
and httpcore loggers are held at WARNING because they log full request URLs,
query-string keys included.
"""

import logging
import sys
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from webguard.config import Settings, get_settings

# Third-party loggers that print request URLs at INFO/DEBUG
HTTP_LOGGERS = ("httpx", "httpcore")

REDACTED = "[redacted]"


class SecretRedactor:
    """Structlog processor that masks known secret values in event fields."""

    def __init__(self, secrets: Iterable[str]):
        # Longest first so a key that contains another is masked whole
        self.secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, str):
            for secret in self.secrets:
                value = value.replace(secret, REDACTED)
            return value
        if isinstance(value, BaseException):
            return self._scrub(f"{type(value).__name__}: {value}")
        if isinstance(value, dict):
            return {key: self._scrub(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._scrub(item) for item in value]
        return value

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        if not self.secrets:
            return event_dict
        return {key: self._scrub(value) for key, value in event_dict.items()}


def setup_logging(
    level: str | None = "INFO",
    log_file: Path | None = None,
    show_timestamps: bool = True,
    secrets: Iterable[str] = (),
) -> None:
    """Configure structlog for console and optional file output.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR), or None to use INFO
        log_file: Optional file path to write logs as JSON lines
        show_timestamps: Include timestamps in output
        secrets: Values (API keys) to mask wherever they appear in an event
    """
    level = level or "INFO"
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
    ]

    if show_timestamps:
        processors.append(structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False))

    if log_file:
        # File output: JSON for parsing
        processors.extend(
            [
                structlog.processors.dict_tracebacks,
                SecretRedactor(secrets),
                structlog.processors.JSONRenderer(),
            ]
        )
    else:
        processors.extend(
            [
                structlog.dev.set_exc_info,
                SecretRedactor(secrets),
                structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
            ]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(settings: Settings | None = None, show_timestamps: bool = True) -> None:
    """Set up logging from WEBGUARD_LOG_LEVEL / WEBGUARD_LOG_FILE.

    Args:
        settings: Settings to read from (global if None)
        show_timestamps: Include timestamps in output
    """
    settings = settings or get_settings()
    setup_logging(
        level=settings.webguard_log_level,
        log_file=settings.webguard_log_file,
        show_timestamps=show_timestamps,
        secrets=settings.api_keys,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger for a module.

    Args:
        name: Module name (e.g., "webguard.tools.search.fetcher")

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class AsyncTimer:
    """Async context manager that logs how long a fetch or search took.

    Usage:
        async with AsyncTimer(f"fetch {url}", logger) as timer:
            await fetcher.fetch(url)
    """

    def __init__(self, name: str, logger: Any | None = None):
        self.name = name
        self.logger = logger or get_logger("webguard.timer")
        self.start_time: float = 0
        self.elapsed: float = 0

    async def __aenter__(self) -> "AsyncTimer":
        self.start_time = time.perf_counter()
        return self

    async def __aexit__(self, exc_type: Any, *args: Any) -> None:
        self.elapsed = time.perf_counter() - self.start_time
        outcome = "failed" if exc_type is not None else "completed"
        self.logger.debug(f"{self.name} {outcome}", elapsed_s=f"{self.elapsed:.3f}")
