from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

import structlog
from structlog.typing import EventDict, Processor

from video_research.config import AppSettings

ROOT_LOGGER_NAME = "video_research"
TELEMETRY_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.telemetry"
LOG_FILE_NAME = "video-research.log"
TELEMETRY_LOG_FILE_NAME = "video-research-telemetry.log"

_RECORD_FIELDS = (
    ("pathname", "pathname"),
    ("lineno", "lineno"),
    ("func_name", "funcName"),
    ("task_name", "taskName"),
)


def configure_application_logging(
    settings: AppSettings,
    *,
    console_stream: TextIO | None = None,
    console_level: str | None = None,
) -> Path:
    """
    Send `video_research.*` records to the console and to a JSON lines file.

    Telemetry events get a file of their own and never reach the console.
    The CLI passes stderr with a quieter level so command output stays clean.
    """
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    app_log = settings.log_dir / LOG_FILE_NAME
    telemetry_log = settings.log_dir / TELEMETRY_LOG_FILE_NAME
    level_name = console_level or settings.log_level
    stream = console_stream or sys.stdout

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console = logging.StreamHandler(stream=stream)
    console.setLevel(_resolve_log_level(level_name))
    console.setFormatter(
        _formatter(structlog.dev.ConsoleRenderer(colors=_stream_supports_color(stream)))
    )
    _install(
        ROOT_LOGGER_NAME,
        level=logging.DEBUG,
        handlers=[console, _json_file_handler(app_log, logging.DEBUG)],
    )
    _install(
        TELEMETRY_LOGGER_NAME,
        level=logging.INFO,
        handlers=[_json_file_handler(telemetry_log, logging.INFO)],
    )

    logging.getLogger(ROOT_LOGGER_NAME).debug(
        "logging ready console_level=%s app_log=%s telemetry_log=%s",
        level_name.upper(),
        app_log,
        telemetry_log,
    )
    return app_log


def _resolve_log_level(raw_level: str) -> int:
    level = logging.getLevelName(raw_level.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _stream_supports_color(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    if not callable(isatty):
        return False
    try:
        return bool(isatty())
    except Exception:
        return False


def _install(name: str, *, level: int, handlers: list[logging.Handler]) -> None:
    """Replace a logger's handlers; repeated calls (tests, CLI re-entry) stay idempotent."""
    target = logging.getLogger(name)
    target.setLevel(level)
    target.propagate = False
    for stale in list(target.handlers):
        target.removeHandler(stale)
        stale.close()
    for handler in handlers:
        target.addHandler(handler)


def _json_file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(
        _formatter(
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
            with_record_fields=True,
        )
    )
    return handler


def _formatter(
    *renderers: Processor,
    with_record_fields: bool = False,
) -> structlog.stdlib.ProcessorFormatter:
    chain: list[Processor] = []
    if with_record_fields:
        chain.append(_copy_record_fields)
    chain.append(structlog.stdlib.ProcessorFormatter.remove_processors_meta)
    chain.extend(renderers)
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        ],
        processors=chain,
    )


def _copy_record_fields(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        for key, attribute in _RECORD_FIELDS:
            event_dict[key] = getattr(record, attribute, None)
    return event_dict
