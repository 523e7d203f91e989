from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Protocol

import structlog

Scalar = bool | int | float | str | None

REDACTED = "[redacted]"
# Any attribute whose name contains one of these is never written out.
_REDACT_MARKERS = (
    "api_key",
    "authorization",
    "caption",
    "payload",
    "run_input",
    "secret",
    "token",
    "transcript",
)
_TEXT_LIMIT = 160


class TelemetrySink(Protocol):
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        ...


class DiscardingSink:
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        del event_name, attributes


@dataclass
class LogFileSink:
    """Writes events through the `video_research.telemetry` logger (its own file)."""

    logger: Any = field(default_factory=lambda: structlog.get_logger("video_research.telemetry"))

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.logger.info("telemetry", telemetry_event=event_name, **attributes)


@dataclass(frozen=True)
class TelemetryClient:
    enabled: bool
    sink: TelemetrySink

    @classmethod
    def disabled(cls) -> TelemetryClient:
        return cls(enabled=False, sink=DiscardingSink())

    def emit(self, event_name: str, **attributes: Any) -> None:
        if self.enabled:
            self.sink.emit(event_name=event_name, attributes=scrub_attributes(attributes))

    @contextmanager
    def span(self, event_prefix: str, **attributes: Any) -> Iterator[dict[str, Any]]:
        """
        Bracket a block with `<prefix>.start` and `<prefix>.finish`.

        Whatever the block puts in the yielded dict rides on the finish event.
        An exception emits `<prefix>.error` instead and is re-raised.
        """
        started = perf_counter()
        extra: dict[str, Any] = {}
        self.emit(f"{event_prefix}.start", **attributes)
        try:
            yield extra
        except Exception as exc:
            self.emit(
                f"{event_prefix}.error",
                **attributes,
                error_type=type(exc).__name__,
                duration_ms=_elapsed_ms(started),
            )
            raise
        self.emit(
            f"{event_prefix}.finish",
            **attributes,
            **extra,
            duration_ms=_elapsed_ms(started),
        )


def build_telemetry_client(*, enabled: bool, sink: str) -> TelemetryClient:
    if enabled and sink == "log":
        return TelemetryClient(enabled=True, sink=LogFileSink())
    if enabled and sink != "none":
        logging.getLogger("video_research.telemetry").warning(
            "telemetry disabled, unknown sink=%s",
            sink,
        )
    return TelemetryClient.disabled()


def scrub_attributes(attributes: Mapping[str, Any]) -> dict[str, Scalar]:
    """Lower-case keys, redact sensitive ones and flatten values to scalars."""
    scrubbed: dict[str, Scalar] = {}
    for name, value in attributes.items():
        key = str(name).strip().lower()
        if not key:
            continue
        if any(marker in key for marker in _REDACT_MARKERS):
            scrubbed[key] = REDACTED
        else:
            scrubbed[key] = _to_scalar(value)
    return scrubbed


def _to_scalar(value: Any) -> Scalar:
    if value is None or isinstance(value, bool | int | float):
        return value
    if isinstance(value, str):
        text = " ".join(value.split())
        return text if len(text) <= _TEXT_LIMIT else text[:_TEXT_LIMIT] + "..."
    if isinstance(value, list | tuple | set | frozenset):
        return ",".join(map(str, value))[:_TEXT_LIMIT]
    return type(value).__name__


def _elapsed_ms(started: float) -> int:
    return int((perf_counter() - started) * 1000)
