"""Structured diagnostics for the parsing and mapping pipeline.

Every stage records ``(stage, message)`` events on a DiagnosticLog instead
of printing. Events are kept on the log (and returned with the mapping
result), forwarded to the standard ``logging`` logger of the caller, and
optionally pushed to an injected sink callable.

Usage:
    log = DiagnosticLog(logger)
    log.record("extract", "Found header at line %d", 7)
    log.events  # (DiagnosticEvent(stage="extract", message="Found header at line 7", ...),)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiagnosticEvent:
    stage: str
    message: str
    level: int = logging.DEBUG


class DiagnosticLog:
    """Collects diagnostic events for one parse/map call."""

    def __init__(
        self,
        log: logging.Logger | None = None,
        sink: Callable[[DiagnosticEvent], None] | None = None,
    ):
        self._logger = log or logger
        self._sink = sink
        self._events: list[DiagnosticEvent] = []

    @property
    def events(self) -> tuple[DiagnosticEvent, ...]:
        return tuple(self._events)

    def record(self, stage: str, message: str, *args, level: int = logging.DEBUG) -> DiagnosticEvent:
        """Record one event; ``args`` are %-formatted into ``message``."""
        text = message % args if args else message
        event = DiagnosticEvent(stage=stage, message=text, level=level)
        self._events.append(event)
        self._logger.log(level, "[%s] %s", stage, text)
        if self._sink is not None:
            self._sink(event)
        return event

    def warning(self, stage: str, message: str, *args) -> DiagnosticEvent:
        return self.record(stage, message, *args, level=logging.WARNING)
