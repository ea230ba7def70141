"""Structured diagnostics for recoverable routing anomalies.

A duplicate route, a splice binding in a named field or a controller that
isn't registered must not abort the request. The core reports these to a
``DiagnosticSink`` and carries on producing a response. Callers may log,
collect or ignore them.
"""

import logging
import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, runtime_checkable

logger = logging.getLogger("waymark.diagnostics")


class DiagnosticKind(StrEnum):
    """What went wrong."""

    DUPLICATE_ROUTE = "duplicate_route"
    INVALID_ROUTE = "invalid_route"
    BINDING = "binding"
    MISSING_TARGET = "missing_target"
    INVALID_TARGET = "invalid_target"
    MISSING_ARGUMENT = "missing_argument"
    UNSAFE_FILE = "unsafe_file"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A single recoverable anomaly."""

    kind: DiagnosticKind
    message: str
    route: str | int | None = None

    def __str__(self) -> str:
        return self.message


@runtime_checkable
class DiagnosticSink(Protocol):
    """Anything that accepts diagnostics. Must not raise."""

    def report(self, diagnostic: Diagnostic) -> None: ...


class LoggingSink:
    """Logs each diagnostic as a warning and keeps nothing. ``App`` uses it by default."""

    __slots__ = ("_logger",)

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logger

    def report(self, diagnostic: Diagnostic) -> None:
        self._logger.warning("%s", diagnostic.message)


class DiagnosticLog:
    """Default router sink: keeps every diagnostic and logs it as a warning.

    Safe to share between threads.

    Usage::

        log = DiagnosticLog()
        router = Router(routes, diagnostics=log)
        router.execute()
        assert not log.entries
    """

    __slots__ = ("_lock", "_logger", "entries")

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.entries: list[Diagnostic] = []
        self._lock = threading.Lock()
        self._logger = log or logger

    def report(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self.entries.append(diagnostic)
        self._logger.warning("%s", diagnostic.message)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        """Return the recorded diagnostics of one kind."""
        with self._lock:
            return [d for d in self.entries if d.kind == kind]


def report(
    sink: DiagnosticSink | None,
    kind: DiagnosticKind,
    message: str,
    route: str | int | None = None,
) -> None:
    """Report a diagnostic to *sink*, or just log it when there is none."""
    diagnostic = Diagnostic(kind=kind, message=message, route=route)
    if sink is None:
        logger.warning("%s", message)
        return
    sink.report(diagnostic)
