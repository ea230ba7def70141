"""Tests for diagnostics reporting."""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from waymark.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticLog,
    DiagnosticSink,
    LoggingSink,
    report,
)


class Collector:
    def __init__(self) -> None:
        self.seen: list[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> None:
        self.seen.append(diagnostic)


class TestDiagnosticLog:
    def test_records_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        log = DiagnosticLog()
        with caplog.at_level(logging.WARNING, logger="waymark.diagnostics"):
            report(log, DiagnosticKind.DUPLICATE_ROUTE, "Route /a is already defined.", "/a")
        [entry] = log.entries
        assert entry.kind is DiagnosticKind.DUPLICATE_ROUTE
        assert entry.route == "/a"
        assert str(entry) == "Route /a is already defined."
        assert "Route /a is already defined." in caplog.text

    def test_of_kind(self) -> None:
        log = DiagnosticLog()
        report(log, DiagnosticKind.BINDING, "one")
        report(log, DiagnosticKind.UNSAFE_FILE, "two")
        assert [d.message for d in log.of_kind(DiagnosticKind.UNSAFE_FILE)] == ["two"]

    def test_custom_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        log = DiagnosticLog(logging.getLogger("myapp.routing"))
        with caplog.at_level(logging.WARNING, logger="myapp.routing"):
            report(log, DiagnosticKind.BINDING, "custom")
        assert [r.name for r in caplog.records] == ["myapp.routing"]

    def test_concurrent_reports_are_all_kept(self) -> None:
        log = DiagnosticLog(logging.getLogger("waymark.tests.quiet"))
        with ThreadPoolExecutor(max_workers=8) as pool:
            for i in range(400):
                pool.submit(report, log, DiagnosticKind.BINDING, f"entry {i}")
        assert len(log.entries) == 400


class TestLoggingSink:
    def test_logs_without_keeping(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = LoggingSink()
        with caplog.at_level(logging.WARNING, logger="waymark.diagnostics"):
            report(sink, DiagnosticKind.MISSING_TARGET, "Controller X isn't registered.")
        assert "Controller X isn't registered." in caplog.text
        assert not hasattr(sink, "entries")

    def test_custom_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = LoggingSink(logging.getLogger("myapp.routing"))
        with caplog.at_level(logging.WARNING, logger="myapp.routing"):
            report(sink, DiagnosticKind.BINDING, "custom")
        assert [r.name for r in caplog.records] == ["myapp.routing"]


class TestReport:
    def test_without_sink_logs_only(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="waymark.diagnostics"):
            report(None, DiagnosticKind.MISSING_TARGET, "nobody listens")
        assert "nobody listens" in caplog.text

    def test_any_sink(self) -> None:
        sink = Collector()
        report(sink, DiagnosticKind.INVALID_ROUTE, "bad", 402)
        assert sink.seen == [Diagnostic(DiagnosticKind.INVALID_ROUTE, "bad", 402)]

    def test_sink_protocol(self) -> None:
        assert isinstance(DiagnosticLog(), DiagnosticSink)
        assert isinstance(LoggingSink(), DiagnosticSink)
        assert isinstance(Collector(), DiagnosticSink)
