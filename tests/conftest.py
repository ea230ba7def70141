from pathlib import Path

import pytest

from support.controllers import ErrorController, TestController
from waymark.diagnostics import DiagnosticLog
from waymark.handlers import HandlerRegistry


@pytest.fixture
def registry() -> HandlerRegistry:
    return HandlerRegistry.of(TestController, ErrorController)


@pytest.fixture
def log() -> DiagnosticLog:
    return DiagnosticLog()


@pytest.fixture
def pages() -> Path:
    return Path(__file__).parent / "support" / "pages"
