# tests/conftest.py
import json
import os
import pathlib
import types
from collections.abc import Callable
from typing import Any

import pytest
from freezegun import freeze_time

from modules.job_harvest.lib.compliance import ComplianceGate
from modules.job_harvest.lib.fetcher import PageFetcher

FIXTURES = pathlib.Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_configure(config: pytest.Config) -> None:
    # Marker registration (so pytest --markers shows it)
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls or hit external services (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch, tmp_path):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")
    # Never pick up a developer's real selection
    monkeypatch.delenv("JOB_HARVEST_SOURCES", raising=False)
    monkeypatch.delenv("JOB_HARVEST_KEYWORDS", raising=False)
    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


@pytest.fixture
def load_fixture() -> Callable[[str], str]:
    def _load(name: str) -> str:
        return (FIXTURES / name).read_text(encoding="utf-8")

    return _load


# ---------------------------------------------------------------------
# Fake time + fake HTTP
# ---------------------------------------------------------------------
class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", reason: str = ""):
        self.status_code = status_code
        self.text = text
        self.reason = reason or ("OK" if status_code == 200 else "Error")

    def json(self) -> Any:
        return json.loads(self.text)


class FakeClient:
    """
    Stand-in for HttpClient. `routes` maps an exact URL, or a URL prefix ending
    in '*', to a body (str / dict / list), a (status, body) tuple, or a
    callable(url) returning any of those. Unknown URLs answer 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None):
        self.routes = dict(routes or {})
        self.calls: list[types.SimpleNamespace] = []
        self.closed = False

    def _lookup(self, url: str) -> Any:
        if url in self.routes:
            return self.routes[url]
        for key in sorted(self.routes, key=len, reverse=True):
            if key.endswith("*") and url.startswith(key[:-1]):
                return self.routes[key]
        return (404, "")

    def get(self, url: str, *, params=None, headers=None, timeout=None, **kwargs) -> FakeResponse:
        self.calls.append(types.SimpleNamespace(url=url, headers=dict(headers or {})))
        answer = self._lookup(url)
        if callable(answer):
            answer = answer(url)
        if isinstance(answer, Exception):
            raise answer
        status, body = answer if isinstance(answer, tuple) else (200, answer)
        if not isinstance(body, str):
            body = json.dumps(body)
        return FakeResponse(status, body)

    @property
    def urls(self) -> list[str]:
        return [c.url for c in self.calls]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gate(clock) -> ComplianceGate:
    """No per-domain table; harvester delays still apply but only advance the fake clock."""
    return ComplianceGate(intervals={}, default_interval=0.0, clock=clock, sleep=clock.sleep)


@pytest.fixture
def make_fetcher(gate) -> Callable[..., tuple[PageFetcher, FakeClient]]:
    def _make(routes: dict[str, Any] | None = None) -> tuple[PageFetcher, FakeClient]:
        client = FakeClient(routes)
        return PageFetcher(client=client, gate=gate), client

    return _make
