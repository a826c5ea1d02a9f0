"""
Shared fixtures for shipper tests.

Provides a simulated monotonic clock, a cancellation token that advances
that clock instead of sleeping, and an in-memory stand-in for the GitHub
workflow client, so the polling loop can run thirty simulated minutes in
milliseconds.
"""

from __future__ import annotations

import io
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

from image_shipper.errors import LookupTransportError, TriggerFailed
from image_shipper.shipping.poller import CancellationToken, ProgressRenderer

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


class FakeClock:
    """Monotonic seconds that only move when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeToken(CancellationToken):
    """
    Token whose ``wait`` advances the fake clock instead of blocking.

    ``cancel_at`` cancels once the clock reaches that many seconds after
    the token was created.
    """

    def __init__(self, clock: FakeClock, cancel_at: Optional[float] = None):
        super().__init__()
        self.clock = clock
        self.cancel_at = None if cancel_at is None else clock.now + cancel_at
        self.waits = 0

    def wait(self, timeout: float) -> bool:
        self.waits += 1
        if self.cancel_at is not None and self.clock.now + timeout >= self.cancel_at:
            self.clock.now = max(self.clock.now, self.cancel_at)
            self.cancel()
            return True
        self.clock.advance(timeout)
        return self.cancelled


class FakeWorkflowClient:
    """
    In-memory workflow client.

    ``runs`` is what ``list_recent_runs`` returns; ``details`` maps run id
    to what ``get_run_detail`` returns (defaults to the listed run).
    ``list_errors`` raises the given exceptions on successive list calls.
    """

    def __init__(self):
        self.runs: List[Dict[str, Any]] = []
        self.details: Dict[int, Dict[str, Any]] = {}
        self.dispatches: List[Dict[str, Any]] = []
        self.dispatch_error: Optional[Exception] = None
        self.dispatch_errors: Dict[str, Exception] = {}
        self.list_errors: List[Exception] = []
        self.list_calls = 0
        self.detail_calls: List[int] = []
        self.on_list: Optional[Callable[[], None]] = None
        self.closed = False

    def __enter__(self) -> "FakeWorkflowClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.closed = True

    def close(self) -> None:
        self.closed = True

    def dispatch(self, ref: str, inputs: Dict[str, Any]) -> None:
        image = inputs.get("docker_image", "")
        if image in self.dispatch_errors:
            raise self.dispatch_errors[image]
        if self.dispatch_error:
            raise self.dispatch_error
        self.dispatches.append({"ref": ref, "inputs": inputs})

    def list_recent_runs(self, event: str = "workflow_dispatch", per_page: int = 10) -> List[Dict[str, Any]]:
        self.list_calls += 1
        if self.on_list:
            self.on_list()
        if self.list_errors:
            raise self.list_errors.pop(0)
        return list(self.runs)

    def get_run_detail(self, run_id: int) -> Dict[str, Any]:
        self.detail_calls.append(run_id)
        if run_id in self.details:
            return self.details[run_id]
        for run in self.runs:
            if run["id"] == run_id:
                return run
        raise LookupTransportError(f"run {run_id}: HTTP 404", status_code=404)

    def add_run(
        self,
        run_id: int,
        created: datetime,
        status: str = "in_progress",
        conclusion: Optional[str] = None,
    ) -> Dict[str, Any]:
        run = {
            "id": run_id,
            "created_at": iso(created),
            "status": status,
            "conclusion": conclusion,
            "event": "workflow_dispatch",
            "html_url": f"https://github.com/acme/image-shipper/actions/runs/{run_id}",
        }
        self.runs.insert(0, run)
        return run


class RecordingRenderer(ProgressRenderer):
    """Renderer that writes to memory and remembers what it drew."""

    def __init__(self):
        super().__init__(file=io.StringIO())
        self.renders: List[tuple] = []
        self.lines: List[str] = []
        self.finished: List[str] = []

    def render(self, glyph: str, status: str, conclusion: str) -> None:
        self.renders.append((glyph, status, conclusion))
        super().render(glyph, status, conclusion)

    def line(self, text: str) -> None:
        self.lines.append(text)
        super().line(text)

    def finish(self, text: str) -> None:
        self.finished.append(text)
        super().finish(text)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token(clock) -> FakeToken:
    return FakeToken(clock)


@pytest.fixture
def gh() -> FakeWorkflowClient:
    return FakeWorkflowClient()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def wall_clock():
    """A settable UTC wall clock for the correlator, starting at T0."""

    class WallClock:
        def __init__(self):
            self.now = T0

        def __call__(self) -> datetime:
            return self.now

        def advance(self, seconds: float) -> None:
            self.now += timedelta(seconds=seconds)

    return WallClock()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every IMGSHIPPER_* and TEST_ENV variable from the environment."""
    import os

    for name in list(os.environ):
        if name.startswith("IMGSHIPPER_") or name == "TEST_ENV":
            monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def trigger_failed():
    return TriggerFailed("HTTP 422: Unexpected inputs provided", status_code=422)
