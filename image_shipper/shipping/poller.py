"""
Poller — Drive one mirror request to a terminal outcome.

A single-threaded loop multiplexes four event sources onto one blocking
wait (``CancellationToken.wait``):

- status check every ``status_interval`` seconds (calls the correlator),
- spinner redraw every ``spinner_interval`` seconds,
- cancellation (SIGINT/SIGTERM set the token),
- an absolute deadline ``timeout`` seconds after polling starts.

When several are due at once they are served in that order of priority:
cancellation, deadline, status check, spinner. Handlers run to completion;
a slow lookup delays the next status check but never overlaps it.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, IO, Optional

import click

from ..errors import TransientLookupError
from ..logging_config import request_logger
from ..models.outcome import PollResult, PollState
from ..models.request import MirrorRequest, RemoteRunStatus
from .correlator import Correlator

logger = logging.getLogger(__name__)

STATUS_INTERVAL = 10.0
SPINNER_INTERVAL = 0.2
POLL_TIMEOUT = 30 * 60.0

SPINNER = ("|", "/", "-", "\\")

INITIAL_STATUS = "in_progress"
INITIAL_CONCLUSION = "unknown"
LOOKUP_FAILED_STATUS = "lookup_failed"
LOOKUP_FAILED_CONCLUSION = "error"


class CancellationToken:
    """
    Cancellation signal passed explicitly into the poller.

    ``wait`` is the loop's only blocking call, so cancelling wakes a
    sleeping poller immediately.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; True if cancelled."""
        return self._event.wait(max(timeout, 0))


class ProgressRenderer:
    """Single overwritten progress line plus one-line results."""

    def __init__(self, file: Optional[IO[str]] = None):
        self.file = file
        self._width = 0

    def render(self, glyph: str, status: str, conclusion: str) -> None:
        line = f"Workflow status: {glyph} {status}, conclusion: {conclusion}"
        pad = " " * max(self._width - len(line), 0)
        click.echo(f"\r{line}{pad}", nl=False, file=self.file)
        self._width = len(line)

    def clear(self) -> None:
        if self._width:
            click.echo("\r" + " " * self._width + "\r", nl=False, file=self.file)
            self._width = 0

    def line(self, text: str) -> None:
        click.echo(text, file=self.file)

    def finish(self, text: str) -> None:
        self.clear()
        self.line(text)


def describe(result: PollResult) -> str:
    """The one-line summary printed when polling ends."""
    url = f" ({result.url})" if result.url else ""
    if result.state is PollState.SUCCEEDED:
        return f"✅ Mirror succeeded{url}"
    if result.state is PollState.FAILED:
        conclusion = result.run.conclusion if result.run else "unknown"
        return f"❌ Mirror failed: {conclusion}{url}"
    if result.state is PollState.CANCELLED:
        return "🛑 Interrupted, polling stopped"
    return "⏰ Timed out waiting for the workflow to finish"


class Poller:
    """
    Poll the correlator until the matched run completes.

    ``clock`` must be monotonic; it and the token are injectable so tests
    can run the loop on simulated time.
    """

    def __init__(
        self,
        correlator: Correlator,
        token: CancellationToken,
        renderer: Optional[ProgressRenderer] = None,
        status_interval: float = STATUS_INTERVAL,
        spinner_interval: float = SPINNER_INTERVAL,
        timeout: float = POLL_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.correlator = correlator
        self.token = token
        self.renderer = renderer or ProgressRenderer()
        self.status_interval = status_interval
        self.spinner_interval = spinner_interval
        self.timeout = timeout
        self.clock = clock

    def poll(self, request: MirrorRequest) -> PollResult:
        """Block until ``request`` succeeds, fails, is cancelled, or times out."""
        start = self.clock()
        deadline = start + self.timeout
        next_check = start + self.status_interval
        next_spin = start + self.spinner_interval

        log = request_logger(logger, request)
        status, conclusion = INITIAL_STATUS, INITIAL_CONCLUSION
        spin = 0
        checks = 0
        last_run: Optional[RemoteRunStatus] = None
        self.renderer.render(SPINNER[spin], status, conclusion)

        state = PollState.POLLING
        while not state.is_terminal:
            now = self.clock()

            if self.token.cancelled:
                state = PollState.CANCELLED
                continue

            if now >= deadline:
                state = PollState.TIMED_OUT
                continue

            if now >= next_check:
                checks += 1
                try:
                    run = self.correlator.lookup(request.id)
                except TransientLookupError as e:
                    log.warning(f"Status check {checks} failed: {e}")
                    status, conclusion = LOOKUP_FAILED_STATUS, LOOKUP_FAILED_CONCLUSION
                    run = None

                if self.token.cancelled:
                    continue

                if run is not None:
                    last_run = run
                    status, conclusion = run.status, run.conclusion
                    if run.is_completed:
                        state = PollState.SUCCEEDED if run.is_success else PollState.FAILED
                        continue

                next_check = max(next_check + self.status_interval, self.clock())
                self.renderer.render(SPINNER[spin], status, conclusion)
                continue

            if now >= next_spin:
                spin = (spin + 1) % len(SPINNER)
                self.renderer.render(SPINNER[spin], status, conclusion)
                next_spin += self.spinner_interval
                if next_spin <= now:
                    next_spin = now + self.spinner_interval
                continue

            self.token.wait(min(deadline, next_check, next_spin) - now)

        result = PollResult(
            state=state,
            run=last_run,
            checks=checks,
            elapsed_seconds=self.clock() - start,
        )
        self.renderer.finish(describe(result))

        ended = log.info if result.ok else log.warning
        ended(
            f"Polling ended: {state.value} after {checks} status check(s)",
            extra={"run_id": last_run.run_id} if last_run else {},
        )
        return result
