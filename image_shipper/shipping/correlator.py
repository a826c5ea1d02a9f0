"""
Correlator — Match a fire-and-forget dispatch to the run it produced.

GitHub's dispatch endpoint returns nothing that identifies the run it is
about to create, and the run record itself appears a few seconds later.
The correlator bridges that gap with a time-proximity heuristic:

1. ``trigger`` dispatches the workflow and stamps the request with the
   local Unix time (the correlation key).
2. ``lookup`` lists the workflow's dispatch-triggered runs, takes the
   single most recently created one, and accepts it only if its creation
   time is within ``tolerance`` of the key.

## Known limitations

- Two dispatches of the same workflow within the tolerance window are
  indistinguishable; the newer run wins for both keys.
- If GitHub takes longer than the tolerance to create the run record, the
  lookup never matches and the poller eventually times out.
- A later dispatch by someone else hides ours, because only the newest
  run is considered.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from dateutil import parser as date_parser

from ..errors import RunNotFound
from ..github.client import WorkflowClient
from ..logging_config import request_logger
from ..models.request import MirrorRequest, RemoteRunStatus

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = timedelta(minutes=5)
DEFAULT_REF = "main"
IMAGE_INPUT = "docker_image"
DISPATCH_EVENT = "workflow_dispatch"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def encode_correlation_key(moment: datetime) -> str:
    """Encode a moment as the correlation key (whole epoch seconds)."""
    return str(int(_as_utc(moment).timestamp()))


def decode_correlation_key(key: str) -> Optional[datetime]:
    """
    Decode a correlation key back into a UTC datetime.

    ISO 8601 / RFC 3339 strings are read as absolute times; a bare run of
    digits is read as seconds since the epoch. Returns None when the key is
    neither.
    """
    key = key.strip()
    if not key:
        return None

    if not key.isdigit():
        try:
            return _as_utc(date_parser.isoparse(key))
        except (ValueError, OverflowError):
            return None

    try:
        return datetime.fromtimestamp(int(key), timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def _created_at(run: Dict[str, Any]) -> Optional[datetime]:
    raw = run.get("created_at")
    if not raw:
        return None
    try:
        return _as_utc(date_parser.isoparse(raw))
    except (ValueError, OverflowError):
        return None


def newest_run(runs: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """The run with the latest ``created_at``; runs without one are ignored."""
    newest = None
    newest_created = None
    for run in runs:
        created = _created_at(run)
        if created is None:
            continue
        if newest_created is None or created > newest_created:
            newest, newest_created = run, created
    return newest


class Correlator:
    """
    Dispatch mirror workflows and find their runs again.

    Args:
        client: GitHub workflow client.
        ref: Branch or tag the workflow is dispatched on.
        tolerance: Largest accepted distance between the correlation key and
            a run's creation time.
        clock: Source of "now" (UTC), injectable for tests.
    """

    def __init__(
        self,
        client: WorkflowClient,
        ref: str = DEFAULT_REF,
        tolerance: timedelta = DEFAULT_TOLERANCE,
        clock: Clock = _utcnow,
        input_name: str = IMAGE_INPUT,
    ):
        self.client = client
        self.ref = ref
        self.tolerance = tolerance
        self.clock = clock
        self.input_name = input_name

    def trigger(self, source_image: str, target_registry: str = "") -> MirrorRequest:
        """
        Dispatch the mirror workflow for ``source_image``.

        Raises:
            TriggerFailed: if GitHub rejects the dispatch or is unreachable.
                No request is created in that case.
        """
        self.client.dispatch(self.ref, {self.input_name: source_image})

        now = self.clock()
        request = MirrorRequest(
            id=encode_correlation_key(now),
            source_image=source_image,
            target_registry=target_registry,
            status="pending",
            created_at=now,
            updated_at=now,
        )

        request_logger(logger, request).info(f"Mirror workflow triggered on {self.ref}")
        return request

    def matches(self, key_time: datetime, created: datetime) -> bool:
        """Whether a run created at ``created`` belongs to a key at ``key_time``."""
        return abs(created - key_time) < self.tolerance

    def lookup(self, request_id: str) -> RemoteRunStatus:
        """
        Find the run belonging to ``request_id`` and return its current state.

        Raises:
            RunNotFound: no run yet, or the newest run is outside the
                tolerance window. Retry later.
            LookupTransportError: listing or detail fetch failed. Retry later.
        """
        key_time = decode_correlation_key(request_id)
        if key_time is None:
            raise RunNotFound(request_id, "undecodable correlation key")

        runs = self.client.list_recent_runs(event=DISPATCH_EVENT)
        run = newest_run(runs)
        if run is None:
            logger.debug("No dispatch runs listed yet", extra={"request_id": request_id})
            raise RunNotFound(request_id, "no dispatch runs")

        created = _created_at(run)
        if not self.matches(key_time, created):
            logger.debug(
                f"Newest run {run.get('id')} created {created.isoformat()} is outside the "
                f"{int(self.tolerance.total_seconds())}s window",
                extra={"request_id": request_id},
            )
            raise RunNotFound(request_id, "newest run outside tolerance window")

        detail = self.client.get_run_detail(run["id"])
        return RemoteRunStatus(
            run_id=detail.get("id", run["id"]),
            status=detail.get("status") or "unknown",
            conclusion=detail.get("conclusion") or "unknown",
            url=detail.get("html_url") or "",
            created_at=created,
        )
