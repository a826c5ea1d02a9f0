"""
Outcome Models — Poll results and the batch report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .request import RemoteRunStatus


class PollState(str, Enum):
    """States of a single image's polling loop."""
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self is not PollState.POLLING


@dataclass
class PollResult:
    """How polling one request ended."""

    state: PollState
    run: Optional[RemoteRunStatus] = None
    checks: int = 0
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is PollState.SUCCEEDED

    @property
    def url(self) -> str:
        return self.run.url if self.run else ""


@dataclass
class ImageOutcome:
    """Result for one image of a batch."""

    image: str
    ok: bool
    state: Optional[PollState] = None
    error: Optional[str] = None
    request_id: Optional[str] = None
    url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image": self.image,
            "ok": self.ok,
            "state": self.state.value if self.state else None,
            "error": self.error,
            "request_id": self.request_id,
            "url": self.url or None,
        }


@dataclass
class BatchReport:
    """Aggregate of a batch run."""

    outcomes: List[ImageOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed or self.cancelled else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "exit_code": self.exit_code,
            "images": [o.to_dict() for o in self.outcomes],
        }
