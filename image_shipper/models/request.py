"""
Request Models — Pydantic schemas for mirror requests and run snapshots.

A MirrorRequest is created once per dispatch and never mutated while it is
polled. RemoteRunStatus is a throwaway snapshot recomputed on every
status check.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

RequestStatus = Literal["pending", "running", "success", "failed"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MirrorRequest(BaseModel):
    """
    One mirror attempt.

    ``id`` is the correlation key: the Unix-epoch second at which the
    workflow was dispatched, as a decimal string. GitHub returns no run
    identifier for a dispatch, so this is all we have to find the run later.
    """

    id: str
    source_image: str
    target_registry: str = ""
    status: RequestStatus = "pending"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    error: Optional[str] = None

    model_config = {"frozen": True}


class RemoteRunStatus(BaseModel):
    """Point-in-time view of a matched workflow run."""

    run_id: Optional[int] = None
    status: str = "unknown"
    conclusion: str = "unknown"
    url: str = ""
    created_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_success(self) -> bool:
        return self.is_completed and self.conclusion == "success"
