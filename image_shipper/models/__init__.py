"""
Models — Requests, run snapshots, and outcomes.
"""

from .outcome import BatchReport, ImageOutcome, PollResult, PollState
from .request import MirrorRequest, RemoteRunStatus, RequestStatus

__all__ = [
    "MirrorRequest",
    "RemoteRunStatus",
    "RequestStatus",
    "PollState",
    "PollResult",
    "ImageOutcome",
    "BatchReport",
]
