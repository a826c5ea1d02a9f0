"""
Shipping — Trigger mirror workflows and follow them to completion.
"""

from .batch import BatchDriver
from .correlator import Correlator, decode_correlation_key
from .poller import CancellationToken, Poller, ProgressRenderer

__all__ = [
    "BatchDriver",
    "CancellationToken",
    "Correlator",
    "Poller",
    "ProgressRenderer",
    "decode_correlation_key",
]
