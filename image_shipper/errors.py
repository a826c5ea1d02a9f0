"""
Errors — Exception taxonomy for the shipper.

Fatal per-image errors (TriggerFailed, InvalidReference, ManifestParseError)
surface as a failed image; transient lookup errors (RunNotFound,
LookupTransportError) are retried by the next status check.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ShipperError(Exception):
    """Base class for all image-shipper errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(ShipperError):
    """Raised when configuration is missing or invalid."""
    pass


class TriggerFailed(ShipperError):
    """The workflow dispatch was rejected or never reached GitHub."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class TransientLookupError(ShipperError):
    """A lookup that may succeed on a later attempt."""
    pass


class RunNotFound(TransientLookupError):
    """No workflow run matches the correlation key (yet)."""

    def __init__(self, request_id: str, reason: str = ""):
        self.request_id = request_id
        self.reason = reason
        message = f"workflow run for request {request_id} not found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LookupTransportError(TransientLookupError):
    """Listing runs or fetching run detail failed at the transport layer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class InvalidReference(ShipperError):
    """An image reference has no usable image path."""

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"invalid image reference: {reference!r}")


class ManifestParseError(ShipperError):
    """Content is neither a compose file nor a Kubernetes manifest."""
    pass


class RuntimeCommandError(ShipperError):
    """A container runtime subcommand failed."""

    def __init__(self, message: str, command: Optional[list] = None, returncode: Optional[int] = None):
        self.command = command or []
        self.returncode = returncode
        super().__init__(message)
