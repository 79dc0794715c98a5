"""Error taxonomy for the Segment connector.

Every failure raised by the core falls into one of these buckets:

- TransportError: the request never produced a usable response
  (connection, timeout, HTTP failure without an error envelope, bad JSON).
- UpstreamError: Segment answered with a non-empty ``errors`` array,
  whatever the HTTP status was.
- PreconditionError: the caller handed us something we can never act on
  (wrong principal kind, corrupted page token, unmapped role name).

Nothing in the core retries; errors bubble up to the immediate caller.
"""

from __future__ import annotations


class SegmentError(RuntimeError):
    """Base class for all connector errors."""


class TransportError(SegmentError):
    """Raised when the HTTP exchange itself failed."""


class UpstreamError(SegmentError):
    """Raised when the Segment API reports an application-level error."""

    def __init__(self, kind: str, message: str, *, operation: str | None = None):
        self.kind = kind
        self.message = message
        self.operation = operation
        text = f"{kind} - {message}"
        if operation:
            text = f"error {operation}: {text}"
        super().__init__(text)


class PreconditionError(SegmentError, ValueError):
    """Raised for caller or programming errors that must not be retried."""


class PaginationError(PreconditionError):
    """Raised when a page token cannot be decoded."""


class UnmappedRoleError(PreconditionError):
    """Raised when a role name matches no resource marker and no catch-all."""


class ValidationError(SegmentError):
    """Raised when the connector cannot validate its credentials."""
