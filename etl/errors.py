"""Failure taxonomy for the FPL data layer.

Transport failures are raised by ``FPLFetcher`` and are distinguishable by
class (and by the ``kind`` string for serialisation). Each carries a message
suitable for showing to an end user.

``MalformedRecord`` is not raised: it is a diagnostic attached to a decoded
payload for each upstream record that could not be fully parsed.
"""

from dataclasses import dataclass
from typing import Any, Optional


class TransportFailure(Exception):
    """Base class for every failure talking to the upstream API."""

    kind = "unexpected"
    default_message = "Unable to fetch FPL data. Please check your connection and try again."

    def __init__(self, message: Optional[str] = None, path: Optional[str] = None):
        self.message = message or self.default_message
        self.path = path
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class Timeout(TransportFailure):
    kind = "timeout"
    default_message = (
        "The FPL API is taking longer than usual to respond. This often happens "
        "during peak times. Please wait a moment and try again."
    )


class RateLimited(TransportFailure):
    kind = "rate_limited"
    default_message = "Too many requests - please wait a moment before trying again"

    def __init__(self, message: Optional[str] = None, path: Optional[str] = None,
                 retry_after: Optional[float] = None):
        super().__init__(message, path)
        self.retry_after = retry_after


class ServerUnavailable(TransportFailure):
    kind = "server_unavailable"
    default_message = "The FPL API is temporarily unavailable. Please try again in a few minutes."

    def __init__(self, message: Optional[str] = None, path: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, path)
        self.status_code = status_code


class NotFound(TransportFailure):
    kind = "not_found"
    default_message = "The requested data could not be found"


class NetworkUnreachable(TransportFailure):
    kind = "network_unreachable"
    default_message = "Unable to connect to the FPL API. Please check your internet connection."


class Unexpected(TransportFailure):
    """Anything else. The raw payload is kept for diagnostics."""

    kind = "unexpected"

    def __init__(self, message: Optional[str] = None, path: Optional[str] = None,
                 status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message, path)
        self.status_code = status_code
        self.payload = payload


@dataclass(frozen=True)
class MalformedRecord:
    """A single upstream record that was dropped during decoding.

    Attributes:
        collection: Name of the upstream collection (e.g. 'elements').
        index: Position of the record in that collection, -1 for the whole collection.
        reason: What went wrong.
    """

    collection: str
    index: int
    reason: str
