"""
Errors raised by the SolanaTracker API client.
"""

from typing import Optional


class TrackerAPIError(Exception):
    """Base class for failures talking to the SolanaTracker API."""

    def __init__(self, message: str, kind: Optional[str] = None,
                 subject: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.subject = subject


class ThrottledExhausted(TrackerAPIError):
    """The API answered 429. Callers only see it once the throttle retries are spent."""


class UpstreamError(TrackerAPIError):
    """The API answered with a non-2xx status other than 429."""

    def __init__(self, message: str, status_code: int,
                 kind: Optional[str] = None, subject: Optional[str] = None):
        super().__init__(message, kind=kind, subject=subject)
        self.status_code = status_code


class TransportError(TrackerAPIError):
    """The request failed below HTTP (a reset connection or a timeout, for example)."""
