"""Errors raised by a speed probe run."""
from __future__ import annotations

from typing import Optional


class ProbeError(Exception):
    """Base class for every failure that prevents a probe from producing a result."""


class ProbeConnectionError(ProbeError):
    """
    Raised when the GET request cannot be made, or when the referer fallback
    request still does not return a successful response.

    Attributes:
        url (str): The probed URL.
        status (int | None): HTTP status of the last response, if one arrived.
        message (str): Human-readable error message.
    """

    def __init__(
        self,
        url: str,
        status: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.url = url
        self.status = status

        status_str = f" (HTTP {status})" if status is not None else ""
        reason_str = f": {reason}" if reason else ""
        self.message = f"Could not open {url}{status_str}{reason_str}"

        super().__init__(self.message)


class StreamReadError(ProbeError):
    """Raised when the response body fails mid-stream."""

    def __init__(self, url: Optional[str] = None, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        target = f" from {url}" if url else ""
        self.message = f"Read failed{target}: {reason}" if reason else f"Read failed{target}"
        super().__init__(self.message)
