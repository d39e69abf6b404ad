"""
Error taxonomy for the kline fetcher.
Transport failures split into transient (retryable) and rejected (final).
"""

from __future__ import annotations
from typing import Optional


class KlineError(Exception):
    """Base class for all fetcher errors."""


class InputValidationError(KlineError, ValueError):
    """Malformed user input. Raised before any request is made."""


class TransportError(KlineError):
    """The transport could not deliver a kline page."""


class TransientTransportError(TransportError):
    """Timeouts, connection resets, 5xx and rate-limit responses."""


class ApiRejectedError(TransportError):
    """Well-formed error response from the exchange. Never retried."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"API rejected request: code={code}, msg={message}")


class DataIntegrityError(KlineError):
    """A raw kline row could not be converted."""


class FetchAbortedError(KlineError):
    """The paginated fetch stopped before covering the requested range."""

    def __init__(self, message: str, records_fetched: int = 0, cause: Optional[BaseException] = None):
        self.records_fetched = records_fetched
        self.cause = cause
        super().__init__(f"{message} (records fetched before abort: {records_fetched})")


class FetchCancelledError(FetchAbortedError):
    """Cancellation was observed between chunks."""
