"""Exception hierarchy for streaming sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import QuotaExceededData


class DesignStreamError(Exception):
    """Base class for all errors raised by design_stream."""


class TransportError(DesignStreamError):
    """The byte stream failed or closed before the server signalled completion."""


class ServerStreamError(DesignStreamError):
    """The server sent an ``error`` envelope or a non-success response."""


class ModelRestrictedError(ServerStreamError):
    """The requested model is not available on the caller's plan."""

    DEFAULT_MESSAGE = (
        "This model is only available for Pro users. "
        "Please upgrade or use the Flash model."
    )

    def __init__(self, message: str = DEFAULT_MESSAGE) -> None:
        super().__init__(message)


class QuotaExceededError(DesignStreamError):
    """The server refused the request because the caller ran out of messages."""

    def __init__(self, quota: QuotaExceededData) -> None:
        super().__init__(quota.message)
        self.quota = quota
