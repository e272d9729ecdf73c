# catalog/errors.py
from __future__ import annotations

from typing import Optional

SERVER_UNAVAILABLE_MESSAGE = "The station directory is unavailable right now. Please try again in a moment."
RATE_LIMITED_MESSAGE = "Too many requests to the station directory. Please wait a moment and try again."


class CatalogError(Exception):
    """Any catalog failure that has no more specific class."""


class InvalidRequest(CatalogError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class NotFound(CatalogError):
    pass


class ServerUnavailable(CatalogError):
    pass


class NetworkUnavailable(ServerUnavailable):
    pass


class RateLimited(CatalogError):
    pass


def error_message_for(exc: BaseException) -> Optional[str]:
    """
    User-facing message for a failed catalog fetch.
    None means "not an error": an empty result is simply shown as an empty list.
    """
    if isinstance(exc, NotFound):
        return None
    if isinstance(exc, ServerUnavailable):
        return SERVER_UNAVAILABLE_MESSAGE
    if isinstance(exc, RateLimited):
        return RATE_LIMITED_MESSAGE
    if isinstance(exc, InvalidRequest):
        return exc.reason
    return str(exc) or exc.__class__.__name__
