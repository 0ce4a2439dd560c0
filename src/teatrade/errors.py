"""Exception taxonomy surfaced by the client and controllers."""
from __future__ import annotations

from typing import Any, Mapping


class TeaTradeError(Exception):
    """Base class for every error raised by :mod:`teatrade`."""


class AuthenticationRequired(TeaTradeError):
    """No resolved user; the request is blocked before it is sent."""

    def __init__(self, message: str = "User authentication data is incomplete") -> None:
        super().__init__(message)


class Forbidden(TeaTradeError):
    """The resolved user lacks the role an action needs."""

    def __init__(self, message: str = "Forbidden: insufficient permissions") -> None:
        super().__init__(message)


class FilterValidationError(TeaTradeError):
    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        listing = ", ".join(f"{field}: {message}" for field, message in self.errors.items())
        super().__init__(f"Invalid filter values ({listing})")


class CsvValidationError(TeaTradeError):
    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class RequestFailed(TeaTradeError):
    """The API answered with a non-success status."""

    def __init__(self, status_code: int, message: str | None = None, details: Any = None) -> None:
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message or f"Request failed with status {status_code}")


class RequestTimedOut(TeaTradeError):
    def __init__(self, message: str = "Request timed out") -> None:
        super().__init__(message)


class RequestUnavailable(TeaTradeError):
    """The request never got an answer: refused, reset or dropped connection."""

    def __init__(self, message: str = "Unable to reach the server") -> None:
        super().__init__(message)


class UnexpectedResponse(TeaTradeError):
    """The API answered with a body this client cannot read."""


def describe_error(exc: BaseException, fallback: str, *, timeout_message: str | None = None) -> str:
    """Return the text a notification shows for ``exc``.

    Server failures use the ``message`` field of the response body when one was
    sent, otherwise ``fallback``. Timeouts get ``timeout_message`` when given.
    """

    if isinstance(exc, RequestTimedOut):
        return timeout_message or str(exc)
    if isinstance(exc, RequestFailed):
        return exc.message or fallback
    if isinstance(exc, (RequestUnavailable, UnexpectedResponse)):
        return fallback
    if isinstance(exc, TeaTradeError):
        return str(exc)
    return fallback


__all__ = [
    "TeaTradeError",
    "AuthenticationRequired",
    "Forbidden",
    "FilterValidationError",
    "CsvValidationError",
    "RequestFailed",
    "RequestTimedOut",
    "RequestUnavailable",
    "UnexpectedResponse",
    "describe_error",
]
