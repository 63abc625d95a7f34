from __future__ import annotations

from googleapiclient.errors import HttpError


class AutoResponderError(Exception):
    """Base class for errors raised by the auto-responder."""


class AuthError(AutoResponderError):
    """Credentials could not be loaded, refreshed or obtained."""


class ApiError(AutoResponderError):
    """A Gmail API call failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    @classmethod
    def from_http_error(cls, action: str, exc: HttpError) -> "ApiError":
        status = getattr(exc.resp, "status", None)
        return cls(f"{action} failed ({status}): {exc}", status=int(status) if status else None)


class AddressParseError(AutoResponderError):
    """A From header did not contain a usable address."""


class PersistenceError(AutoResponderError):
    """Local state could not be read or written."""
