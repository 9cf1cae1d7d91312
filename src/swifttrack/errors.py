"""Exception hierarchy shared by the account services and their HTTP routes."""

from __future__ import annotations

from typing import Any


class AccountError(Exception):
    """Base error carrying the HTTP status and body it should surface as."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_detail(self) -> dict[str, Any]:
        return {"message": self.message, **self.extra}


class ValidationError(AccountError):
    status_code = 400


class WeakCredentialError(ValidationError):
    """The identity provider rejected the password."""


class AuthenticationError(AccountError):
    status_code = 401


class InvalidTokenError(AccountError):
    status_code = 401


class NotFoundError(AccountError):
    status_code = 404


class DuplicateError(AccountError):
    status_code = 400


class UpstreamError(AccountError):
    """Identity provider or account store failure, message passed through."""

    status_code = 500
