"""Account lifecycle services."""

from .service import AccountService, LoginResult, SignupResult

__all__ = ["AccountService", "LoginResult", "SignupResult"]
