"""Contract for identity provider integrations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..models.domain import IdentityRecord, IdentitySession


class IdentityGateway(ABC):
    """Credential, claim and session operations delegated to the identity provider."""

    @abstractmethod
    def create_identity(self, email: str, password: str, display_name: str) -> IdentityRecord:
        """Raises DuplicateError or WeakCredentialError when the provider refuses."""
        raise NotImplementedError

    @abstractmethod
    def verify_credentials(self, email: str, password: str) -> IdentitySession:
        """Raises AuthenticationError for any rejected email/password pair."""
        raise NotImplementedError

    @abstractmethod
    def set_role_claim(self, uid: str, claims: dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_identity_by_email(self, email: str) -> IdentityRecord:
        raise NotImplementedError

    @abstractmethod
    def get_identity(self, uid: str) -> IdentityRecord:
        raise NotImplementedError

    @abstractmethod
    def revoke_sessions(self, uid: str, id_token: str | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def verify_token(self, token: str, check_revoked: bool = False) -> dict[str, Any]:
        """Return decoded claims or raise InvalidTokenError."""
        raise NotImplementedError

    @abstractmethod
    def delete_identity(self, uid: str) -> None:
        """Raises NotFoundError when the identity no longer exists."""
        raise NotImplementedError
