from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from swifttrack.api.dependencies import get_account_service
from swifttrack.data.gazetteer import Gazetteer, load_gazetteer
from swifttrack.errors import AuthenticationError, DuplicateError, InvalidTokenError, NotFoundError, UpstreamError
from swifttrack.identity.base import IdentityGateway
from swifttrack.identity.supabase_gateway import INVALID_CREDENTIALS_MESSAGE
from swifttrack.main import create_app
from swifttrack.models.domain import Account, IdentityRecord, IdentitySession
from swifttrack.persistence.accounts import AccountStore
from swifttrack.services.accounts import AccountService


class FakeIdentityGateway(IdentityGateway):
    """In-memory identity provider that records every call."""

    def __init__(self) -> None:
        self.identities: dict[str, IdentityRecord] = {}
        self.passwords: dict[str, str] = {}
        self.tokens: dict[str, str] = {}
        self.revoked: set[str] = set()
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self._next_uid = 1

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def _by_email(self, email: str) -> IdentityRecord | None:
        return next((item for item in self.identities.values() if item.email == email.lower()), None)

    def create_identity(self, email: str, password: str, display_name: str) -> IdentityRecord:
        self._record("create_identity")
        if self._by_email(email):
            raise DuplicateError("User with this email already exists")
        uid = f"uid-{self._next_uid}"
        self._next_uid += 1
        identity = IdentityRecord(uid=uid, email=email.lower(), display_name=display_name)
        self.identities[uid] = identity
        self.passwords[email.lower()] = password
        return IdentityRecord(uid=uid, email=identity.email, display_name=display_name)

    def verify_credentials(self, email: str, password: str) -> IdentitySession:
        self._record("verify_credentials")
        identity = self._by_email(email)
        if identity is None or self.passwords.get(email.lower()) != password:
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
        token = f"id-token-{identity.uid}"
        self.tokens[token] = identity.uid
        return IdentitySession(uid=identity.uid, id_token=token, refresh_token=f"refresh-{identity.uid}", expires_in=3600)

    def set_role_claim(self, uid: str, claims: dict[str, Any]) -> None:
        self._record("set_role_claim")
        self.get_identity(uid).claims.update(claims)

    def get_identity_by_email(self, email: str) -> IdentityRecord:
        self._record("get_identity_by_email")
        identity = self._by_email(email)
        if identity is None:
            raise NotFoundError("User not found with provided email")
        return identity

    def get_identity(self, uid: str) -> IdentityRecord:
        self._record("get_identity")
        if uid not in self.identities:
            raise NotFoundError("User not found with provided uid")
        return self.identities[uid]

    def revoke_sessions(self, uid: str, id_token: str | None = None) -> None:
        self._record("revoke_sessions")
        if uid not in self.identities:
            raise NotFoundError("User not found with provided uid")
        self.revoked.add(uid)

    def verify_token(self, token: str, check_revoked: bool = False) -> dict[str, Any]:
        self._record("verify_token")
        uid = self.tokens.get(token)
        if uid is None:
            raise InvalidTokenError("Token verification failed")
        if check_revoked and uid in self.revoked:
            raise InvalidTokenError("Token has been revoked")
        return {"uid": uid, "email": self.identities[uid].email}

    def delete_identity(self, uid: str) -> None:
        self._record("delete_identity")
        if uid not in self.identities:
            raise NotFoundError("User not found with provided uid")
        del self.identities[uid]


class InMemoryAccountStore(AccountStore):
    """Account store enforcing the same unique keys as the database tables."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.taken_ids: set[str] = set()
        self.fail_create: Exception | None = None
        self.fail_delete: Exception | None = None

    def find_by_email(self, email: str) -> Account:
        for account in self.accounts.values():
            if account.email == email:
                return account
        raise NotFoundError("No account registered with this email")

    def find_by_identity(self, uid: str) -> Account:
        if uid not in self.accounts:
            raise NotFoundError("No account registered for this uid")
        return self.accounts[uid]

    def identifier_exists(self, role: str, account_id: str) -> bool:
        return account_id in self.taken_ids or any(
            account.role == role and account.account_id == account_id for account in self.accounts.values()
        )

    def create(self, account: Account) -> Account:
        if self.fail_create is not None:
            raise self.fail_create
        for existing in self.accounts.values():
            if existing.uid == account.uid or existing.email == account.email or existing.account_id == account.account_id:
                raise DuplicateError("User already exists")
        self.accounts[account.uid] = account
        return account

    def delete_by_identity(self, uid: str) -> bool:
        if self.fail_delete is not None:
            raise self.fail_delete
        return self.accounts.pop(uid, None) is not None


@pytest.fixture
def gazetteer() -> Gazetteer:
    return load_gazetteer()


@pytest.fixture
def gateway() -> FakeIdentityGateway:
    return FakeIdentityGateway()


@pytest.fixture
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def service(gateway: FakeIdentityGateway, store: InMemoryAccountStore, gazetteer: Gazetteer) -> AccountService:
    return AccountService(gateway=gateway, store=store, gazetteer=gazetteer)


@pytest.fixture
def api_client(service: AccountService) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_account_service] = lambda: service
    return TestClient(app)


@pytest.fixture
def signup_payload() -> dict[str, Any]:
    return {
        "name": "Kasun",
        "email": "k@x.com",
        "password": "Pw123!",
        "confirmPassword": "Pw123!",
        "phone": "0771234567",
        "address": "123 Main St, Colombo",
        "role": "customer",
    }


@pytest.fixture
def upstream_failure() -> UpstreamError:
    return UpstreamError("Error saving account", error="connection reset")
