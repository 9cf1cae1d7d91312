"""Supabase Auth implementation of the identity gateway."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import jwt
from supabase import AuthApiError, AuthError, AuthWeakPasswordError, Client

from ..config import settings
from ..db.supabase import get_supabase_client
from ..errors import (
    AuthenticationError,
    DuplicateError,
    InvalidTokenError,
    NotFoundError,
    UpstreamError,
    WeakCredentialError,
)
from ..models.domain import IdentityRecord, IdentitySession
from .base import IdentityGateway

logger = logging.getLogger(__name__)

# Provider-managed app_metadata keys that are not role claims.
_RESERVED_CLAIMS = {"provider", "providers", "tokens_valid_after"}
_DUPLICATE_CODES = {"email_exists", "user_already_exists"}
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


def _is_not_found(error: AuthError) -> bool:
    status_code = getattr(error, "status", None)
    code = getattr(error, "code", None)
    return status_code == 404 or code == "user_not_found" or "not found" in str(error).lower()


def _to_identity(user: Any) -> IdentityRecord:
    user_metadata = getattr(user, "user_metadata", None) or {}
    app_metadata = getattr(user, "app_metadata", None) or {}
    tokens_valid_after = app_metadata.get("tokens_valid_after")
    return IdentityRecord(
        uid=str(user.id),
        email=user.email or "",
        display_name=user_metadata.get("display_name") or user_metadata.get("name"),
        claims={key: value for key, value in app_metadata.items() if key not in _RESERVED_CLAIMS},
        tokens_valid_after=int(tokens_valid_after) if tokens_valid_after is not None else None,
    )


def _issued_at(token: str) -> int | None:
    # Signature has already been checked by the provider; only the iat claim is read here.
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(f"Malformed token: {exc}") from exc
    issued_at = payload.get("iat")
    return int(issued_at) if issued_at is not None else None


class SupabaseIdentityGateway(IdentityGateway):
    """Admin operations go through the service-role client, sign-in through the Auth REST API."""

    def __init__(
        self,
        client: Client | None = None,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        http_client: httpx.Client | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
    ) -> None:
        self._client = client
        self.base_url = (base_url or settings.supabase_url or "").rstrip("/")
        self.api_key = api_key or settings.supabase_anon_key
        self._http_client = http_client
        self.timeout = timeout if timeout is not None else settings.identity_timeout_seconds
        self.page_size = page_size or settings.identity_page_size

    @property
    def client(self) -> Client:
        client = self._client or get_supabase_client()
        if client is None:
            raise UpstreamError(
                "Identity provider is not configured",
                error="Set SWIFTTRACK_SUPABASE_URL and SWIFTTRACK_SUPABASE_KEY.",
            )
        return client

    def create_identity(self, email: str, password: str, display_name: str) -> IdentityRecord:
        try:
            response = self.client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": {"display_name": display_name},
                }
            )
        except AuthWeakPasswordError as exc:
            raise WeakCredentialError("Password is too weak", error=str(exc)) from exc
        except AuthApiError as exc:
            if getattr(exc, "code", None) in _DUPLICATE_CODES or "already" in str(exc).lower():
                raise DuplicateError("User with this email already exists", error=str(exc)) from exc
            if getattr(exc, "code", None) == "weak_password":
                raise WeakCredentialError("Password is too weak", error=str(exc)) from exc
            raise UpstreamError("Error creating user", error=str(exc)) from exc
        except AuthError as exc:
            raise UpstreamError("Error creating user", error=str(exc)) from exc

        identity = _to_identity(response.user)
        logger.info(f"Created identity {identity.uid} for {email}")
        return identity

    def verify_credentials(self, email: str, password: str) -> IdentitySession:
        if not self.base_url or not self.api_key:
            raise UpstreamError(
                "Identity provider is not configured",
                error="Set SWIFTTRACK_SUPABASE_URL and SWIFTTRACK_SUPABASE_ANON_KEY.",
            )

        http_client = self._http_client or httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0))
        try:
            response = http_client.post(
                f"{self.base_url}/auth/v1/token",
                params={"grant_type": "password"},
                headers={"apikey": self.api_key},
                json={"email": email, "password": password},
            )
        except httpx.HTTPError as exc:
            raise UpstreamError("Identity provider unavailable", error=str(exc)) from exc
        finally:
            if self._http_client is None:
                http_client.close()

        if not response.is_success:
            # Wrong password and unknown email are reported identically.
            logger.info(f"Password sign-in rejected for {email} (HTTP {response.status_code})")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        data = response.json()
        return IdentitySession(
            uid=str((data.get("user") or {}).get("id", "")),
            id_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_in=int(data.get("expires_in", 0)),
        )

    def set_role_claim(self, uid: str, claims: dict[str, Any]) -> None:
        try:
            self.client.auth.admin.update_user_by_id(uid, {"app_metadata": dict(claims)})
        except AuthError as exc:
            if _is_not_found(exc):
                raise NotFoundError("User not found with provided uid") from exc
            raise UpstreamError("Error setting user claims", error=str(exc)) from exc

    def get_identity_by_email(self, email: str) -> IdentityRecord:
        target = email.strip().lower()
        page = 1
        while True:
            try:
                users = self.client.auth.admin.list_users(page=page, per_page=self.page_size)
            except AuthError as exc:
                raise UpstreamError("Error looking up user", error=str(exc)) from exc
            for user in users:
                if (user.email or "").lower() == target:
                    return _to_identity(user)
            if len(users) < self.page_size:
                break
            page += 1
        raise NotFoundError("User not found with provided email")

    def get_identity(self, uid: str) -> IdentityRecord:
        try:
            response = self.client.auth.admin.get_user_by_id(uid)
        except AuthError as exc:
            if _is_not_found(exc):
                raise NotFoundError("User not found with provided uid") from exc
            raise UpstreamError("Error looking up user", error=str(exc)) from exc
        if response is None or response.user is None:
            raise NotFoundError("User not found with provided uid")
        return _to_identity(response.user)

    def revoke_sessions(self, uid: str, id_token: str | None = None) -> None:
        revoked_at = int(time.time())
        try:
            self.client.auth.admin.update_user_by_id(uid, {"app_metadata": {"tokens_valid_after": revoked_at}})
        except AuthError as exc:
            if _is_not_found(exc):
                raise NotFoundError("User not found with provided uid") from exc
            raise UpstreamError("Error revoking sessions", error=str(exc)) from exc

        if id_token:
            try:
                self.client.auth.admin.sign_out(id_token, "global")
            except AuthError as exc:
                logger.warning(f"Global sign-out failed for {uid}: {exc}")
        logger.info(f"Revoked sessions for {uid} issued before {revoked_at}")

    def verify_token(self, token: str, check_revoked: bool = False) -> dict[str, Any]:
        try:
            response = self.client.auth.get_user(token)
        except AuthError as exc:
            raise InvalidTokenError(f"Token verification failed: {exc}") from exc
        if response is None or response.user is None:
            raise InvalidTokenError("Token verification failed: no user for token")

        identity = _to_identity(response.user)
        if check_revoked and identity.tokens_valid_after is not None:
            issued_at = _issued_at(token)
            if issued_at is None or issued_at < identity.tokens_valid_after:
                raise InvalidTokenError("Token has been revoked")
        return {
            "uid": identity.uid,
            "email": identity.email,
            "claims": identity.claims,
        }

    def delete_identity(self, uid: str) -> None:
        try:
            self.client.auth.admin.delete_user(uid)
        except AuthError as exc:
            if _is_not_found(exc):
                raise NotFoundError("User not found with provided uid") from exc
            raise UpstreamError("Error deleting user", error=str(exc)) from exc
        logger.info(f"Deleted identity {uid}")
