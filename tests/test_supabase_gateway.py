import json
from types import SimpleNamespace

import httpx
import jwt
import pytest
from supabase import AuthApiError

from swifttrack.errors import (
    AuthenticationError,
    DuplicateError,
    InvalidTokenError,
    NotFoundError,
    UpstreamError,
    WeakCredentialError,
)
from swifttrack.identity.supabase_gateway import INVALID_CREDENTIALS_MESSAGE, SupabaseIdentityGateway

SIGNING_KEY = "test-signing-key-that-is-at-least-32-bytes"


def _user(uid="u-1", email="k@x.com", app_metadata=None, name="Kasun"):
    return SimpleNamespace(
        id=uid,
        email=email,
        user_metadata={"display_name": name},
        app_metadata=app_metadata if app_metadata is not None else {"provider": "email", "providers": ["email"]},
    )


class StubAdmin:
    def __init__(self):
        self.users = {}
        self.calls = []
        self.errors = {}

    def _maybe_fail(self, name):
        self.calls.append(name)
        if name in self.errors:
            raise self.errors[name]

    def create_user(self, attributes):
        self._maybe_fail("create_user")
        user = _user(uid=f"u-{len(self.users) + 1}", email=attributes["email"], name=attributes["user_metadata"]["display_name"])
        self.users[user.id] = user
        return SimpleNamespace(user=user)

    def update_user_by_id(self, uid, attributes):
        self._maybe_fail("update_user_by_id")
        user = self.users[uid]
        user.app_metadata = {**user.app_metadata, **attributes["app_metadata"]}
        return SimpleNamespace(user=user)

    def get_user_by_id(self, uid):
        self._maybe_fail("get_user_by_id")
        if uid not in self.users:
            raise AuthApiError("User not found", 404, "user_not_found")
        return SimpleNamespace(user=self.users[uid])

    def list_users(self, page=None, per_page=None):
        self._maybe_fail("list_users")
        users = list(self.users.values())
        start = (page - 1) * per_page
        return users[start:start + per_page]

    def sign_out(self, jwt_token, scope="global"):
        self._maybe_fail("sign_out")

    def delete_user(self, uid, should_soft_delete=False):
        self._maybe_fail("delete_user")
        if uid not in self.users:
            raise AuthApiError("User not found", 404, "user_not_found")
        del self.users[uid]


class StubAuth:
    def __init__(self, admin):
        self.admin = admin
        self.token_users = {}

    def get_user(self, token):
        if token not in self.token_users:
            raise AuthApiError("invalid JWT", 401, "bad_jwt")
        return SimpleNamespace(user=self.admin.users[self.token_users[token]])


@pytest.fixture
def admin():
    return StubAdmin()


@pytest.fixture
def auth(admin):
    return StubAuth(admin)


@pytest.fixture
def gateway(auth):
    return SupabaseIdentityGateway(
        SimpleNamespace(auth=auth),
        base_url="https://project.supabase.co/",
        api_key="anon-key",
        page_size=2,
    )


def _gateway_with_transport(auth, handler):
    return SupabaseIdentityGateway(
        SimpleNamespace(auth=auth),
        base_url="https://project.supabase.co",
        api_key="anon-key",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_create_identity_maps_user(gateway, admin):
    identity = gateway.create_identity("k@x.com", "Pw123!", "Kasun")

    assert identity.uid == "u-1"
    assert identity.email == "k@x.com"
    assert identity.display_name == "Kasun"
    assert identity.claims == {}


def test_create_identity_duplicate_email(gateway, admin):
    admin.errors["create_user"] = AuthApiError("A user with this email address has already been registered", 422, "email_exists")

    with pytest.raises(DuplicateError):
        gateway.create_identity("k@x.com", "Pw123!", "Kasun")


def test_create_identity_weak_password(gateway, admin):
    admin.errors["create_user"] = AuthApiError("Password should be at least 6 characters", 422, "weak_password")

    with pytest.raises(WeakCredentialError) as excinfo:
        gateway.create_identity("k@x.com", "1", "Kasun")

    assert excinfo.value.status_code == 400


def test_create_identity_other_failure_is_upstream(gateway, admin):
    admin.errors["create_user"] = AuthApiError("database unavailable", 500, "unexpected_failure")

    with pytest.raises(UpstreamError) as excinfo:
        gateway.create_identity("k@x.com", "Pw123!", "Kasun")

    assert excinfo.value.to_detail()["error"] == "database unavailable"


def test_verify_credentials_posts_password_grant(auth):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["apikey"] = request.headers["apikey"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"access_token": "access", "refresh_token": "refresh", "expires_in": 3600, "user": {"id": "u-1"}},
        )

    session = _gateway_with_transport(auth, handler).verify_credentials("k@x.com", "Pw123!")

    assert session.uid == "u-1"
    assert session.id_token == "access"
    assert session.refresh_token == "refresh"
    assert session.expires_in == 3600
    assert seen["url"].path == "/auth/v1/token"
    assert seen["url"].params["grant_type"] == "password"
    assert seen["apikey"] == "anon-key"
    assert seen["body"] == {"email": "k@x.com", "password": "Pw123!"}


@pytest.mark.parametrize("status_code", [400, 404, 422])
def test_verify_credentials_rejections_look_the_same(auth, status_code):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})

    with pytest.raises(AuthenticationError) as excinfo:
        _gateway_with_transport(auth, handler).verify_credentials("k@x.com", "wrong")

    assert excinfo.value.message == INVALID_CREDENTIALS_MESSAGE


def test_verify_credentials_transport_error_is_upstream(auth):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError):
        _gateway_with_transport(auth, handler).verify_credentials("k@x.com", "Pw123!")


def test_verify_credentials_requires_api_key(auth):
    gateway = SupabaseIdentityGateway(SimpleNamespace(auth=auth), base_url="https://project.supabase.co", api_key="")
    gateway.api_key = None

    with pytest.raises(UpstreamError):
        gateway.verify_credentials("k@x.com", "Pw123!")


def test_set_role_claim_keeps_provider_keys_out_of_claims(gateway, admin):
    identity = gateway.create_identity("k@x.com", "Pw123!", "Kasun")

    gateway.set_role_claim(identity.uid, {"role": "driver", "address": "Kandy"})

    fetched = gateway.get_identity(identity.uid)
    assert fetched.claims == {"role": "driver", "address": "Kandy"}
    assert fetched.role == "driver"
    assert admin.users[identity.uid].app_metadata["provider"] == "email"


def test_get_identity_not_found(gateway):
    with pytest.raises(NotFoundError):
        gateway.get_identity("missing")


def test_get_identity_by_email_scans_pages(gateway):
    for index in range(5):
        gateway.create_identity(f"user{index}@x.com", "Pw123!", f"User {index}")

    identity = gateway.get_identity_by_email("USER4@x.com")

    assert identity.email == "user4@x.com"
    with pytest.raises(NotFoundError):
        gateway.get_identity_by_email("ghost@x.com")


def test_revoke_sessions_stamps_and_signs_out(gateway, admin):
    identity = gateway.create_identity("k@x.com", "Pw123!", "Kasun")

    gateway.revoke_sessions(identity.uid, "token")

    assert admin.users[identity.uid].app_metadata["tokens_valid_after"] > 0
    assert admin.calls[-1] == "sign_out"


def test_revoke_sessions_sign_out_failure_is_logged_only(gateway, admin):
    identity = gateway.create_identity("k@x.com", "Pw123!", "Kasun")
    admin.errors["sign_out"] = AuthApiError("session not found", 404, "session_not_found")

    gateway.revoke_sessions(identity.uid, "token")

    assert "tokens_valid_after" in admin.users[identity.uid].app_metadata


def test_verify_token_honours_revocation(gateway, admin, auth):
    identity = gateway.create_identity("k@x.com", "Pw123!", "Kasun")
    old_token = jwt.encode({"sub": identity.uid, "iat": 1_000}, SIGNING_KEY, algorithm="HS256")
    new_token = jwt.encode({"sub": identity.uid, "iat": 3_000}, SIGNING_KEY, algorithm="HS256")
    auth.token_users = {old_token: identity.uid, new_token: identity.uid}
    admin.users[identity.uid].app_metadata["tokens_valid_after"] = 2_000

    assert gateway.verify_token(old_token)["uid"] == identity.uid
    with pytest.raises(InvalidTokenError):
        gateway.verify_token(old_token, check_revoked=True)
    assert gateway.verify_token(new_token, check_revoked=True)["email"] == "k@x.com"


def test_verify_token_without_revocation_check_skips_decoding(gateway, admin, auth):
    identity = gateway.create_identity("k@x.com", "Pw123!", "Kasun")
    admin.users[identity.uid].app_metadata["tokens_valid_after"] = 2_000
    auth.token_users = {"opaque-provider-token": identity.uid}

    assert gateway.verify_token("opaque-provider-token")["uid"] == identity.uid
    with pytest.raises(InvalidTokenError):
        gateway.verify_token("opaque-provider-token", check_revoked=True)


def test_verify_token_rejected_by_provider(gateway):
    with pytest.raises(InvalidTokenError):
        gateway.verify_token("not-a-token")


def test_delete_identity_twice_is_not_found(gateway):
    identity = gateway.create_identity("k@x.com", "Pw123!", "Kasun")

    gateway.delete_identity(identity.uid)
    with pytest.raises(NotFoundError):
        gateway.delete_identity(identity.uid)


def test_unconfigured_client_is_upstream_error(monkeypatch):
    from swifttrack.identity import supabase_gateway

    monkeypatch.setattr(supabase_gateway, "get_supabase_client", lambda: None)

    with pytest.raises(UpstreamError):
        SupabaseIdentityGateway().get_identity("u-1")
