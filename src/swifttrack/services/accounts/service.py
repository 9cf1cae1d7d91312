"""Account lifecycle orchestration: signup, login, logout and delete."""

from __future__ import annotations

import logging
import re
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ...config import settings
from ...data.gazetteer import Gazetteer
from ...errors import AccountError, DuplicateError, InvalidTokenError, NotFoundError, UpstreamError, ValidationError
from ...identity.base import IdentityGateway
from ...models.domain import ROLES, Account, CustomerAccount, DriverAccount, IdentityRecord, IdentitySession, Location
from ...persistence.accounts import AccountStore
from ...schemas.accounts import SignupRequest
from ..locations import AddressMatch, match_address

logger = logging.getLogger(__name__)

REQUIRED_SIGNUP_FIELDS = ("name", "email", "password", "confirmPassword", "phone", "address", "role")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SUGGESTED_DISTRICT_COUNT = 5

LOGOUT_INSTRUCTIONS = [
    "Clear all tokens from client storage",
    "Call signOut() on the client auth SDK",
    "Clear any cached user data",
    "Redirect to login page",
]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _random_digits(count: int) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(count))


@dataclass(slots=True)
class SignupResult:
    identity: IdentityRecord
    account: Account
    location: AddressMatch

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": "User created successfully",
            "user": self.identity.to_dict(),
            "profile": self.account.to_dict(),
            "location": self.location.to_dict(),
        }


@dataclass(slots=True)
class LoginResult:
    identity: IdentityRecord
    session: IdentitySession
    account: Account | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": "Login successful",
            "user": self.identity.to_dict(),
            "profile": self.account.to_dict() if self.account else None,
            "idToken": self.session.id_token,
            "refreshToken": self.session.refresh_token,
            "expiresIn": self.session.expires_in,
        }


class AccountService:
    """Coordinates the identity gateway, the account store and the address matcher."""

    def __init__(self, gateway: IdentityGateway, store: AccountStore, gazetteer: Gazetteer) -> None:
        self.gateway = gateway
        self.store = store
        self.gazetteer = gazetteer

    # Signup

    def _validate_signup(self, payload: SignupRequest) -> None:
        missing = [field for field in REQUIRED_SIGNUP_FIELDS if not (getattr(payload, field) or "").strip()]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                missingFields=missing,
            )
        if not EMAIL_PATTERN.match(payload.email.strip()):
            raise ValidationError("Email address is not valid")
        if payload.role.strip() not in ROLES:
            raise ValidationError("Role must be either 'customer' or 'driver'")
        if payload.password != payload.confirmPassword:
            raise ValidationError("Passwords do not match")
        if payload.role.strip() == "driver" and not (payload.license_number or "").strip():
            raise ValidationError("License number is required for drivers")

    def _resolve_location(self, address: str) -> AddressMatch:
        location = match_address(address, self.gazetteer)
        if location is None:
            sample = ", ".join(self.gazetteer.names()[:SUGGESTED_DISTRICT_COUNT])
            raise ValidationError(
                "Could not determine a location from the provided address",
                suggestion=f"Include a district or town name in the address, for example: {sample}",
            )
        return location

    def _generate_account_id(self, role: str) -> str:
        prefix = settings.customer_id_prefix if role == "customer" else settings.driver_id_prefix
        for _ in range(settings.account_id_attempts):
            candidate = f"{prefix}{_random_digits(settings.account_id_digits)}"
            if not self.store.identifier_exists(role, candidate):
                return candidate
            logger.warning(f"Generated {role} identifier {candidate} already exists, drawing again")
        raise DuplicateError(f"Could not allocate a unique {role} identifier")

    def _build_account(self, payload: SignupRequest, uid: str, email: str, location: AddressMatch) -> Account:
        role = payload.role.strip()
        current_location = Location(
            address=payload.address.strip(),
            latitude=location.latitude,
            longitude=location.longitude,
        )
        common = {
            "uid": uid,
            "name": payload.name.strip(),
            "email": email,
            "phone": payload.phone.strip(),
            "current_location": current_location,
        }
        account_id = self._generate_account_id(role)
        if role == "driver":
            return DriverAccount(
                **common,
                driver_id=account_id,
                license_number=payload.license_number.strip(),
                vehicle_info=payload.vehicle_info,
            )
        return CustomerAccount(**common, customer_id=account_id)

    def _compensate_signup(self, uid: str) -> None:
        try:
            self.gateway.delete_identity(uid)
            logger.info(f"Rolled back identity {uid} after failed signup")
        except Exception:
            logger.error(f"Failed to roll back identity {uid}; manual cleanup required", exc_info=True)

    def signup(self, payload: SignupRequest) -> SignupResult:
        self._validate_signup(payload)
        email = payload.email.strip().lower()
        location = self._resolve_location(payload.address)

        try:
            self.store.find_by_email(email)
        except NotFoundError:
            pass
        else:
            raise DuplicateError("User with this email already exists")

        identity = self.gateway.create_identity(email, payload.password, payload.name.strip())
        try:
            claims = {"role": payload.role.strip(), "address": payload.address.strip()}
            self.gateway.set_role_claim(identity.uid, claims)
            identity.claims.update(claims)
            account = self.store.create(self._build_account(payload, identity.uid, email, location))
        except Exception:
            self._compensate_signup(identity.uid)
            raise

        logger.info(f"Signed up {account.role} {account.account_id} ({email}) in {location.district}")
        return SignupResult(identity=identity, account=account, location=location)

    # Login

    def login(self, email: str | None, password: str | None) -> LoginResult:
        if not (email or "").strip() or not password:
            raise ValidationError("Email and password are required")
        email = email.strip().lower()

        session = self.gateway.verify_credentials(email, password)
        try:
            if session.uid:
                identity = self.gateway.get_identity(session.uid)
            else:
                identity = self.gateway.get_identity_by_email(email)
        except NotFoundError as exc:
            raise UpstreamError("Identity record missing after sign-in", error=exc.message) from exc

        account: Account | None
        try:
            account = self.store.find_by_identity(identity.uid)
        except NotFoundError:
            logger.warning(f"Identity {identity.uid} has no stored profile")
            account = None
        if account is not None and identity.role != account.role:
            logger.warning(f"Role claim {identity.role!r} of {identity.uid} disagrees with stored role {account.role!r}")

        logger.info(f"Login successful for {identity.uid}")
        return LoginResult(identity=identity, session=session, account=account)

    # Logout

    def logout(self, uid: str | None = None, id_token: str | None = None) -> dict[str, Any]:
        if not (uid or "").strip():
            return {
                "message": "Client-side logout guidance",
                "warning": "Server-side token revocation not performed (no UID provided)",
                "instructions": list(LOGOUT_INSTRUCTIONS),
                "note": "For complete security, provide UID for server-side token revocation",
                "timestamp": _timestamp(),
            }

        uid = uid.strip()
        self.gateway.revoke_sessions(uid, id_token)

        token_valid = False
        if id_token:
            try:
                decoded = self.gateway.verify_token(id_token, check_revoked=True)
                token_valid = True
                logger.info(f"User {decoded.get('email') or uid} logged out")
            except InvalidTokenError as exc:
                # Expected once the sessions above are revoked.
                logger.info(f"Token verification failed during logout: {exc.message}")
            except AccountError as exc:
                logger.warning(f"Token check during logout for {uid} failed: {exc.message}")

        return {
            "message": "Logout successful",
            "details": {
                "serverSideLogout": "Refresh tokens revoked",
                "tokenStatus": "Valid at logout time" if token_valid else "Invalid/Expired",
            },
            "timestamp": _timestamp(),
        }

    # Delete

    def _restore_profile(self, account: Account) -> None:
        try:
            self.store.create(account)
            logger.info(f"Restored profile {account.account_id} after failed identity deletion")
        except Exception:
            logger.error(f"Failed to restore profile {account.account_id}; manual cleanup required", exc_info=True)

    def delete(self, uid: str | None) -> dict[str, Any]:
        if not (uid or "").strip():
            raise ValidationError("UID is required to delete user")
        uid = uid.strip()

        identity = self.gateway.get_identity(uid)

        account: Account | None
        try:
            account = self.store.find_by_identity(uid)
        except NotFoundError:
            account = None
        if account is not None:
            self.store.delete_by_identity(uid)

        try:
            self.gateway.delete_identity(uid)
        except Exception:
            if account is not None:
                self._restore_profile(account)
            raise

        logger.info(f"Deleted user {uid} (profile removed: {account is not None})")
        return {
            "message": "User deleted successfully",
            "deletedUser": {
                "uid": identity.uid,
                "email": identity.email,
                "displayName": identity.display_name,
            },
            "profileDeleted": account is not None,
            "timestamp": _timestamp(),
        }
