"""Account lifecycle API schemas."""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel


class SignupRequest(BaseModel):
    # Fields are optional so that missing values surface as 400s with a field-specific message.
    name: str | None = None
    email: str | None = None
    password: str | None = None
    confirmPassword: str | None = None
    phone: str | None = None
    address: str | None = None
    role: str | None = None
    license_number: str | None = None
    vehicle_info: dict[str, Any] | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class LogoutRequest(BaseModel):
    uid: str | None = None
    idToken: str | None = None


class DeleteRequest(BaseModel):
    uid: str | None = None


class IdentityModel(BaseModel):
    uid: str
    email: str
    displayName: str | None = None
    customClaims: dict[str, Any] = {}


class LocationMatchModel(BaseModel):
    district: str
    latitude: float
    longitude: float
    matchType: str
    matchedAlias: str | None = None


class SignupResponse(BaseModel):
    message: str
    user: IdentityModel
    profile: dict[str, Any]
    location: LocationMatchModel


class LoginResponse(BaseModel):
    message: str
    user: IdentityModel
    profile: dict[str, Any] | None = None
    idToken: str
    refreshToken: str
    expiresIn: int


class LogoutResponse(BaseModel):
    message: str
    details: dict[str, str] | None = None
    warning: str | None = None
    instructions: List[str] | None = None
    note: str | None = None
    timestamp: str


class DeletedUserModel(BaseModel):
    uid: str
    email: str
    displayName: str | None = None


class DeleteResponse(BaseModel):
    message: str
    deletedUser: DeletedUserModel
    profileDeleted: bool
    timestamp: str
