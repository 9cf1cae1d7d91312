"""Signup, login, logout and delete endpoints for customers and drivers."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ...config import settings
from ...errors import AccountError, UpstreamError, ValidationError
from ...schemas.accounts import (
    DeleteRequest,
    DeleteResponse,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    LogoutResponse,
    SignupRequest,
    SignupResponse,
)
from ...services.accounts import AccountService
from ..dependencies import get_account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.users_prefix, tags=["users"])


def _http_error(exc: AccountError, *, upstream_status: int) -> HTTPException:
    status_code = upstream_status if isinstance(exc, UpstreamError) else exc.status_code
    return HTTPException(status_code=status_code, detail=exc.to_detail())


async def users_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies on the user routes as 400s in the service's error shape."""
    if not request.url.path.startswith(f"{settings.api_prefix}{settings.users_prefix}/"):
        return await request_validation_exception_handler(request, exc)
    # Field errors end in the field name; unparsable JSON ends in a character offset.
    locations = [error["loc"][-1] for error in exc.errors() if error.get("loc")]
    fields = list(dict.fromkeys(location for location in locations if isinstance(location, str)))
    message = f"Invalid value for fields: {', '.join(fields)}" if fields else "Invalid request body"
    error = ValidationError(message, invalidFields=fields)
    return JSONResponse(status_code=error.status_code, content={"detail": error.to_detail()})


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, service: AccountService = Depends(get_account_service)) -> SignupResponse:
    try:
        result = service.signup(payload)
    except AccountError as exc:
        logger.info(f"Signup rejected: {exc.message}")
        raise _http_error(exc, upstream_status=status.HTTP_400_BAD_REQUEST) from exc
    except Exception as exc:
        logger.exception(f"Error creating user: {exc}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Error creating user", "error": str(exc)},
        ) from exc
    return SignupResponse(**result.to_dict())


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login(payload: LoginRequest, service: AccountService = Depends(get_account_service)) -> LoginResponse:
    try:
        result = service.login(payload.email, payload.password)
    except AccountError as exc:
        raise _http_error(exc, upstream_status=status.HTTP_500_INTERNAL_SERVER_ERROR) from exc
    except Exception as exc:
        logger.exception(f"Login error: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Internal server error", "error": str(exc)},
        ) from exc
    return LoginResponse(**result.to_dict())


@router.post("/logout", response_model=LogoutResponse, response_model_exclude_none=True, status_code=status.HTTP_200_OK)
def logout(payload: LogoutRequest | None = None, service: AccountService = Depends(get_account_service)) -> LogoutResponse:
    try:
        payload = payload or LogoutRequest()
        return LogoutResponse(**service.logout(payload.uid, payload.idToken))
    except AccountError as exc:
        # Any failure once revocation has started, unknown uid included, is a server-side logout failure.
        logger.error(f"Logout error: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Error during logout", "error": exc.message},
        ) from exc
    except Exception as exc:
        logger.exception(f"Logout error: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Error during logout", "error": str(exc)},
        ) from exc


@router.delete("/delete", response_model=DeleteResponse, status_code=status.HTTP_200_OK)
def delete_user(payload: DeleteRequest | None = None, service: AccountService = Depends(get_account_service)) -> DeleteResponse:
    try:
        return DeleteResponse(**service.delete(payload.uid if payload else None))
    except AccountError as exc:
        raise _http_error(exc, upstream_status=status.HTTP_500_INTERNAL_SERVER_ERROR) from exc
    except Exception as exc:
        logger.exception(f"Delete user error: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Error deleting user", "error": str(exc)},
        ) from exc
