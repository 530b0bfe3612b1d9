"""
Authentication Endpoints
Password login and sign-up requests through Supabase Auth, and the current
user's capabilities
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from youthhub.core.database import get_db
from youthhub.core.deps import get_login_limiter, get_permission_manager, require_identity
from youthhub.core.identity import Identity
from youthhub.core.permissions import PermissionManager
from youthhub.core.rate_limit import LoginAttemptLimiter
from youthhub.schemas.auth import (
    CurrentUserResponse,
    LoginBlocked,
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
)
from youthhub.services.auth import auth_service

logger = structlog.get_logger()
router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid credentials"}, 429: {"model": LoginBlocked}},
)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    limiter: LoginAttemptLimiter = Depends(get_login_limiter),
) -> Any:
    """
    Sign in with email and password

    Repeated failures for the same email block further attempts for a while.
    Accounts that are not approved yet are refused with 403.
    """
    return await auth_service.login(db, login_data, limiter)


@router.post(
    "/signup-request",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid sign-up data"}, 409: {"description": "Email already registered"}},
    openapi_extra={"requestBody": {"content": {"application/json": {"schema": SignupRequest.model_json_schema()}}}},
)
async def signup_request(
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Request a new account

    The account is created as a pending member; it can sign in once an admin
    approves it. Invalid data, including a weak password, is answered with 400.
    """
    try:
        signup_data = SignupRequest.model_validate(payload)
    except ValidationError as e:
        errors = [
            {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
            for err in e.errors(include_url=False)
        ]
        logger.warning("Signup refused", reason="invalid_data", fields=[err["loc"] for err in errors])
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=errors)
    return await auth_service.signup_request(db, signup_data)


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(
    identity: Identity = Depends(require_identity),
    manager: PermissionManager = Depends(get_permission_manager),
) -> Any:
    """Resolved identity of the caller with its capability flags."""
    return CurrentUserResponse(
        id=identity.id,
        email=identity.email,
        role=identity.role_name,
        is_approved=identity.is_approved,
        capabilities=manager.capabilities(identity),
    )
