"""
Auth Service
Password login through Supabase Auth (GoTrue) with failed-attempt blocking,
and sign-up requests that enter the approval queue.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import httpx
import structlog
from fastapi import HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.core.config import settings
from youthhub.core.deps import DenialReason
from youthhub.core.identity import Identity
from youthhub.core.rate_limit import LoginAttemptLimiter
from youthhub.core.roles import Role
from youthhub.repositories.profile import user_profile_repository
from youthhub.schemas.auth import LoginBlocked, LoginRequest, LoginResponse, SignupRequest, SignupResponse

logger = structlog.get_logger()


class InvalidCredentials(Exception):
    pass


class UserAlreadyExists(Exception):
    pass


class SignupRejected(Exception):
    """The provider refused the sign-up data (weak password, invalid email)."""


class SupabaseAuthClient:
    """Minimal GoTrue client: password grant and sign-up."""

    def __init__(self, base_url: str, anon_key: str, timeout: float) -> None:
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout

    async def sign_in_with_password(self, email: str, password: str) -> dict:
        url = f"{self.base_url}/auth/v1/token"
        headers = {"apikey": self.anon_key, "Content-Type": "application/json"}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                url,
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=headers,
            )

        if resp.status_code in (400, 401, 422):
            try:
                reason = resp.json().get("error_description") or resp.json().get("msg")
            except ValueError:
                reason = None
            raise InvalidCredentials(reason or resp.text)
        resp.raise_for_status()
        return resp.json()

    async def sign_up(self, email: str, password: str, metadata: Optional[dict] = None) -> dict:
        """
        Create an auth user.

        Returns:
            The created user, with ``email_confirmed_at`` unset while
            confirmation is pending
        """
        url = f"{self.base_url}/auth/v1/signup"
        headers = {"apikey": self.anon_key, "Content-Type": "application/json"}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                url,
                json={"email": email, "password": password, "data": metadata or {}},
                headers=headers,
            )

        if resp.status_code in (400, 422):
            try:
                error = resp.json()
            except ValueError:
                error = {}
            reason = error.get("msg") or error.get("error_description") or resp.text
            if error.get("error_code") == "user_already_exists" or "already" in reason.lower():
                raise UserAlreadyExists(reason)
            raise SignupRejected(reason)
        resp.raise_for_status()

        body = resp.json()
        user = body.get("user") or body
        # An existing, confirmed email comes back as a user without identities.
        if user.get("identities") == []:
            raise UserAlreadyExists("User already registered")
        return user


def blocked_response(blocked_until: datetime) -> JSONResponse:
    remaining = max(0, math.ceil((blocked_until - datetime.now(timezone.utc)).total_seconds() / 60))
    body = LoginBlocked(
        error=f"Too many failed login attempts. Try again in {remaining} minutes.",
        blocked_until=blocked_until,
        remaining_minutes=remaining,
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=body.model_dump(mode="json"),
        headers={"Retry-After": str(remaining * 60)},
    )


class AuthService:
    def __init__(self, client: Optional[SupabaseAuthClient] = None) -> None:
        self.client = client or SupabaseAuthClient(
            settings.SUPABASE_URL,
            settings.SUPABASE_ANON_KEY,
            settings.AUTH_REQUEST_TIMEOUT_SECONDS,
        )

    async def login(self, db: AsyncSession, data: LoginRequest, limiter: LoginAttemptLimiter):
        attempt = await limiter.check(data.email)
        if attempt.blocked:
            logger.warning("Blocked login attempt", reason="rate_limited")
            return blocked_response(attempt.blocked_until)

        try:
            session = await self.client.sign_in_with_password(data.email, data.password)
        except InvalidCredentials as e:
            attempt = await limiter.record_failure(data.email)
            logger.warning("Login failed", reason=str(e), attempts=attempt.attempts)
            if attempt.blocked:
                return blocked_response(attempt.blocked_until)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={
                    "detail": "Invalid email or password",
                    "remaining_attempts": max(0, limiter.max_attempts - attempt.attempts),
                },
            )
        except httpx.HTTPError as e:
            logger.error("Supabase Auth request failed", error=str(e))
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Authentication provider unavailable")

        user_id = (session.get("user") or {}).get("id")
        profile = await user_profile_repository.get(db, id=UUID(user_id)) if user_id else None

        # No profile row is treated exactly like a pending account.
        if profile is None or profile.is_approved is not True:
            logger.warning("Login refused", user_id=user_id, reason="not_approved")
            raise DenialReason.UNAPPROVED.to_http()

        await limiter.reset(data.email)
        identity = Identity.from_profile(profile)
        logger.info("User logged in", user_id=identity.id, role=identity.role_name)

        return LoginResponse(
            access_token=session["access_token"],
            refresh_token=session.get("refresh_token"),
            token_type=session.get("token_type", "bearer"),
            expires_in=session.get("expires_in"),
            user_id=identity.id,
            role=identity.role_name,
            is_approved=identity.is_approved,
        )

    async def signup_request(self, db: AsyncSession, data: SignupRequest) -> SignupResponse:
        """Create the auth user and a pending member profile for the approval queue."""
        if await user_profile_repository.get_by_email(db, data.email):
            logger.warning("Signup refused", reason="duplicate_email")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered")

        try:
            user = await self.client.sign_up(
                data.email,
                data.password,
                metadata={"name": data.name, "phone": data.phone},
            )
        except UserAlreadyExists:
            logger.warning("Signup refused", reason="duplicate_email")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered")
        except SignupRejected as e:
            logger.warning("Signup refused", reason=str(e))
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except httpx.HTTPError as e:
            logger.error("Supabase Auth request failed", error=str(e))
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Authentication provider unavailable")

        if not user.get("id"):
            logger.error("Supabase Auth returned no user id on signup")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Authentication provider unavailable")

        user_id = UUID(user["id"])
        profile = await user_profile_repository.get(db, id=user_id)
        if profile is None:
            profile = await user_profile_repository.create(
                db,
                obj_in={
                    "id": user_id,
                    "email": data.email,
                    "name": data.name,
                    "phone": data.phone,
                    "provider": "email",
                    "role": Role.MEMBER.value,
                    "is_approved": False,
                },
            )

        requires_confirmation = not user.get("email_confirmed_at")
        logger.info("Signup requested", user_id=str(user_id), requires_confirmation=requires_confirmation)

        return SignupResponse(
            user_id=str(user_id),
            email=data.email,
            is_approved=False,
            requires_email_confirmation=requires_confirmation,
            message=(
                "Signup requested. Confirm your email, then wait for an admin to approve the account."
                if requires_confirmation
                else "Signup requested. An admin will approve the account shortly."
            ),
        )


auth_service = AuthService()
