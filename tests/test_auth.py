"""
Tests for password login, failed-attempt blocking and sign-up requests.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import pytest
from fastapi import HTTPException
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient
from pydantic import ValidationError

from youthhub.core.database import get_db
from youthhub.core.rate_limit import InMemoryCounterStore, LoginAttemptLimiter
from youthhub.main import app
from youthhub.schemas.auth import LoginRequest, LoginResponse, SignupRequest, SignupResponse
from youthhub.services.auth import (
    AuthService,
    InvalidCredentials,
    SignupRejected,
    UserAlreadyExists,
    auth_service,
)


@pytest.fixture
def limiter():
    return LoginAttemptLimiter(InMemoryCounterStore(), max_attempts=5, block_seconds=900)


@pytest.fixture
def credentials():
    return LoginRequest(email="Member@Example.com", password="wrong")


def failing_service():
    client = MagicMock()
    client.sign_in_with_password = AsyncMock(side_effect=InvalidCredentials("Invalid login credentials"))
    return AuthService(client=client)


# ── Failed attempts ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_failed_login_reports_remaining_attempts(mock_db, limiter, credentials):
    response = await failing_service().login(mock_db, credentials, limiter)

    assert isinstance(response, JSONResponse)
    assert response.status_code == 401
    assert b'"remaining_attempts":4' in response.body


@pytest.mark.asyncio
async def test_fifth_failure_blocks_the_email(mock_db, limiter, credentials):
    service = failing_service()
    for _ in range(4):
        await service.login(mock_db, credentials, limiter)

    response = await service.login(mock_db, credentials, limiter)
    assert response.status_code == 429
    assert b"blocked_until" in response.body

    # Blocked emails never reach the auth provider.
    service.client.sign_in_with_password.reset_mock()
    response = await service.login(mock_db, credentials, limiter)
    assert response.status_code == 429
    service.client.sign_in_with_password.assert_not_called()


@pytest.mark.asyncio
async def test_provider_outage_is_502(mock_db, limiter, credentials):
    client = MagicMock()
    client.sign_in_with_password = AsyncMock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(HTTPException) as exc:
        await AuthService(client=client).login(mock_db, credentials, limiter)
    assert exc.value.status_code == 502


# ── Successful sign-in ──────────────────────────────────────────


def session_for(user_id):
    return {
        "access_token": "access",
        "refresh_token": "refresh",
        "token_type": "bearer",
        "expires_in": 3600,
        "user": {"id": str(user_id)},
    }


@pytest.mark.asyncio
async def test_unapproved_profile_is_403(mock_db, limiter, credentials):
    user_id = uuid4()
    client = MagicMock()
    client.sign_in_with_password = AsyncMock(return_value=session_for(user_id))

    with patch("youthhub.services.auth.user_profile_repository") as profiles:
        profiles.get = AsyncMock(return_value=MagicMock(id=user_id, role="member", is_approved=False))
        with pytest.raises(HTTPException) as exc:
            await AuthService(client=client).login(mock_db, credentials, limiter)

    assert exc.value.status_code == 403
    assert exc.value.detail == "Approval required"


@pytest.mark.asyncio
async def test_successful_login_clears_failures(mock_db, limiter, credentials):
    user_id = uuid4()
    await limiter.record_failure(credentials.email)
    client = MagicMock()
    client.sign_in_with_password = AsyncMock(return_value=session_for(user_id))

    with patch("youthhub.services.auth.user_profile_repository") as profiles:
        profiles.get = AsyncMock(return_value=MagicMock(id=user_id, role="admin", is_approved=True))
        response = await AuthService(client=client).login(mock_db, credentials, limiter)

    assert isinstance(response, LoginResponse)
    assert response.role == "admin"
    assert (await limiter.check(credentials.email)).attempts == 0


# ── Sign-up requests ────────────────────────────────────────────


@pytest.fixture
def signup():
    return SignupRequest(email="New@Example.com", password="retreat2026", name="Jisoo Park", phone="010-1234-5678")


def signup_service(**client_behaviour):
    client = MagicMock()
    client.sign_up = AsyncMock(**client_behaviour)
    return AuthService(client=client)


@pytest.mark.parametrize("password", ["short1", "onlyletters", "1234567890"])
def test_weak_passwords_are_refused_by_schema(password):
    with pytest.raises(ValidationError):
        SignupRequest(email="a@example.com", password=password, name="A")


def test_signup_schema_normalizes_email_and_blank_phone():
    data = SignupRequest(email="A@Example.COM", password="abcdefg1", name="A", phone="")
    assert data.email == "a@example.com"
    assert data.phone is None


@pytest.mark.asyncio
async def test_signup_creates_pending_member_profile(mock_db, signup):
    user_id = uuid4()
    service = signup_service(return_value={"id": str(user_id), "email_confirmed_at": None})

    with patch("youthhub.services.auth.user_profile_repository") as profiles:
        profiles.get_by_email = AsyncMock(return_value=None)
        profiles.get = AsyncMock(return_value=None)
        profiles.create = AsyncMock()
        response = await service.signup_request(mock_db, signup)

    service.client.sign_up.assert_awaited_once_with(
        "new@example.com", "retreat2026", metadata={"name": "Jisoo Park", "phone": "010-1234-5678"}
    )
    created = profiles.create.call_args.kwargs["obj_in"]
    assert created["id"] == user_id
    assert created["role"] == "member"
    assert created["is_approved"] is False
    assert created["email"] == "new@example.com"
    assert response.user_id == str(user_id)
    assert response.is_approved is False
    assert response.requires_email_confirmation is True


@pytest.mark.asyncio
async def test_signup_with_known_profile_email_is_409(mock_db, signup):
    service = signup_service()

    with patch("youthhub.services.auth.user_profile_repository") as profiles:
        profiles.get_by_email = AsyncMock(return_value=MagicMock())
        with pytest.raises(HTTPException) as exc:
            await service.signup_request(mock_db, signup)

    assert exc.value.status_code == 409
    service.client.sign_up.assert_not_called()


@pytest.mark.asyncio
async def test_signup_with_provider_duplicate_is_409(mock_db, signup):
    service = signup_service(side_effect=UserAlreadyExists("User already registered"))

    with patch("youthhub.services.auth.user_profile_repository") as profiles:
        profiles.get_by_email = AsyncMock(return_value=None)
        profiles.create = AsyncMock()
        with pytest.raises(HTTPException) as exc:
            await service.signup_request(mock_db, signup)

    assert exc.value.status_code == 409
    profiles.create.assert_not_called()


@pytest.mark.asyncio
async def test_signup_refused_by_provider_is_400(mock_db, signup):
    service = signup_service(side_effect=SignupRejected("Password should be at least 8 characters"))

    with patch("youthhub.services.auth.user_profile_repository") as profiles:
        profiles.get_by_email = AsyncMock(return_value=None)
        with pytest.raises(HTTPException) as exc:
            await service.signup_request(mock_db, signup)

    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_signup_provider_outage_is_502(mock_db, signup):
    service = signup_service(side_effect=httpx.ConnectError("refused"))

    with patch("youthhub.services.auth.user_profile_repository") as profiles:
        profiles.get_by_email = AsyncMock(return_value=None)
        with pytest.raises(HTTPException) as exc:
            await service.signup_request(mock_db, signup)

    assert exc.value.status_code == 502


# ── Sign-up over HTTP ───────────────────────────────────────────


@pytest.fixture
def http(mock_db):
    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


SIGNUP_BODY = {"email": "new@example.com", "password": "retreat2026", "name": "Jisoo Park"}


def test_signup_endpoint_weak_password_is_400(http):
    with patch.object(auth_service, "signup_request", new=AsyncMock()) as signup_request:
        response = http.post("/api/v1/auth/signup-request", json={**SIGNUP_BODY, "password": "password"})

    assert response.status_code == 400
    assert response.json()["detail"][0]["loc"] == ["password"]
    signup_request.assert_not_called()


def test_signup_endpoint_creates_request(http):
    created = SignupResponse(
        user_id=str(uuid4()),
        email="new@example.com",
        requires_email_confirmation=True,
        message="Signup requested.",
    )
    with patch.object(auth_service, "signup_request", new=AsyncMock(return_value=created)) as signup_request:
        response = http.post("/api/v1/auth/signup-request", json=SIGNUP_BODY)

    assert response.status_code == 201
    assert response.json()["is_approved"] is False
    assert signup_request.await_args.args[1].email == "new@example.com"


def test_signup_endpoint_duplicate_is_409(http):
    conflict = HTTPException(status_code=409, detail="Email is already registered")
    with patch.object(auth_service, "signup_request", new=AsyncMock(side_effect=conflict)):
        response = http.post("/api/v1/auth/signup-request", json=SIGNUP_BODY)

    assert response.status_code == 409
