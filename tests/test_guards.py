"""
Tests for the route guards
Identity resolution, approval, role floors and contextual permissions over HTTP
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from youthhub.core.audit import AuditOutcome, AuditRecorder
from youthhub.core.database import get_db
from youthhub.core.deps import get_optional_identity, get_permission_manager
from youthhub.core.permissions import PermissionManager
from youthhub.core.roles import Role
from youthhub.main import app
from youthhub.schemas.base import PaginatedResponse
from youthhub.schemas.board import PostResponse
from youthhub.services.board import post_service
from youthhub.services.event import event_service
from youthhub.services.user import user_service

from tests.factories import FailingStore, SlowStore, make_identity


@pytest.fixture
def client(mock_db, manager):
    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_permission_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


def login_as(identity):
    calls = []

    async def override():
        calls.append(identity)
        return identity

    app.dependency_overrides[get_optional_identity] = override
    return calls


def post_response(**overrides):
    data = {
        "id": uuid4(),
        "created_at": datetime.now(timezone.utc),
        "title": "Saturday retreat",
        "content": "Bring a sleeping bag and a bible.",
        "category": "free",
        "is_anonymous": False,
    }
    data.update(overrides)
    return PostResponse(**data)


EVENT_BODY = {
    "title": "Summer camp",
    "start_date": "2026-07-01T09:00:00Z",
    "end_date": "2026-07-03T17:00:00Z",
}


# ── Authentication and approval ─────────────────────────────────


def test_missing_identity_is_401(client):
    login_as(None)
    response = client.post("/api/v1/posts/", json={"title": "Hello", "content": "Hello everyone!"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_unapproved_admin_is_403_and_handler_never_runs(client):
    login_as(make_identity(Role.ADMIN, approved=False))
    with patch.object(event_service, "create_event", new=AsyncMock()) as create_event:
        response = client.post("/api/v1/events/", json=EVENT_BODY)

    assert response.status_code == 403
    assert response.json()["detail"] == "Approval required"
    create_event.assert_not_called()


def test_public_reads_need_no_identity(client):
    login_as(None)
    page = PaginatedResponse.create([], 0, 1, 10)
    with patch.object(post_service, "list_posts", new=AsyncMock(return_value=page)):
        response = client.get("/api/v1/posts/")
    assert response.status_code == 200
    assert response.json()["total"] == 0


# ── Role floors ─────────────────────────────────────────────────


def test_member_cannot_reach_admin_routes(client):
    login_as(make_identity(Role.MEMBER))
    with patch.object(user_service, "list_users", new=AsyncMock()) as list_users:
        response = client.get("/api/v1/admin/users/")

    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient role"
    list_users.assert_not_called()


def test_identity_is_resolved_once_for_stacked_guards(client):
    calls = login_as(make_identity(Role.ADMIN))
    page = PaginatedResponse.create([], 0, 1, 10)
    with patch.object(user_service, "list_users", new=AsyncMock(return_value=page)):
        response = client.get("/api/v1/admin/users/")

    assert response.status_code == 200
    assert len(calls) == 1


def test_leader_cannot_approve_users(client):
    login_as(make_identity(Role.LEADER))
    with patch.object(user_service, "approve", new=AsyncMock()) as approve:
        response = client.post("/api/v1/admin/users/approve", json={"user_id": str(uuid4())})

    assert response.status_code == 403
    assert response.json()["detail"] == "Permission denied for this resource"
    approve.assert_not_called()


def test_admin_report_queue_needs_admin(client):
    login_as(make_identity(Role.LEADER))
    response = client.get("/api/v1/admin/reports/")
    assert response.status_code == 403


# ── Contextual permissions ──────────────────────────────────────


def test_member_cannot_create_notice(client, audit_store, recorder):
    member = make_identity(Role.MEMBER)
    login_as(member)
    with patch.object(post_service, "create_post", new=AsyncMock()) as create_post:
        response = client.post(
            "/api/v1/posts/",
            json={"title": "Announcement", "content": "Service starts at ten.", "category": "notice"},
        )

    assert response.status_code == 403
    create_post.assert_not_called()
    (record,) = audit_store.records
    assert record.actor_id == member.id
    assert record.outcome is AuditOutcome.DENIED
    assert record.context["category"] == "notice"


def test_member_creates_free_post(client):
    login_as(make_identity(Role.MEMBER))
    with patch.object(post_service, "create_post", new=AsyncMock(return_value=post_response())):
        response = client.post(
            "/api/v1/posts/",
            json={"title": "Saturday retreat", "content": "Bring a sleeping bag and a bible."},
        )

    assert response.status_code == 201
    assert response.json()["title"] == "Saturday retreat"


@pytest.mark.parametrize("store_cls,timeout", [(FailingStore, 0.5), (SlowStore, 0.05)])
def test_audit_store_trouble_does_not_change_guard_outcome(client, store_cls, timeout):
    manager = PermissionManager(recorder=AuditRecorder(store_cls(), timeout_seconds=timeout))
    app.dependency_overrides[get_permission_manager] = lambda: manager
    login_as(make_identity(Role.MEMBER))

    with patch.object(post_service, "create_post", new=AsyncMock(return_value=post_response())) as create_post:
        allowed = client.post(
            "/api/v1/posts/",
            json={"title": "Saturday retreat", "content": "Bring a sleeping bag and a bible."},
        )
        denied = client.post(
            "/api/v1/posts/",
            json={"title": "Announcement", "content": "Service starts at ten.", "category": "notice"},
        )

    assert allowed.status_code == 201
    assert denied.status_code == 403
    assert create_post.await_count == 1


def test_member_cannot_create_event(client):
    login_as(make_identity(Role.MEMBER))
    with patch.object(event_service, "create_event", new=AsyncMock()) as create_event:
        response = client.post("/api/v1/events/", json=EVENT_BODY)

    assert response.status_code == 403
    create_event.assert_not_called()


@pytest.mark.parametrize("is_owner,expected", [(True, 200), (False, 403)])
def test_post_delete_checks_ownership(client, is_owner, expected):
    member = make_identity(Role.MEMBER)
    login_as(member)
    post = MagicMock(id=uuid4(), author_id=member.id if is_owner else str(uuid4()), category="free")

    with patch.object(post_service, "get_post_or_404", new=AsyncMock(return_value=post)), \
            patch.object(post_service, "delete_post", new=AsyncMock()) as delete_post:
        response = client.delete(f"/api/v1/posts/{post.id}")

    assert response.status_code == expected
    assert delete_post.called is is_owner


def test_member_cannot_move_post_into_notice(client):
    member = make_identity(Role.MEMBER)
    login_as(member)
    post = MagicMock(id=uuid4(), author_id=member.id, category="free")

    with patch.object(post_service, "get_post_or_404", new=AsyncMock(return_value=post)), \
            patch.object(post_service, "update_post", new=AsyncMock()) as update_post:
        response = client.put(f"/api/v1/posts/{post.id}", json={"category": "notice"})

    assert response.status_code == 403
    update_post.assert_not_called()


# ── Current user ────────────────────────────────────────────────


def test_me_returns_capabilities(client):
    leader = make_identity(Role.LEADER)
    login_as(leader)
    response = client.get("/api/v1/auth/me")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == leader.id
    assert body["role"] == "leader"
    assert body["capabilities"]["can_create_notice"] is True
    assert body["capabilities"]["can_approve_users"] is False
