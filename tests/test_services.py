"""
Tests for the application services
Business rules around reports, attendance, approvals and roles
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException

from youthhub.core.audit import AuditSeverity
from youthhub.core.roles import Role
from youthhub.models.report import ReportStatus
from youthhub.schemas.board import PostCreate, PostUpdate
from youthhub.schemas.report import ReportCreate, ReportStatusUpdate
from youthhub.services.board import PostService
from youthhub.services.event import EventService
from youthhub.services.report import ReportService
from youthhub.services.user import UserService

from tests.factories import make_identity


@pytest.fixture
def report_in():
    return ReportCreate(target_type="post", target_id=uuid4(), reason="spam")


# ── Reports ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_report_missing_target_is_404(mock_db, member, report_in):
    with patch("youthhub.services.report.post_repository") as posts:
        posts.get = AsyncMock(return_value=None)
        with pytest.raises(HTTPException) as exc:
            await ReportService().create_report(mock_db, member, report_in)
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_duplicate_report_is_409(mock_db, member, report_in):
    with patch("youthhub.services.report.post_repository") as posts, \
            patch("youthhub.services.report.report_repository") as reports:
        posts.get = AsyncMock(return_value=MagicMock())
        reports.find_duplicate = AsyncMock(return_value=MagicMock())
        reports.create = AsyncMock()
        with pytest.raises(HTTPException) as exc:
            await ReportService().create_report(mock_db, member, report_in)

    assert exc.value.status_code == 409
    reports.create.assert_not_called()


@pytest.mark.asyncio
async def test_closing_a_report_stamps_review_time(mock_db, admin):
    report = MagicMock()
    with patch("youthhub.services.report.report_repository") as reports, \
            patch("youthhub.services.report.ReportResponse") as response:
        reports.get = AsyncMock(return_value=report)
        reports.update = AsyncMock(return_value=report)
        await ReportService().update_status(
            mock_db, admin, uuid4(), ReportStatusUpdate(status=ReportStatus.RESOLVED)
        )

    updates = reports.update.call_args.kwargs["obj_in"]
    assert updates["status"] == "resolved"
    assert "reviewed_at" in updates
    response.model_validate.assert_called_once_with(report)


# ── Posts ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_post_made_only_of_markup_is_rejected(mock_db, member):
    data = PostCreate(title="<b></b><i></i>", content="<script>alert('x')</script>")
    with patch("youthhub.services.board.post_repository") as posts:
        posts.create = AsyncMock()
        with pytest.raises(HTTPException) as exc:
            await PostService().create_post(mock_db, member, data)

    assert exc.value.status_code == 422
    posts.create.assert_not_called()


@pytest.mark.asyncio
async def test_update_to_markup_only_title_is_rejected(mock_db, member):
    data = PostUpdate(title="<b></b><i></i>")
    with patch("youthhub.services.board.post_repository") as posts:
        posts.update = AsyncMock()
        with pytest.raises(HTTPException) as exc:
            await PostService().update_post(mock_db, member, MagicMock(), data)

    assert exc.value.status_code == 422
    posts.update.assert_not_called()


@pytest.mark.asyncio
async def test_update_with_short_content_after_sanitising_is_rejected(mock_db, member):
    data = PostUpdate(content="<p>short</p><br><br>")
    with patch("youthhub.services.board.post_repository") as posts:
        posts.update = AsyncMock()
        with pytest.raises(HTTPException) as exc:
            await PostService().update_post(mock_db, member, MagicMock(), data)

    assert exc.value.status_code == 422
    posts.update.assert_not_called()


@pytest.mark.asyncio
async def test_update_of_category_only_skips_text_checks(mock_db, member):
    post = MagicMock()
    data = PostUpdate(category="qna")
    with patch("youthhub.services.board.post_repository") as posts, \
            patch.object(PostService, "_to_responses", AsyncMock(return_value=["ok"])):
        posts.update = AsyncMock(return_value=post)
        result = await PostService().update_post(mock_db, member, post, data)

    assert result == "ok"
    assert posts.update.call_args.kwargs["obj_in"] == {"category": "qna"}


# ── Attendance ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_full_event_rejects_new_attendee(mock_db, member):
    event = MagicMock(is_full=True, max_attendees=10)
    with patch("youthhub.services.event.event_repository") as events, \
            patch("youthhub.services.event.attendance_repository") as attendance:
        events.get_for_update = AsyncMock(return_value=event)
        attendance.find = AsyncMock(return_value=None)
        with pytest.raises(HTTPException) as exc:
            await EventService().toggle_attendance(mock_db, member, uuid4())

    assert exc.value.status_code == 400
    assert exc.value.detail == "Event is full"


@pytest.mark.asyncio
async def test_attendee_can_cancel_full_event(mock_db, member):
    event_id = uuid4()
    event = MagicMock(is_full=True, max_attendees=10)
    with patch("youthhub.services.event.event_repository") as events, \
            patch("youthhub.services.event.attendance_repository") as attendance:
        events.get_for_update = AsyncMock(return_value=event)
        events.adjust_attendees = AsyncMock(return_value=9)
        attendance.find = AsyncMock(return_value=MagicMock())
        attendance.remove = AsyncMock()
        status = await EventService().toggle_attendance(mock_db, member, event_id)

    assert status.attending is False
    assert status.current_attendees == 9
    mock_db.commit.assert_awaited_once()


# ── Approvals and roles ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_approving_approved_user_is_400(mock_db, admin):
    with patch("youthhub.services.user.user_profile_repository") as profiles:
        profiles.get = AsyncMock(return_value=MagicMock(is_approved=True))
        with pytest.raises(HTTPException) as exc:
            await UserService().approve(mock_db, admin, uuid4())
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_admin_cannot_demote_self(mock_db, admin):
    profile = MagicMock(id=admin.id, role="admin")
    with patch("youthhub.services.user.user_profile_repository") as profiles:
        profiles.get = AsyncMock(return_value=profile)
        with pytest.raises(HTTPException) as exc:
            await UserService().change_role(mock_db, admin, uuid4(), Role.MEMBER)
    assert exc.value.detail == "You cannot demote yourself"


@pytest.mark.asyncio
async def test_last_admin_cannot_be_demoted(mock_db, admin):
    profile = MagicMock(id=uuid4(), role="admin")
    with patch("youthhub.services.user.user_profile_repository") as profiles:
        profiles.get = AsyncMock(return_value=profile)
        profiles.count_admins = AsyncMock(return_value=0)
        profiles.update = AsyncMock()
        with pytest.raises(HTTPException) as exc:
            await UserService().change_role(mock_db, admin, profile.id, Role.LEADER)

    assert exc.value.detail == "Cannot demote the last admin"
    profiles.update.assert_not_called()


@pytest.mark.asyncio
async def test_role_escalation_is_logged_and_audited_as_critical(mock_db, admin, recorder, audit_store):
    profile = MagicMock(id=uuid4(), role="member")
    with patch("youthhub.services.user.user_profile_repository") as profiles, \
            patch("youthhub.services.user.UserProfileResponse"), \
            patch("youthhub.services.user.logger") as logger:
        profiles.get = AsyncMock(return_value=profile)
        profiles.update = AsyncMock(return_value=profile)
        await UserService(recorder=recorder).change_role(mock_db, admin, profile.id, Role.LEADER)
    await recorder.flush()

    assert profiles.update.call_args.kwargs["obj_in"] == {"role": "leader"}
    logger.warning.assert_called_once()
    assert logger.warning.call_args.args[0] == "Role escalated"

    (record,) = await audit_store.list_for_actor(admin.id)
    assert record.action == "role_change"
    assert record.resource_id == str(profile.id)
    assert record.severity is AuditSeverity.CRITICAL
    assert record.context["old_role"] == "member"
    assert record.context["new_role"] == "leader"


@pytest.mark.asyncio
async def test_demotion_is_audited_as_high(mock_db, admin, recorder, audit_store):
    profile = MagicMock(id=uuid4(), role="leader")
    with patch("youthhub.services.user.user_profile_repository") as profiles, \
            patch("youthhub.services.user.UserProfileResponse"):
        profiles.get = AsyncMock(return_value=profile)
        profiles.update = AsyncMock(return_value=profile)
        await UserService(recorder=recorder).change_role(mock_db, admin, profile.id, Role.MEMBER)
    await recorder.flush()

    (record,) = audit_store.records
    assert record.severity is AuditSeverity.HIGH
    assert dict(record.context) == {"old_role": "leader", "new_role": "member", "escalation": False}


@pytest.mark.asyncio
async def test_rejected_role_change_is_not_audited(mock_db, admin, recorder, audit_store):
    profile = MagicMock(id=admin.id, role="admin")
    with patch("youthhub.services.user.user_profile_repository") as profiles:
        profiles.get = AsyncMock(return_value=profile)
        with pytest.raises(HTTPException):
            await UserService(recorder=recorder).change_role(mock_db, admin, uuid4(), Role.MEMBER)
    await recorder.flush()

    assert audit_store.records == ()


@pytest.mark.asyncio
async def test_approval_and_rejection_are_audited(mock_db, admin, recorder, audit_store):
    pending = MagicMock(is_approved=False, rejected_at=None, role="member")
    approved_id, rejected_id = uuid4(), uuid4()
    with patch("youthhub.services.user.user_profile_repository") as profiles, \
            patch("youthhub.services.user.UserProfileResponse"):
        profiles.get = AsyncMock(return_value=pending)
        profiles.update = AsyncMock(return_value=pending)
        service = UserService(recorder=recorder)
        await service.approve(mock_db, admin, approved_id)
        await service.reject(mock_db, admin, rejected_id, reason="Not a member of this church")
    await recorder.flush()

    approved, rejected = await audit_store.list_for_actor(admin.id)
    assert (approved.action, approved.resource_id) == ("approve", str(approved_id))
    assert approved.context["decision"] == "approved"
    assert (rejected.action, rejected.resource_id) == ("reject", str(rejected_id))
    assert rejected.context["reason"] == "Not a member of this church"
    assert approved.actor_role == "admin"
