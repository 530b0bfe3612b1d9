"""
Tests for the audit recorder
Ordering, immutability, isolation from store failures and denial bursts
"""

import asyncio
from types import MappingProxyType
from unittest.mock import patch

import pytest

from youthhub.core.audit import AuditOutcome, AuditRecorder, AuditSeverity, DenialBurstDetector

from tests.factories import FailingStore, FakeClock, SlowStore


# ── Recording ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_records_are_ordered_per_actor(recorder, audit_store):
    for action in ("create", "update", "delete"):
        recorder.log_permission_check("u1", "member", "post", action, outcome=True)
        recorder.log_permission_check("u2", "leader", "event", action, outcome=False)
    await recorder.flush()

    u1 = await audit_store.list_for_actor("u1")
    assert [r.action for r in u1] == ["create", "update", "delete"]
    assert all(a.timestamp < b.timestamp for a, b in zip(u1, u1[1:]))
    assert all(r.outcome is AuditOutcome.DENIED for r in await audit_store.list_for_actor("u2"))


def test_records_are_immutable(recorder):
    record = recorder.log_permission_check("u1", "member", "post", "create", context={"category": "free"}, outcome=True)

    assert isinstance(record.context, MappingProxyType)
    with pytest.raises(TypeError):
        record.context["category"] = "notice"
    with pytest.raises(AttributeError):
        record.outcome = AuditOutcome.DENIED


def test_records_without_running_loop(recorder, audit_store):
    recorder.log_permission_check("u1", "admin", "system", "manage", resource_id=42, outcome=True)

    (record,) = audit_store.records
    assert record.resource_id == "42"
    assert record.to_dict()["outcome"] == "allowed"


# ── Store failures ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_failing_store_does_not_reach_caller():
    recorder = AuditRecorder(FailingStore(), timeout_seconds=0.5)

    record = recorder.log_permission_check("u1", "member", "post", "create", outcome=True)
    await recorder.flush()

    assert record.outcome is AuditOutcome.ALLOWED
    assert recorder.pending == 0


@pytest.mark.asyncio
async def test_slow_store_is_bounded_by_timeout():
    store = SlowStore()
    recorder = AuditRecorder(store, timeout_seconds=0.05)

    recorder.log_permission_check("u1", "member", "post", "create", outcome=True)
    await asyncio.wait_for(recorder.flush(), timeout=1)

    assert store.records == ()


@pytest.mark.asyncio
async def test_decision_returns_before_write_completes():
    store = SlowStore()
    recorder = AuditRecorder(store, timeout_seconds=0.05)

    recorder.log_permission_check("u1", "member", "post", "create", outcome=False)
    assert recorder.pending == 1
    await recorder.flush()


# ── Role changes and approvals ──────────────────────────────────


def test_role_escalation_is_critical(recorder, audit_store):
    record = recorder.log_role_change("admin-1", "admin", "user-9", "member", "leader")

    assert record.severity is AuditSeverity.CRITICAL
    assert record.resource_type == "user"
    assert record.action == "role_change"
    assert record.resource_id == "user-9"
    assert dict(record.context) == {"old_role": "member", "new_role": "leader", "escalation": True}
    assert audit_store.records == (record,)


def test_role_demotion_is_high(recorder):
    record = recorder.log_role_change("admin-1", "admin", "user-9", "leader", "member")

    assert record.severity is AuditSeverity.HIGH
    assert record.context["escalation"] is False
    assert record.to_dict()["severity"] == "high"


def test_approval_decisions_are_recorded(recorder, audit_store):
    recorder.log_approval_decision("admin-1", "admin", "user-9", approved=True, role="member")
    recorder.log_approval_decision("admin-1", "admin", "user-8", approved=False, role="member", reason="unknown")

    approved, rejected = audit_store.records
    assert approved.action == "approve"
    assert approved.context["decision"] == "approved"
    assert rejected.action == "reject"
    assert rejected.context == {"decision": "rejected", "role": "member", "reason": "unknown"}
    assert {approved.severity, rejected.severity} == {AuditSeverity.MEDIUM}


def test_permission_checks_default_to_low_severity(recorder):
    record = recorder.log_permission_check("u1", "member", "post", "read", outcome=True)
    assert record.severity is AuditSeverity.LOW


# ── Denial bursts ───────────────────────────────────────────────


def test_denial_burst_logs_one_security_event_per_window():
    clock = FakeClock()
    detector = DenialBurstDetector(threshold=3, window_seconds=60, clock=clock)

    with patch("youthhub.core.audit.logger") as logger:
        flagged = [detector.record_denial("u1", "member") for _ in range(6)]

    assert flagged == [False, False, False, True, False, False]
    logger.error.assert_called_once()
    assert logger.error.call_args.args[0] == "Suspicious permission activity"
    assert logger.error.call_args.kwargs["actor_id"] == "u1"
    assert logger.error.call_args.kwargs["denials"] == 4


def test_denial_window_resets_after_expiry():
    clock = FakeClock()
    detector = DenialBurstDetector(threshold=3, window_seconds=60, clock=clock)
    for _ in range(3):
        detector.record_denial("u1")

    clock.advance(60)
    assert detector.denials("u1") == 0
    assert detector.record_denial("u1") is False
    assert detector.denials("u1") == 1


def test_idle_actor_windows_are_swept():
    clock = FakeClock()
    detector = DenialBurstDetector(threshold=3, window_seconds=60, clock=clock)
    for n in range(1000):
        detector.record_denial(f"u{n}")

    clock.advance(61)
    detector.record_denial("late")

    assert set(detector._windows) == {"late"}


def test_recorder_feeds_only_denials_to_burst_detector(audit_store):
    detector = DenialBurstDetector(threshold=2, window_seconds=60, clock=FakeClock())
    recorder = AuditRecorder(audit_store, timeout_seconds=0.5, burst_detector=detector)

    with patch("youthhub.core.audit.logger") as logger:
        for _ in range(5):
            recorder.log_permission_check("u1", "member", "post", "read", outcome=True)
        for _ in range(3):
            recorder.log_permission_check("u1", "member", "event", "create", outcome=False)

    assert detector.denials("u1") == 3
    logger.error.assert_called_once()
    assert len(audit_store.records) == 8
