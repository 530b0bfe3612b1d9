"""
Permission audit trail.

Every decision made through ``PermissionManager.authorize`` becomes one
immutable ``AuditRecord``, as do role changes and approval decisions made by
admins. Appends are fire-and-forget: a slow or failing store is logged and
never reaches the caller.

Repeated denials for one actor inside a short window are reported as a
security event at error level.
"""

from __future__ import annotations

import asyncio
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

import structlog

from youthhub.core.config import settings
from youthhub.core.roles import level_of

logger = structlog.get_logger()


class AuditOutcome(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


class AuditSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def _value(item: Any) -> str:
    return str(getattr(item, "value", item))


@dataclass(frozen=True)
class AuditRecord:
    actor_id: str
    actor_role: str
    resource_type: str
    action: str
    outcome: AuditOutcome
    timestamp: datetime
    resource_id: Optional[str] = None
    context: Optional[Mapping[str, Any]] = field(default=None)
    severity: AuditSeverity = AuditSeverity.LOW

    def __post_init__(self):
        if self.context is not None and not isinstance(self.context, MappingProxyType):
            object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "resource_type": self.resource_type,
            "action": self.action,
            "outcome": self.outcome.value,
            "timestamp": self.timestamp.isoformat(),
            "resource_id": self.resource_id,
            "context": dict(self.context) if self.context is not None else None,
            "severity": self.severity.value,
        }


class AuditStore(ABC):
    """Append-only target for audit records."""

    @abstractmethod
    async def append(self, record: AuditRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list_for_actor(self, actor_id: str) -> list[AuditRecord]:
        """Records of one actor in timestamp order."""
        raise NotImplementedError


class InMemoryAuditStore(AuditStore):
    def __init__(self) -> None:
        self._records: list[AuditRecord] = []

    async def append(self, record: AuditRecord) -> None:
        self._records.append(record)

    async def list_for_actor(self, actor_id: str) -> list[AuditRecord]:
        records = [r for r in self._records if r.actor_id == str(actor_id)]
        return sorted(records, key=lambda r: r.timestamp)

    @property
    def records(self) -> tuple[AuditRecord, ...]:
        return tuple(self._records)


class DatabaseAuditStore(AuditStore):
    """Writes each record in its own session so an append is all-or-nothing."""

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        self._session_factory = session_factory

    async def append(self, record: AuditRecord) -> None:
        from youthhub.models.audit_log import PermissionAuditLog

        async with self._session_factory() as session:
            session.add(
                PermissionAuditLog(
                    actor_id=record.actor_id,
                    actor_role=record.actor_role,
                    resource_type=record.resource_type,
                    action=record.action,
                    resource_id=record.resource_id,
                    context=dict(record.context) if record.context is not None else None,
                    outcome=record.outcome.value,
                    severity=record.severity.value,
                    created_at=record.timestamp,
                )
            )
            await session.commit()

    async def list_for_actor(self, actor_id: str) -> list[AuditRecord]:
        from sqlalchemy import select

        from youthhub.models.audit_log import PermissionAuditLog

        async with self._session_factory() as session:
            result = await session.execute(
                select(PermissionAuditLog)
                .where(PermissionAuditLog.actor_id == str(actor_id))
                .order_by(PermissionAuditLog.created_at.asc())
            )
            return [
                AuditRecord(
                    actor_id=row.actor_id,
                    actor_role=row.actor_role,
                    resource_type=row.resource_type,
                    action=row.action,
                    outcome=AuditOutcome(row.outcome),
                    timestamp=row.created_at,
                    resource_id=row.resource_id,
                    context=row.context,
                    severity=AuditSeverity(row.severity),
                )
                for row in result.scalars().all()
            ]


class DenialBurstDetector:
    """
    Counts denials per actor in fixed windows.

    Crossing ``threshold`` inside one window logs a single security event for
    that window. Windows of actors that stopped appearing are swept every
    ``window_seconds``.
    """

    def __init__(
        self,
        threshold: int = 5,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, tuple[int, float]] = {}
        self.last_cleanup = clock()

    def _cleanup_expired(self, now: float) -> None:
        self._windows = {k: v for k, v in self._windows.items() if v[1] > now}
        self.last_cleanup = now

    def record_denial(self, actor_id: str, actor_role: Optional[str] = None) -> bool:
        """Count one denial; ``True`` when this denial crosses the threshold."""
        with self._lock:
            now = self._clock()
            if now - self.last_cleanup > self.window_seconds:
                self._cleanup_expired(now)

            count, expires_at = self._windows.get(actor_id, (0, now + self.window_seconds))
            if expires_at <= now:
                count, expires_at = 0, now + self.window_seconds
            count += 1
            self._windows[actor_id] = (count, expires_at)

        if count != self.threshold + 1:
            return False

        logger.error(
            "Suspicious permission activity",
            event_type="suspicious_pattern",
            actor_id=actor_id,
            actor_role=actor_role,
            denials=count,
            window_seconds=self.window_seconds,
        )
        return True

    def denials(self, actor_id: str) -> int:
        entry = self._windows.get(actor_id)
        if entry is None or entry[1] <= self._clock():
            return 0
        return entry[0]


class AuditRecorder:
    """Builds audit records and hands them to the store without blocking the caller."""

    def __init__(
        self,
        store: AuditStore,
        timeout_seconds: float = 2.0,
        burst_detector: Optional[DenialBurstDetector] = None,
    ) -> None:
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.burst_detector = burst_detector or DenialBurstDetector()
        self._lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None
        self._pending: set[asyncio.Task] = set()

    def _next_timestamp(self) -> datetime:
        # Strictly increasing per recorder, so per-actor order survives equal clock reads.
        with self._lock:
            now = datetime.now(timezone.utc)
            if self._last_timestamp is not None and now <= self._last_timestamp:
                now = self._last_timestamp + timedelta(microseconds=1)
            self._last_timestamp = now
            return now

    def log_permission_check(
        self,
        actor_id: Any,
        actor_role: Any,
        resource_type: Any,
        action: Any,
        resource_id: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
        *,
        outcome: bool,
    ) -> AuditRecord:
        record = AuditRecord(
            actor_id=str(actor_id),
            actor_role=_value(actor_role),
            resource_type=_value(resource_type),
            action=_value(action),
            outcome=AuditOutcome.ALLOWED if outcome else AuditOutcome.DENIED,
            timestamp=self._next_timestamp(),
            resource_id=None if resource_id is None else str(resource_id),
            context=context,
        )
        if not outcome:
            self.burst_detector.record_denial(record.actor_id, record.actor_role)

        self._submit(record)
        return record

    def log_role_change(
        self,
        actor_id: Any,
        actor_role: Any,
        target_user_id: Any,
        old_role: Any,
        new_role: Any,
    ) -> AuditRecord:
        """Record an applied role change; moving a user up the hierarchy is critical."""
        old_role, new_role = _value(old_role), _value(new_role)
        escalated = level_of(new_role) > level_of(old_role)

        record = AuditRecord(
            actor_id=str(actor_id),
            actor_role=_value(actor_role),
            resource_type="user",
            action="role_change",
            outcome=AuditOutcome.ALLOWED,
            timestamp=self._next_timestamp(),
            resource_id=str(target_user_id),
            context={"old_role": old_role, "new_role": new_role, "escalation": escalated},
            severity=AuditSeverity.CRITICAL if escalated else AuditSeverity.HIGH,
        )
        self._submit(record)
        return record

    def log_approval_decision(
        self,
        actor_id: Any,
        actor_role: Any,
        target_user_id: Any,
        *,
        approved: bool,
        role: Any = None,
        reason: Optional[str] = None,
    ) -> AuditRecord:
        context = {"decision": "approved" if approved else "rejected", "role": _value(role) if role else None}
        if reason:
            context["reason"] = reason

        record = AuditRecord(
            actor_id=str(actor_id),
            actor_role=_value(actor_role),
            resource_type="user",
            action="approve" if approved else "reject",
            outcome=AuditOutcome.ALLOWED,
            timestamp=self._next_timestamp(),
            resource_id=str(target_user_id),
            context=context,
            severity=AuditSeverity.MEDIUM,
        )
        self._submit(record)
        return record

    def _submit(self, record: AuditRecord) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            asyncio.run(self._append(record))
        else:
            task = loop.create_task(self._append(record))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _append(self, record: AuditRecord) -> None:
        try:
            await asyncio.wait_for(self.store.append(record), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                "AuditWriteFailure",
                reason="timeout",
                timeout_seconds=self.timeout_seconds,
                actor_id=record.actor_id,
                resource=record.resource_type,
                action=record.action,
            )
        except Exception as e:
            logger.error(
                "AuditWriteFailure",
                reason=str(e),
                actor_id=record.actor_id,
                resource=record.resource_type,
                action=record.action,
            )

    async def flush(self) -> None:
        """Wait for in-flight appends."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._pending)


def build_audit_store(backend: str) -> AuditStore:
    if backend == "memory":
        return InMemoryAuditStore()

    from youthhub.core.database import AsyncSessionLocal

    return DatabaseAuditStore(AsyncSessionLocal)


audit_recorder = AuditRecorder(
    build_audit_store(settings.AUDIT_BACKEND),
    timeout_seconds=settings.AUDIT_WRITE_TIMEOUT_SECONDS,
    burst_detector=DenialBurstDetector(
        threshold=settings.AUDIT_DENIAL_BURST_THRESHOLD,
        window_seconds=settings.AUDIT_DENIAL_BURST_WINDOW_SECONDS,
    ),
)
