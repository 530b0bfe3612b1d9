import asyncio
from uuid import uuid4

from youthhub.core.audit import AuditStore, InMemoryAuditStore
from youthhub.core.identity import Identity
from youthhub.core.roles import Role


def make_identity(role=Role.MEMBER, approved=True, user_id=None) -> Identity:
    return Identity(id=user_id or str(uuid4()), role=role, is_approved=approved, email="user@example.com")


class FailingStore(AuditStore):
    async def append(self, record):
        raise RuntimeError("database unavailable")

    async def list_for_actor(self, actor_id):
        return []


class SlowStore(InMemoryAuditStore):
    async def append(self, record):
        await asyncio.sleep(5)
        await super().append(record)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
