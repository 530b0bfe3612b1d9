"""
Shared fixtures for the YouthHub test suite.
"""

import os

# Settings are read at import time; keep the suite off Postgres and Redis.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("AUDIT_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret-that-is-long-enough-for-hs256-signing")

from unittest.mock import AsyncMock, MagicMock

import pytest

from youthhub.core.audit import AuditRecorder, InMemoryAuditStore
from youthhub.core.permissions import PermissionManager
from youthhub.core.roles import Role

from tests.factories import make_identity


@pytest.fixture
def member():
    return make_identity(Role.MEMBER)


@pytest.fixture
def leader():
    return make_identity(Role.LEADER)


@pytest.fixture
def admin():
    return make_identity(Role.ADMIN)


@pytest.fixture
def audit_store():
    return InMemoryAuditStore()


@pytest.fixture
def recorder(audit_store):
    return AuditRecorder(audit_store, timeout_seconds=0.5)


@pytest.fixture
def manager(recorder):
    return PermissionManager(recorder=recorder)


@pytest.fixture
def mock_db():
    """Create a mock async database session"""
    db = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    return db
