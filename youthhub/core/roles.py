"""
Role hierarchy for YouthHub.

Roles are totally ordered: member < leader < admin.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    MEMBER = "member"
    LEADER = "leader"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Return the matching role, or None for anything unrecognised."""
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


ROLE_LEVELS: dict[Role, int] = {
    Role.MEMBER: 1,
    Role.LEADER: 2,
    Role.ADMIN: 3,
}

# Level of anything that is not a known role.
UNKNOWN_ROLE_LEVEL = 0


def level_of(role: Any) -> int:
    role = Role.parse(role)
    if role is None:
        return UNKNOWN_ROLE_LEVEL
    return ROLE_LEVELS[role]


def at_least(actual: Any, required: Any) -> bool:
    """True when ``actual`` ranks at or above ``required``."""
    return level_of(actual) >= level_of(required)
