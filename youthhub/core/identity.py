"""
Request identity resolved from a Supabase session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from youthhub.core.roles import Role


@dataclass(frozen=True)
class Identity:
    id: str
    # Raw profile values that are not a known role are kept as-is and rank lowest.
    role: Union[Role, str]
    is_approved: bool
    email: str | None = None

    @classmethod
    def from_profile(cls, profile: Any) -> "Identity":
        role = Role.parse(profile.role) or str(profile.role)
        return cls(
            id=str(profile.id),
            role=role,
            # Only an explicit True counts as approved.
            is_approved=profile.is_approved is True,
            email=getattr(profile, "email", None),
        )

    @property
    def role_name(self) -> str:
        return self.role.value if isinstance(self.role, Role) else str(self.role)
