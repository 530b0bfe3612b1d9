"""
Permission manager for YouthHub resources.

Maps (role, resource type, action, context) to allow/deny. Every pair that
is not in the rule table is denied, and a rule that needs context the caller
did not supply denies as well.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Union

import structlog

from youthhub.core.identity import Identity
from youthhub.core.roles import Role, at_least

if TYPE_CHECKING:
    from youthhub.core.audit import AuditRecorder

logger = structlog.get_logger()


class ResourceType(str, Enum):
    POST = "post"
    COMMENT = "comment"
    EVENT = "event"
    USER = "user"
    SYSTEM = "system"


class ActionType(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MODERATE = "moderate"
    APPROVE = "approve"
    MANAGE = "manage"


# Board category that only leaders and admins may publish to.
NOTICE_CATEGORY = "notice"

_CONTEXT_ALIASES = {
    "user_id": "user_id",
    "userId": "user_id",
    "post_id": "post_id",
    "postId": "post_id",
    "category": "category",
    "resource_id": "resource_id",
    "resourceId": "resource_id",
}


@dataclass(frozen=True)
class PermissionContext:
    """Caller-supplied facts about the resource being acted on."""

    user_id: Optional[str] = None
    post_id: Optional[str] = None
    category: Optional[str] = None
    resource_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "PermissionContext":
        values: dict[str, Any] = {}
        for key, value in (data or {}).items():
            field = _CONTEXT_ALIASES.get(key)
            if field is not None and value is not None:
                values[field] = str(value)
        return cls(**values)

    def as_dict(self) -> dict[str, str]:
        return {key: value for key, value in asdict(self).items() if value is not None}


ContextInput = Union[PermissionContext, Mapping[str, Any], None]
Rule = Callable[[Any, PermissionContext, Optional[str]], bool]


def _parse(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return None


def _as_context(context: ContextInput) -> PermissionContext:
    if isinstance(context, PermissionContext):
        return context
    return PermissionContext.from_mapping(context)


def _is_owner(context: PermissionContext, actor_id: Optional[str]) -> bool:
    if context.user_id is None or actor_id is None:
        return False
    return str(context.user_id) == str(actor_id)


def _is_notice(context: PermissionContext) -> bool:
    return (context.category or "").strip().lower() == NOTICE_CATEGORY


def _requires(required: Role) -> Rule:
    def rule(role: Any, context: PermissionContext, actor_id: Optional[str]) -> bool:
        return at_least(role, required)

    return rule


def _post_create(role: Any, context: PermissionContext, actor_id: Optional[str]) -> bool:
    if not at_least(role, Role.MEMBER):
        return False
    if _is_notice(context):
        return at_least(role, Role.LEADER)
    return True


def _post_update(role: Any, context: PermissionContext, actor_id: Optional[str]) -> bool:
    if _is_notice(context) and not at_least(role, Role.LEADER):
        return False
    return _post_delete(role, context, actor_id)


def _post_delete(role: Any, context: PermissionContext, actor_id: Optional[str]) -> bool:
    if at_least(role, Role.LEADER):
        return True
    return at_least(role, Role.MEMBER) and _is_owner(context, actor_id)


def _comment_owner_or_admin(role: Any, context: PermissionContext, actor_id: Optional[str]) -> bool:
    if at_least(role, Role.ADMIN):
        return True
    return at_least(role, Role.MEMBER) and _is_owner(context, actor_id)


def _event_owner_or_admin(role: Any, context: PermissionContext, actor_id: Optional[str]) -> bool:
    if at_least(role, Role.ADMIN):
        return True
    return at_least(role, Role.LEADER) and _is_owner(context, actor_id)


R, A = ResourceType, ActionType

RULES: dict[tuple[ResourceType, ActionType], Rule] = {
    (R.POST, A.READ): _requires(Role.MEMBER),
    (R.POST, A.CREATE): _post_create,
    (R.POST, A.UPDATE): _post_update,
    (R.POST, A.DELETE): _post_delete,
    (R.POST, A.MODERATE): _requires(Role.LEADER),
    (R.COMMENT, A.READ): _requires(Role.MEMBER),
    (R.COMMENT, A.CREATE): _requires(Role.MEMBER),
    (R.COMMENT, A.UPDATE): _comment_owner_or_admin,
    (R.COMMENT, A.DELETE): _comment_owner_or_admin,
    (R.COMMENT, A.MODERATE): _requires(Role.LEADER),
    (R.EVENT, A.READ): _requires(Role.MEMBER),
    (R.EVENT, A.CREATE): _requires(Role.LEADER),
    (R.EVENT, A.UPDATE): _event_owner_or_admin,
    (R.EVENT, A.DELETE): _event_owner_or_admin,
    (R.USER, A.READ): _requires(Role.LEADER),
    (R.USER, A.MANAGE): _requires(Role.ADMIN),
    (R.USER, A.APPROVE): _requires(Role.ADMIN),
    (R.SYSTEM, A.MANAGE): _requires(Role.ADMIN),
}

del R, A


class PermissionManager:
    """Evaluates the rule table and, through ``authorize``, audits each decision."""

    def __init__(
        self,
        rules: Optional[Mapping[tuple[ResourceType, ActionType], Rule]] = None,
        recorder: Optional["AuditRecorder"] = None,
    ) -> None:
        self._rules = dict(RULES if rules is None else rules)
        self.recorder = recorder

    def check_permission(
        self,
        role: Any,
        resource_type: Any,
        action: Any,
        context: ContextInput = None,
        *,
        actor_id: Optional[str] = None,
    ) -> bool:
        resource = _parse(ResourceType, resource_type)
        act = _parse(ActionType, action)
        if resource is None or act is None:
            return False

        rule = self._rules.get((resource, act))
        if rule is None:
            return False

        return bool(rule(role, _as_context(context), None if actor_id is None else str(actor_id)))

    def check_identity(
        self,
        identity: Identity,
        resource_type: Any,
        action: Any,
        context: ContextInput = None,
    ) -> bool:
        """Like ``check_permission``, but unapproved accounts may only read."""
        if not identity.is_approved and _parse(ActionType, action) is not ActionType.READ:
            return False
        return self.check_permission(
            identity.role, resource_type, action, context, actor_id=identity.id
        )

    def authorize(
        self,
        identity: Identity,
        resource_type: Any,
        action: Any,
        context: ContextInput = None,
        resource_id: Optional[str] = None,
    ) -> bool:
        """Decide and record the decision exactly once."""
        ctx = _as_context(context)
        allowed = self.check_identity(identity, resource_type, action, ctx)

        if not allowed:
            logger.warning(
                "Permission denied",
                user_id=identity.id,
                role=identity.role_name,
                resource=str(getattr(resource_type, "value", resource_type)),
                action=str(getattr(action, "value", action)),
            )

        if self.recorder is not None:
            self.recorder.log_permission_check(
                identity.id,
                identity.role_name,
                resource_type,
                action,
                resource_id or ctx.resource_id or ctx.post_id,
                ctx.as_dict() or None,
                outcome=allowed,
            )
        return allowed

    # Board

    def can_create_post(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.POST, ActionType.CREATE, context, actor_id=actor_id)

    def can_edit_post(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.POST, ActionType.UPDATE, context, actor_id=actor_id)

    def can_delete_post(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.POST, ActionType.DELETE, context, actor_id=actor_id)

    def can_moderate_post(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.POST, ActionType.MODERATE, context, actor_id=actor_id)

    # Calendar

    def can_create_event(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.EVENT, ActionType.CREATE, context, actor_id=actor_id)

    def can_edit_event(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.EVENT, ActionType.UPDATE, context, actor_id=actor_id)

    def can_delete_event(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.EVENT, ActionType.DELETE, context, actor_id=actor_id)

    # Administration

    def can_manage_users(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.USER, ActionType.MANAGE, context, actor_id=actor_id)

    def can_approve_users(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.USER, ActionType.APPROVE, context, actor_id=actor_id)

    def can_manage_system(self, role: Any, context: ContextInput = None, *, actor_id: Optional[str] = None) -> bool:
        return self.check_permission(role, ResourceType.SYSTEM, ActionType.MANAGE, context, actor_id=actor_id)

    def capabilities(self, identity: Identity) -> dict[str, bool]:
        """Static capability flags for the current user, used by clients to shape the UI."""
        flags = {
            "can_create_post": self.check_identity(identity, ResourceType.POST, ActionType.CREATE),
            "can_create_notice": self.check_identity(
                identity, ResourceType.POST, ActionType.CREATE, {"category": NOTICE_CATEGORY}
            ),
            "can_moderate_posts": self.check_identity(identity, ResourceType.POST, ActionType.MODERATE),
            "can_moderate_comments": self.check_identity(identity, ResourceType.COMMENT, ActionType.MODERATE),
            "can_create_event": self.check_identity(identity, ResourceType.EVENT, ActionType.CREATE),
            "can_read_users": self.check_identity(identity, ResourceType.USER, ActionType.READ),
            "can_manage_users": self.check_identity(identity, ResourceType.USER, ActionType.MANAGE),
            "can_approve_users": self.check_identity(identity, ResourceType.USER, ActionType.APPROVE),
            "can_manage_system": self.check_identity(identity, ResourceType.SYSTEM, ActionType.MANAGE),
        }
        if not identity.is_approved:
            # Every guarded route refuses unapproved accounts.
            return dict.fromkeys(flags, False)
        return flags


permission_manager = PermissionManager()
