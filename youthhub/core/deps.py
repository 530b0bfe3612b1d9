"""
FastAPI Dependencies
Route guards: identity resolution, approval, role floors and permission checks
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from youthhub.core.database import get_db
from youthhub.core.identity import Identity
from youthhub.core.permissions import (
    ActionType,
    ContextInput,
    PermissionContext,
    PermissionManager,
    ResourceType,
    permission_manager,
)
from youthhub.core.rate_limit import FixedWindowLimiter, LoginAttemptLimiter, login_limiter, report_limiter
from youthhub.core.roles import Role, at_least
from youthhub.core.security import identity_resolver

logger = structlog.get_logger()

# Security schemes
security = HTTPBearer(auto_error=False)


class DenialReason(Enum):
    """Denial kinds and the single HTTP response each one maps to."""

    UNAUTHENTICATED = (status.HTTP_401_UNAUTHORIZED, "Authentication required")
    UNAPPROVED = (status.HTTP_403_FORBIDDEN, "Approval required")
    INSUFFICIENT_ROLE = (status.HTTP_403_FORBIDDEN, "Insufficient role")
    PERMISSION_DENIED = (status.HTTP_403_FORBIDDEN, "Permission denied for this resource")

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message

    def to_http(self) -> HTTPException:
        headers = {"WWW-Authenticate": "Bearer"} if self is DenialReason.UNAUTHENTICATED else None
        return HTTPException(status_code=self.status_code, detail=self.message, headers=headers)


def get_permission_manager() -> PermissionManager:
    return permission_manager


def get_report_limiter() -> FixedWindowLimiter:
    return report_limiter


def get_login_limiter() -> LoginAttemptLimiter:
    return login_limiter


async def get_optional_identity(
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Optional[Identity]:
    """
    Resolve the caller's identity if a valid session token is present

    Returns:
        Identity or None when the token is missing, invalid or has no profile
    """
    if not credentials:
        return None
    return await identity_resolver.resolve(db, credentials.credentials)


async def require_identity(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Identity:
    if identity is None:
        logger.warning("Missing or invalid authentication credentials")
        raise DenialReason.UNAUTHENTICATED.to_http()
    return identity


async def require_approved(
    identity: Identity = Depends(require_identity),
) -> Identity:
    if not identity.is_approved:
        logger.warning("Unapproved user attempted access", user_id=identity.id)
        raise DenialReason.UNAPPROVED.to_http()
    return identity


def require_role(required_role: Role):
    """
    Dependency factory for a static minimum role

    Args:
        required_role: Lowest role allowed through

    Returns:
        Dependency function
    """

    async def role_checker(
        identity: Identity = Depends(require_approved),
    ) -> Identity:
        if not at_least(identity.role, required_role):
            logger.warning(
                "User lacks required role",
                user_id=identity.id,
                required_role=required_role.value,
                user_role=identity.role_name,
            )
            raise DenialReason.INSUFFICIENT_ROLE.to_http()

        logger.debug("Role check passed", user_id=identity.id, role=required_role.value)
        return identity

    return role_checker


def enforce_permission(
    identity: Identity,
    resource_type: ResourceType,
    action: ActionType,
    context: ContextInput = None,
    resource_id: Optional[str] = None,
    manager: Optional[PermissionManager] = None,
) -> None:
    """
    Imperative guard for handlers whose context comes from the request body

    Raises:
        HTTPException: 403 when the permission manager denies
    """
    manager = manager or permission_manager
    if not manager.authorize(identity, resource_type, action, context, resource_id=resource_id):
        raise DenialReason.PERMISSION_DENIED.to_http()


def require_permission(
    resource_type: ResourceType,
    action: ActionType,
    context_loader: Optional[Callable[..., Awaitable[PermissionContext]]] = None,
):
    """
    Dependency factory for a resource/action permission

    Args:
        resource_type: Resource being acted on
        action: Action being performed
        context_loader: Optional dependency producing the PermissionContext
            (for example the owner of a post loaded from the database)

    Returns:
        Dependency function
    """
    if context_loader is None:

        async def permission_checker(
            identity: Identity = Depends(require_approved),
            manager: PermissionManager = Depends(get_permission_manager),
        ) -> Identity:
            enforce_permission(identity, resource_type, action, manager=manager)
            return identity

        return permission_checker

    async def contextual_permission_checker(
        identity: Identity = Depends(require_approved),
        context: PermissionContext = Depends(context_loader),
        manager: PermissionManager = Depends(get_permission_manager),
    ) -> Identity:
        enforce_permission(identity, resource_type, action, context, manager=manager)
        return identity

    return contextual_permission_checker

