"""
Supabase session verification.

Access tokens issued by Supabase Auth are HS256 JWTs signed with the project
JWT secret. The subject is looked up in ``user_profiles`` to learn the role
and approval state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from joserfc import jwt as jose_jwt
from joserfc.errors import JoseError
from joserfc.jwk import OctKey
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from youthhub.core.config import JWT_CONFIG
from youthhub.core.identity import Identity

logger = structlog.get_logger()


@dataclass(frozen=True)
class TokenValidationResult:
    subject: str
    claims: dict


class SupabaseTokenValidator:
    def __init__(self, secret_key: str, algorithm: str, audience: str) -> None:
        self._jwt_key = OctKey.import_key(secret_key)
        self._algorithm = algorithm
        self._registry = jose_jwt.JWTClaimsRegistry(
            exp={"essential": True},
            sub={"essential": True},
            aud={"essential": True, "value": audience},
        )

    def validate(self, token: str) -> Optional[TokenValidationResult]:
        """Return the verified subject and claims, or None for any invalid token."""
        try:
            token_obj = jose_jwt.decode(token, self._jwt_key, algorithms=[self._algorithm])
            self._registry.validate(token_obj.claims)
        except (JoseError, ValueError) as exc:
            logger.warning("JWT verification failed", error=str(exc))
            return None

        claims = dict(token_obj.claims)
        logger.debug("Token verified successfully", subject=claims["sub"])
        return TokenValidationResult(subject=str(claims["sub"]), claims=claims)


class IdentityResolver:
    """Turns a bearer token into an ``Identity``; every failure resolves to None."""

    def __init__(self, validator: SupabaseTokenValidator, profiles: Any = None) -> None:
        self.validator = validator
        self._profiles = profiles

    @property
    def profiles(self):
        if self._profiles is None:
            from youthhub.repositories.profile import user_profile_repository

            self._profiles = user_profile_repository
        return self._profiles

    async def resolve(self, db: AsyncSession, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None

        result = self.validator.validate(token)
        if result is None:
            return None

        try:
            user_id = UUID(result.subject)
        except ValueError:
            logger.warning("Token subject is not a user id", subject=result.subject)
            return None

        try:
            profile = await self.profiles.get(db, id=user_id)
        except Exception as e:
            logger.error("Profile lookup failed", user_id=result.subject, error=str(e))
            return None

        if profile is None:
            # No profile row yet means not approved and not identified.
            logger.warning("Token subject has no profile", user_id=result.subject)
            return None

        return Identity.from_profile(profile)


token_validator = SupabaseTokenValidator(
    secret_key=JWT_CONFIG["secret_key"],
    algorithm=JWT_CONFIG["algorithm"],
    audience=JWT_CONFIG["audience"],
)

identity_resolver = IdentityResolver(token_validator)
