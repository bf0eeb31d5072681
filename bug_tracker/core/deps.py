"""
FastAPI Dependencies
Principal resolution and route-level role gates
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from bug_tracker.core.database import get_db
from bug_tracker.core.errors import TokenError, Unauthenticated, Unexpected
from bug_tracker.core.rbac import Principal, Role, authorize_role
from bug_tracker.core.security import TokenCodec, token_codec
from bug_tracker.repositories.user import user_repository

logger = structlog.get_logger()

security = HTTPBearer(auto_error=False)


class PrincipalResolver:
    """
    Maps a bearer token to the live principal behind it.

    The role embedded in the token is never trusted: the identity store is
    consulted on every request, so deleted accounts and role changes take
    effect immediately.
    """

    def __init__(self, codec: TokenCodec, identities: Any, logger: Any = None) -> None:
        self.codec = codec
        self.identities = identities
        self._logger = logger or structlog.get_logger()

    async def resolve(
        self,
        db: AsyncSession,
        token: Optional[str],
        now: Optional[datetime] = None
    ) -> Principal:
        """
        Resolve ``token`` to a principal

        Raises:
            Unauthenticated: no token, token rejected, or the account no longer exists
            Unexpected: the identity store failed
        """
        if not token:
            self._logger.warning("Missing authentication credentials")
            raise Unauthenticated("Not authorized, no token")

        try:
            claims = self.codec.verify(token, now=now)
            subject = UUID(claims.subject)
        except (TokenError, ValueError) as exc:
            self._logger.warning("Token rejected", reason=str(exc))
            raise Unauthenticated("Not authorized, token failed") from exc

        try:
            principal = await self.identities.find_principal_by_id(db, subject)
        except SQLAlchemyError as exc:
            self._logger.error("Identity lookup failed", user_id=str(subject), error=str(exc))
            raise Unexpected("Authentication service error") from exc

        if principal is None:
            self._logger.warning("User not found for token", user_id=str(subject))
            raise Unauthenticated("Not authorized, user not found")

        self._logger.debug("User authenticated successfully", user_id=str(principal.id), role=principal.role.value)
        return principal


principal_resolver = PrincipalResolver(token_codec, user_repository)


async def get_current_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> Principal:
    """
    Resolve the request's principal and attach it to the request context
    """
    token = credentials.credentials if credentials else None
    principal = await principal_resolver.resolve(db, token)

    request.state.principal = principal
    structlog.contextvars.bind_contextvars(actor_id=str(principal.id))
    return principal


def require_roles(*roles: Role):
    """
    Dependency factory for route-level role gates

    Args:
        roles: Roles allowed on the route

    Returns:
        Dependency returning the authorized principal
    """
    allowed = frozenset(roles)

    async def role_checker(
        principal: Principal = Depends(get_current_principal)
    ) -> Principal:
        return authorize_role(principal, allowed)

    return role_checker
