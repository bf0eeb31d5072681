"""
RBAC helpers: roles, the request principal, and the authorization checks
applied at route level (role gate) and per resource (ownership).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional
from uuid import UUID

import structlog

from bug_tracker.core.errors import Forbidden, Unauthenticated

logger = structlog.get_logger()


class Role(str, Enum):
    USER = "User"
    TESTER = "Tester"
    ADMIN = "Admin"


@dataclass(frozen=True)
class Principal:
    """Authenticated actor of a request, built from a live identity record."""

    id: UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def authorize_role(
    principal: Optional[Principal],
    allowed_roles: Iterable[Role],
    log: Any = None,
) -> Principal:
    """
    Route-level role gate.

    Raises:
        Unauthenticated: no principal was resolved (gate wired before the resolver)
        Forbidden: the principal's role is not among ``allowed_roles``
    """
    log = log or logger
    if principal is None:
        log.error("Role gate evaluated without a resolved principal")
        raise Unauthenticated("User not authenticated")

    allowed = frozenset(allowed_roles)
    if principal.role not in allowed:
        log.warning(
            "User lacks required role",
            actor_id=str(principal.id),
            role=principal.role.value,
            required_roles=sorted(role.value for role in allowed),
        )
        raise Forbidden(f"Role {principal.role.value} is not authorized to access this resource")

    return principal


def can_mutate(principal: Principal, resource: Any) -> bool:
    """Owner of the resource or an Admin may update it."""
    return principal.id == resource.created_by_id or principal.is_admin


def can_delete_comment(principal: Principal, comment: Any, parent: Any) -> bool:
    """Comment author, owner of the parent bug, or an Admin may delete a comment."""
    return (
        principal.id == comment.created_by_id
        or principal.id == parent.created_by_id
        or principal.is_admin
    )
