"""
User Repository
Identity lookups used by authentication and the profile endpoints.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bug_tracker.core.rbac import Principal, Role
from bug_tracker.models.user import User
from bug_tracker.repositories.base import DocumentRepository

logger = structlog.get_logger()


class UserRepository(DocumentRepository[User]):
    fields = {
        "id": "id",
        "name": "name",
        "email": "email",
        "role": "role",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    }

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower().strip()))
        return result.scalar_one_or_none()

    async def find_principal_by_id(self, db: AsyncSession, user_id: UUID) -> Optional[Principal]:
        """Current identity and role of ``user_id``, or None if the account is gone"""
        user = await self.find_by_id(db, user_id)
        if user is None:
            return None
        return Principal(id=user.id, role=Role(user.role))


user_repository = UserRepository(User)
