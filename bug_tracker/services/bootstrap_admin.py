"""
Bootstrap admin creation service.
"""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from bug_tracker.core.config import settings
from bug_tracker.core.rbac import Role
from bug_tracker.core.security import get_password_hash
from bug_tracker.repositories.user import user_repository

logger = structlog.get_logger()


async def ensure_bootstrap_admin_exists(db: AsyncSession, config=settings) -> None:
    """Create the configured Admin account unless the email is already taken"""
    admin_email = config.BOOTSTRAP_ADMIN_EMAIL.lower().strip()

    existing = await user_repository.get_by_email(db, admin_email)
    if existing:
        logger.info("Bootstrap admin already exists", email=admin_email, user_id=str(existing.id))
        return

    admin = await user_repository.insert(db, {
        "name": config.BOOTSTRAP_ADMIN_NAME,
        "email": admin_email,
        "hashed_password": get_password_hash(config.BOOTSTRAP_ADMIN_PASSWORD),
        "role": Role.ADMIN.value,
    })

    logger.info("Bootstrap admin created", email=admin_email, user_id=str(admin.id))
