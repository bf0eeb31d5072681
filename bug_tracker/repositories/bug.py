"""
Bug Repository
Database operations for bugs and their comment thread.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bug_tracker.models.bug import Bug, Comment
from bug_tracker.repositories.base import DocumentRepository

logger = structlog.get_logger()


class BugRepository(DocumentRepository[Bug]):
    fields = {
        "id": "id",
        "title": "title",
        "description": "description",
        "priority": "priority",
        "status": "status",
        "createdBy": "created_by_id",
        "assignedTo": "assigned_to_id",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    }

    async def add_comment(self, db: AsyncSession, bug_id: UUID, text: str, author_id: UUID) -> Comment:
        try:
            comment = Comment(bug_id=bug_id, text=text, created_by_id=author_id)
            db.add(comment)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Error adding comment", bug_id=str(bug_id), error=str(e))
            raise

        result = await db.execute(
            select(Comment)
            .where(Comment.id == comment.id)
            .execution_options(populate_existing=True)
        )
        logger.info("Comment created", bug_id=str(bug_id), comment_id=str(comment.id))
        return result.scalar_one()

    async def delete_comment(self, db: AsyncSession, comment: Comment) -> None:
        try:
            await db.delete(comment)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Error deleting comment", comment_id=str(comment.id), error=str(e))
            raise

        logger.info("Comment deleted", bug_id=str(comment.bug_id), comment_id=str(comment.id))


bug_repository = BugRepository(Bug)
