"""
Bug Service
Business logic for bugs and comments: authorization checks, query
translation and store error handling.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bug_tracker.core.config import settings
from bug_tracker.core.errors import Forbidden, NotFound, Unexpected, ValidationFailed
from bug_tracker.core.query import QueryTranslator
from bug_tracker.core.rbac import Principal, can_delete_comment, can_mutate
from bug_tracker.repositories.bug import bug_repository
from bug_tracker.repositories.user import user_repository
from bug_tracker.schemas.bug import BugCreate, BugUpdate, CommentCreate, serialize_bug, serialize_comment

BUG_NOT_FOUND = "Bug not found"
BUG_ID_INVALID = "Bug not found with this ID"
COMMENT_NOT_FOUND = "Comment not found"
RESOURCE_ID_INVALID = "Resource not found with this ID"


@dataclass
class BugPage:
    items: List[Dict[str, Any]]
    total: int
    page: int
    limit: int
    total_pages: int


def parse_identifier(raw: Any, message: str) -> UUID:
    """Parse a path identifier; anything unparseable is reported as not found"""
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except ValueError:
        raise NotFound(message)


class BugService:
    def __init__(self, logger: Any = None) -> None:
        self.repository = bug_repository
        self.users = user_repository
        self.translator = QueryTranslator(default_limit=settings.DEFAULT_PAGE_LIMIT, logger=logger)
        self.logger = logger or structlog.get_logger()

    @contextmanager
    def _store_call(self, operation: str, message: str, errors=(SQLAlchemyError,), **context) -> Iterator[None]:
        try:
            yield
        except errors as exc:
            self.logger.error("Store operation failed", operation=operation, error=str(exc), **context)
            raise Unexpected(message) from exc

    async def _load_bug(self, db: AsyncSession, raw_id: Any, *, invalid_message: str = BUG_ID_INVALID):
        bug_id = parse_identifier(raw_id, invalid_message)
        with self._store_call("find_bug", "Server error while fetching bug", bug_id=str(bug_id)):
            bug = await self.repository.find_by_id(db, bug_id)
        if bug is None:
            raise NotFound(BUG_NOT_FOUND)
        return bug

    async def _ensure_assignee_exists(self, db: AsyncSession, assignee_id: UUID) -> None:
        with self._store_call("find_assignee", "Server error while checking assignee", assignee_id=str(assignee_id)):
            assignee = await self.users.find_by_id(db, assignee_id)
        if assignee is None:
            raise ValidationFailed("Assigned user not found")

    async def create_bug(self, db: AsyncSession, principal: Principal, bug_in: BugCreate) -> Dict[str, Any]:
        values = bug_in.model_dump()
        if values.get("assigned_to_id"):
            await self._ensure_assignee_exists(db, values["assigned_to_id"])

        values["created_by_id"] = principal.id
        with self._store_call("create_bug", "Server error while creating bug", actor_id=str(principal.id)):
            bug = await self.repository.insert(db, values)

        self.logger.info("Bug created", bug_id=str(bug.id), actor_id=str(principal.id))
        return serialize_bug(bug)

    async def list_bugs(self, db: AsyncSession, params: Mapping[str, Any]) -> BugPage:
        """
        List bugs for a client query

        The page and the total are read with two independent queries; a write
        landing between them can make ``total`` disagree with the page.
        """
        plan = self.translator.translate(params)

        with self._store_call(
            "list_bugs",
            "Server error while fetching bugs",
            errors=(SQLAlchemyError, ValueError, OverflowError),
            filter=plan.filter,
        ):
            bugs = await self.repository.find_many(db, plan)
            total = await self.repository.count_many(db, plan.filter)

        return BugPage(
            items=[serialize_bug(bug, plan.projection) for bug in bugs],
            total=total,
            page=plan.page,
            limit=plan.limit,
            total_pages=plan.total_pages(total),
        )

    async def get_bug(self, db: AsyncSession, bug_id: Any) -> Dict[str, Any]:
        bug = await self._load_bug(db, bug_id)
        return serialize_bug(bug)

    async def update_bug(
        self,
        db: AsyncSession,
        principal: Principal,
        bug_id: Any,
        bug_in: BugUpdate
    ) -> Dict[str, Any]:
        bug = await self._load_bug(db, bug_id)

        if not can_mutate(principal, bug):
            self.logger.warning(
                "Bug update denied",
                bug_id=str(bug.id),
                actor_id=str(principal.id),
                owner_id=str(bug.created_by_id),
            )
            raise Forbidden("Not authorized to update this bug")

        patch = bug_in.model_dump(exclude_unset=True)
        if patch.get("assigned_to_id"):
            await self._ensure_assignee_exists(db, patch["assigned_to_id"])

        with self._store_call("update_bug", "Server error while updating bug", bug_id=str(bug.id)):
            updated = await self.repository.update_by_id(db, bug.id, patch)
        if updated is None:
            raise NotFound(BUG_NOT_FOUND)

        self.logger.info("Bug updated", bug_id=str(bug.id), actor_id=str(principal.id), fields=sorted(patch))
        return serialize_bug(updated)

    async def delete_bug(self, db: AsyncSession, principal: Principal, bug_id: Any) -> None:
        """Delete a bug. Callers gate this route on the Admin role."""
        bug = await self._load_bug(db, bug_id)

        with self._store_call("delete_bug", "Server error while deleting bug", bug_id=str(bug.id)):
            deleted = await self.repository.delete_by_id(db, bug.id)
        if not deleted:
            raise NotFound(BUG_NOT_FOUND)

        self.logger.info("Bug deleted", bug_id=str(bug.id), actor_id=str(principal.id))

    async def add_comment(
        self,
        db: AsyncSession,
        principal: Principal,
        bug_id: Any,
        comment_in: CommentCreate
    ) -> Dict[str, Any]:
        bug = await self._load_bug(db, bug_id)

        with self._store_call("add_comment", "Server error while adding comment", bug_id=str(bug.id)):
            comment = await self.repository.add_comment(db, bug.id, comment_in.text, principal.id)

        self.logger.info("Comment added", bug_id=str(bug.id), comment_id=str(comment.id), actor_id=str(principal.id))
        return serialize_comment(comment)

    async def list_comments(self, db: AsyncSession, bug_id: Any) -> List[Dict[str, Any]]:
        bug = await self._load_bug(db, bug_id)
        return [serialize_comment(comment) for comment in bug.comments]

    async def delete_comment(
        self,
        db: AsyncSession,
        principal: Principal,
        bug_id: Any,
        comment_id: Any
    ) -> None:
        parsed_comment_id = parse_identifier(comment_id, RESOURCE_ID_INVALID)
        bug = await self._load_bug(db, bug_id, invalid_message=RESOURCE_ID_INVALID)

        comment = next((item for item in bug.comments if item.id == parsed_comment_id), None)
        if comment is None:
            raise NotFound(COMMENT_NOT_FOUND)

        if not can_delete_comment(principal, comment, bug):
            self.logger.warning(
                "Comment deletion denied",
                bug_id=str(bug.id),
                comment_id=str(comment.id),
                actor_id=str(principal.id),
            )
            raise Forbidden("Not authorized to delete this comment")

        with self._store_call("delete_comment", "Server error while deleting comment", comment_id=str(comment.id)):
            await self.repository.delete_comment(db, comment)

        self.logger.info("Comment deleted", bug_id=str(bug.id), comment_id=str(comment.id), actor_id=str(principal.id))


bug_service = BugService()
