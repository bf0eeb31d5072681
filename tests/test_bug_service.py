"""
Tests for BugService
"""

from unittest.mock import AsyncMock, MagicMock
import uuid

import pytest
from sqlalchemy.exc import OperationalError

from bug_tracker.core.errors import Forbidden, NotFound, Unexpected, ValidationFailed
from bug_tracker.core.rbac import Role
from bug_tracker.schemas.bug import BugCreate, BugUpdate, CommentCreate
from bug_tracker.services.bug import BugService

from factories import make_bug, make_comment, make_principal


@pytest.fixture
def service():
    svc = BugService(logger=MagicMock())
    svc.repository = AsyncMock()
    svc.users = AsyncMock()
    return svc


class TestCreateBug:

    @pytest.mark.asyncio
    async def test_creator_becomes_owner(self, service):
        principal = make_principal()
        service.repository.insert.return_value = make_bug(principal.id, title="Crash on save")

        result = await service.create_bug(None, principal, BugCreate(title="Crash on save"))

        values = service.repository.insert.await_args.args[1]
        assert values["created_by_id"] == principal.id
        assert values["priority"] == "Medium"
        assert values["status"] == "Open"
        assert result["title"] == "Crash on save"
        assert result["createdBy"]["id"] == str(principal.id)

    @pytest.mark.asyncio
    async def test_unknown_assignee_is_rejected(self, service):
        service.users.find_by_id.return_value = None

        with pytest.raises(ValidationFailed):
            await service.create_bug(
                None,
                make_principal(),
                BugCreate(title="Crash", assignedTo=str(uuid.uuid4())),
            )

        service.repository.insert.assert_not_awaited()


class TestUpdateBug:

    @pytest.mark.asyncio
    async def test_owner_can_update(self, service):
        owner = make_principal()
        bug = make_bug(owner.id)
        service.repository.find_by_id.return_value = bug
        service.repository.update_by_id.return_value = make_bug(owner.id, id=bug.id, status="Closed")

        result = await service.update_bug(None, owner, str(bug.id), BugUpdate(status="Closed"))

        service.repository.update_by_id.assert_awaited_once_with(None, bug.id, {"status": "Closed"})
        assert result["status"] == "Closed"

    @pytest.mark.asyncio
    async def test_admin_can_update_foreign_bug(self, service):
        bug = make_bug(uuid.uuid4())
        service.repository.find_by_id.return_value = bug
        service.repository.update_by_id.return_value = bug

        await service.update_bug(None, make_principal(Role.ADMIN), bug.id, BugUpdate(title="Renamed"))

        service.repository.update_by_id.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden_before_any_write(self, service):
        bug = make_bug(uuid.uuid4())
        service.repository.find_by_id.return_value = bug

        with pytest.raises(Forbidden) as exc_info:
            await service.update_bug(None, make_principal(Role.TESTER), bug.id, BugUpdate(status="Closed"))

        assert exc_info.value.message == "Not authorized to update this bug"
        service.repository.update_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bug_vanishing_mid_update_is_not_found(self, service):
        owner = make_principal()
        bug = make_bug(owner.id)
        service.repository.find_by_id.return_value = bug
        service.repository.update_by_id.return_value = None

        with pytest.raises(NotFound):
            await service.update_bug(None, owner, bug.id, BugUpdate(status="Closed"))


class TestGetBug:

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, service):
        with pytest.raises(NotFound) as exc_info:
            await service.get_bug(None, "not-a-uuid")

        assert exc_info.value.message == "Bug not found with this ID"
        service.repository.find_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_bug_is_not_found(self, service):
        service.repository.find_by_id.return_value = None

        with pytest.raises(NotFound) as exc_info:
            await service.get_bug(None, str(uuid.uuid4()))

        assert exc_info.value.message == "Bug not found"

    @pytest.mark.asyncio
    async def test_store_failure_is_unexpected(self, service):
        service.repository.find_by_id.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(Unexpected):
            await service.get_bug(None, str(uuid.uuid4()))


class TestListBugs:

    @pytest.mark.asyncio
    async def test_page_projection_and_totals(self, service):
        bug = make_bug(uuid.uuid4())
        service.repository.find_many.return_value = [bug]
        service.repository.count_many.return_value = 25

        page = await service.list_bugs(None, {"status": "Open", "page": "2", "limit": "10", "fields": "title"})

        plan = service.repository.find_many.await_args.args[1]
        assert plan.filter == {"status": "Open"}
        assert plan.skip == 10
        service.repository.count_many.assert_awaited_once_with(None, {"status": "Open"})
        assert page.items == [{"id": str(bug.id), "title": bug.title}]
        assert page.total == 25
        assert page.page == 2
        assert page.total_pages == 3

    @pytest.mark.asyncio
    async def test_excluding_projection_keeps_other_fields(self, service):
        bug = make_bug(uuid.uuid4())
        service.repository.find_many.return_value = [bug]
        service.repository.count_many.return_value = 1

        page = await service.list_bugs(None, {"fields": "-description"})

        item = page.items[0]
        assert "description" not in item
        assert item["title"] == bug.title
        assert item["status"] == "Open"

    @pytest.mark.asyncio
    async def test_unusable_filter_reports_fetch_error(self, service):
        service.repository.find_many.side_effect = ValueError("badly formed hexadecimal UUID string")

        with pytest.raises(Unexpected) as exc_info:
            await service.list_bugs(None, {"createdBy": "nope"})

        assert exc_info.value.message == "Server error while fetching bugs"

    @pytest.mark.asyncio
    async def test_page_beyond_store_integer_range_reports_fetch_error(self, service):
        service.repository.find_many.side_effect = OverflowError("Python int too large to convert to SQLite INTEGER")

        with pytest.raises(Unexpected) as exc_info:
            await service.list_bugs(None, {"page": "99999999999999999999999"})

        assert exc_info.value.message == "Server error while fetching bugs"


class TestComments:

    @pytest.mark.asyncio
    async def test_add_comment_by_any_user(self, service):
        author = make_principal()
        bug = make_bug(uuid.uuid4())
        service.repository.find_by_id.return_value = bug
        service.repository.add_comment.return_value = make_comment(author.id, text="Same here")

        result = await service.add_comment(None, author, bug.id, CommentCreate(text="Same here"))

        service.repository.add_comment.assert_awaited_once_with(None, bug.id, "Same here", author.id)
        assert result["text"] == "Same here"
        assert result["createdBy"]["id"] == str(author.id)

    @pytest.mark.asyncio
    async def test_list_comments(self, service):
        bug = make_bug(uuid.uuid4())
        bug.comments = [make_comment(uuid.uuid4()), make_comment(uuid.uuid4())]
        service.repository.find_by_id.return_value = bug

        comments = await service.list_comments(None, bug.id)

        assert [c["id"] for c in comments] == [str(c.id) for c in bug.comments]

    @pytest.mark.asyncio
    async def test_comment_author_can_delete(self, service):
        author = make_principal()
        comment = make_comment(author.id)
        bug = make_bug(uuid.uuid4(), comments=[comment])
        service.repository.find_by_id.return_value = bug

        await service.delete_comment(None, author, bug.id, str(comment.id))

        service.repository.delete_comment.assert_awaited_once_with(None, comment)

    @pytest.mark.asyncio
    async def test_bug_owner_can_delete_any_comment(self, service):
        owner = make_principal()
        comment = make_comment(uuid.uuid4())
        bug = make_bug(owner.id, comments=[comment])
        service.repository.find_by_id.return_value = bug

        await service.delete_comment(None, owner, bug.id, comment.id)

        service.repository.delete_comment.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stranger_cannot_delete(self, service):
        comment = make_comment(uuid.uuid4())
        bug = make_bug(uuid.uuid4(), comments=[comment])
        service.repository.find_by_id.return_value = bug

        with pytest.raises(Forbidden) as exc_info:
            await service.delete_comment(None, make_principal(), bug.id, comment.id)

        assert exc_info.value.message == "Not authorized to delete this comment"
        service.repository.delete_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_comment(self, service):
        service.repository.find_by_id.return_value = make_bug(uuid.uuid4())

        with pytest.raises(NotFound) as exc_info:
            await service.delete_comment(None, make_principal(Role.ADMIN), uuid.uuid4(), uuid.uuid4())

        assert exc_info.value.message == "Comment not found"

    @pytest.mark.asyncio
    async def test_malformed_comment_id(self, service):
        with pytest.raises(NotFound) as exc_info:
            await service.delete_comment(None, make_principal(), uuid.uuid4(), "42")

        assert exc_info.value.message == "Resource not found with this ID"


class TestDeleteBug:

    @pytest.mark.asyncio
    async def test_delete_existing_bug(self, service):
        bug = make_bug(uuid.uuid4())
        service.repository.find_by_id.return_value = bug
        service.repository.delete_by_id.return_value = True

        await service.delete_bug(None, make_principal(Role.ADMIN), bug.id)

        service.repository.delete_by_id.assert_awaited_once_with(None, bug.id)

    @pytest.mark.asyncio
    async def test_delete_missing_bug(self, service):
        service.repository.find_by_id.return_value = None

        with pytest.raises(NotFound):
            await service.delete_bug(None, make_principal(Role.ADMIN), uuid.uuid4())
