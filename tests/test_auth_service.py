"""
Tests for AuthService and the bootstrap admin
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
import uuid

import pytest

from bug_tracker.core.errors import Unauthenticated, ValidationFailed
from bug_tracker.core.rbac import Role
from bug_tracker.core.security import get_password_hash
from bug_tracker.schemas.auth import LoginRequest, ProfileUpdateRequest, RegisterRequest
from bug_tracker.services import bootstrap_admin
from bug_tracker.services.auth import AuthService


def _user(role="User", password="s3cret-pass", **overrides):
    values = dict(
        id=uuid.uuid4(),
        name="Jane",
        email="jane@example.com",
        role=role,
        hashed_password=get_password_hash(password),
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def codec():
    codec = MagicMock()
    codec.issue.return_value = "signed-token"
    return codec


@pytest.fixture
def service(codec):
    svc = AuthService(codec=codec, logger=MagicMock())
    svc.users = AsyncMock()
    return svc


class TestRegister:

    @pytest.mark.asyncio
    async def test_public_registration_forces_user_role(self, service, codec):
        service.users.get_by_email.return_value = None
        service.users.insert.side_effect = lambda db, values: _user(role=values["role"])

        result = await service.register(
            None,
            RegisterRequest(name="Jane", email="Jane@Example.com", password="s3cret-pass", role="Admin"),
        )

        values = service.users.insert.await_args.args[1]
        assert values["role"] == "User"
        assert values["email"] == "jane@example.com"
        assert values["hashed_password"] != "s3cret-pass"
        assert result["token"] == "signed-token"
        assert result["role"] == "User"
        assert codec.issue.call_args.args[0].role == Role.USER

    @pytest.mark.asyncio
    async def test_admin_registration_keeps_role(self, service):
        service.users.get_by_email.return_value = None
        service.users.insert.side_effect = lambda db, values: _user(role=values["role"])

        result = await service.register(
            None,
            RegisterRequest(name="Tess", email="tess@example.com", password="s3cret-pass", role="Tester"),
            allow_role=True,
        )

        assert result["role"] == "Tester"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service):
        service.users.get_by_email.return_value = _user()

        with pytest.raises(ValidationFailed) as exc_info:
            await service.register(
                None,
                RegisterRequest(name="Jane", email="jane@example.com", password="s3cret-pass"),
            )

        assert exc_info.value.message == "User already exists"
        service.users.insert.assert_not_awaited()


class TestLogin:

    @pytest.mark.asyncio
    async def test_register_then_login_with_long_password(self, service):
        password = "correct-horse-battery-staple-" * 4
        stored = {}

        def insert(db, values):
            stored["user"] = _user(password="unused", **{k: v for k, v in values.items() if k != "role"})
            return stored["user"]

        service.users.get_by_email.return_value = None
        service.users.insert.side_effect = insert
        await service.register(None, RegisterRequest(name="Jane", email="jane@example.com", password=password))

        service.users.get_by_email.return_value = stored["user"]
        result = await service.login(None, LoginRequest(email="jane@example.com", password=password))

        assert len(password.encode("utf-8")) > 72
        assert result["token"] == "signed-token"

    @pytest.mark.asyncio
    async def test_valid_credentials(self, service):
        user = _user(role="Tester")
        service.users.get_by_email.return_value = user

        result = await service.login(None, LoginRequest(email="jane@example.com", password="s3cret-pass"))

        assert result["id"] == str(user.id)
        assert result["createdAt"].startswith("2026-01-01")
        assert result["token"] == "signed-token"

    @pytest.mark.asyncio
    async def test_wrong_password(self, service):
        service.users.get_by_email.return_value = _user()

        with pytest.raises(Unauthenticated) as exc_info:
            await service.login(None, LoginRequest(email="jane@example.com", password="nope-nope"))

        assert exc_info.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unknown_email(self, service):
        service.users.get_by_email.return_value = None

        with pytest.raises(Unauthenticated):
            await service.login(None, LoginRequest(email="ghost@example.com", password="whatever"))


class TestProfile:

    @pytest.mark.asyncio
    async def test_partial_update(self, service):
        user = _user()
        service.users.find_by_id.return_value = user
        service.users.update_by_id.return_value = _user(id=user.id, name="Janet")

        principal = SimpleNamespace(id=user.id, role=Role.USER)
        result = await service.update_profile(None, principal, ProfileUpdateRequest(name="Janet"))

        service.users.update_by_id.assert_awaited_once_with(None, user.id, {"name": "Janet"})
        assert result["name"] == "Janet"

    @pytest.mark.asyncio
    async def test_email_taken_by_someone_else(self, service):
        user = _user()
        service.users.find_by_id.return_value = user
        service.users.get_by_email.return_value = _user(email="taken@example.com")

        principal = SimpleNamespace(id=user.id, role=Role.USER)
        with pytest.raises(ValidationFailed):
            await service.update_profile(None, principal, ProfileUpdateRequest(email="taken@example.com"))

        service.users.update_by_id.assert_not_awaited()


class TestBootstrapAdmin:

    @pytest.mark.asyncio
    async def test_creates_admin_once(self, monkeypatch):
        repo = AsyncMock()
        repo.get_by_email.return_value = None
        repo.insert.return_value = _user(role="Admin")
        monkeypatch.setattr(bootstrap_admin, "user_repository", repo)
        config = SimpleNamespace(
            BOOTSTRAP_ADMIN_EMAIL=" Root@Example.com ",
            BOOTSTRAP_ADMIN_PASSWORD="change-me",
            BOOTSTRAP_ADMIN_NAME="Root",
        )

        await bootstrap_admin.ensure_bootstrap_admin_exists(None, config)

        values = repo.insert.await_args.args[1]
        assert values["email"] == "root@example.com"
        assert values["role"] == "Admin"

    @pytest.mark.asyncio
    async def test_existing_admin_is_left_alone(self, monkeypatch):
        repo = AsyncMock()
        repo.get_by_email.return_value = _user(role="Admin")
        monkeypatch.setattr(bootstrap_admin, "user_repository", repo)

        await bootstrap_admin.ensure_bootstrap_admin_exists(None)

        repo.insert.assert_not_awaited()
