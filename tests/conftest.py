"""
Shared fixtures: mocked repositories and an API client wired to them
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from bug_tracker.core.database import get_db
from bug_tracker.core.deps import principal_resolver
from bug_tracker.core.rbac import Principal
from bug_tracker.core.security import token_codec
from bug_tracker.main import app
from bug_tracker.services.bug import bug_service


@pytest.fixture
def bug_repo(monkeypatch):
    repo = AsyncMock()
    monkeypatch.setattr(bug_service, "repository", repo)
    return repo


@pytest.fixture
def user_repo(monkeypatch):
    repo = AsyncMock()
    monkeypatch.setattr(bug_service, "users", repo)
    return repo


@pytest.fixture
def identities(monkeypatch):
    store = AsyncMock()
    store.find_principal_by_id.return_value = None
    monkeypatch.setattr(principal_resolver, "identities", store)
    return store


@pytest.fixture
def client():
    async def override_get_db():
        yield AsyncMock()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(identities):
    """Issue a token for a principal the identity store knows about"""
    known = {}
    identities.find_principal_by_id.side_effect = lambda db, user_id: known.get(user_id)

    def _login(principal: Principal) -> dict:
        known[principal.id] = principal
        return {"Authorization": f"Bearer {token_codec.issue(principal)}"}

    return _login
