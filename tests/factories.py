"""
Object factories standing in for ORM rows in service and API tests
"""

from datetime import datetime, timezone
from types import SimpleNamespace
import uuid

from bug_tracker.core.rbac import Principal, Role

CREATED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_principal(role: Role = Role.USER) -> Principal:
    return Principal(id=uuid.uuid4(), role=role)


def make_user(user_id=None, name="Jane"):
    return SimpleNamespace(id=user_id or uuid.uuid4(), name=name)


def make_comment(author_id, text="Looks reproducible", comment_id=None):
    return SimpleNamespace(
        id=comment_id or uuid.uuid4(),
        text=text,
        created_by_id=author_id,
        created_by=make_user(author_id),
        created_at=CREATED_AT,
        updated_at=CREATED_AT,
    )


def make_bug(owner_id, **overrides):
    values = dict(
        id=uuid.uuid4(),
        title="Login button unresponsive",
        description="Nothing happens on click",
        priority="High",
        status="Open",
        created_by_id=owner_id,
        created_by=make_user(owner_id),
        assigned_to_id=None,
        assigned_to=None,
        comments=[],
        created_at=CREATED_AT,
        updated_at=CREATED_AT,
    )
    values.update(overrides)
    return SimpleNamespace(**values)
