"""
Bug Schemas
Pydantic models for bug and comment requests and responses
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from pydantic import Field, field_validator

from bug_tracker.models.bug import BugPriority, BugStatus
from bug_tracker.schemas.base import BaseSchema, ResponseSchema


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class BugCreate(BaseSchema):
    """Bug creation request"""
    title: str = Field(..., max_length=100, description="Short summary")
    description: Optional[str] = Field(None, max_length=1000, description="Details")
    priority: BugPriority = Field(BugPriority.MEDIUM.value, description="Low, Medium or High")
    status: BugStatus = Field(BugStatus.OPEN.value, description="Open, In Progress or Closed")
    assigned_to_id: Optional[UUID] = Field(None, alias="assignedTo", description="Assignee user ID")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v:
            raise ValueError("Bug title is required")
        return v

    @field_validator("assigned_to_id", mode="before")
    @classmethod
    def blank_assignee(cls, v):
        return _blank_to_none(v)


class BugUpdate(BaseSchema):
    """Partial bug update; only the fields sent are changed"""
    title: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    priority: Optional[BugPriority] = None
    status: Optional[BugStatus] = None
    assigned_to_id: Optional[UUID] = Field(None, alias="assignedTo")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v:
            raise ValueError("Bug title is required")
        return v

    @field_validator("priority", "status")
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("assigned_to_id", mode="before")
    @classmethod
    def blank_assignee(cls, v):
        return _blank_to_none(v)


class CommentCreate(BaseSchema):
    """Comment creation request"""
    text: str = Field(..., max_length=500, description="Comment body")

    @field_validator("text")
    @classmethod
    def validate_text(cls, v):
        if not v:
            raise ValueError("Comment text is required")
        return v


class UserSummary(ResponseSchema):
    """Referenced user, rendered with its display name"""
    id: UUID
    name: str


class CommentResponse(ResponseSchema):
    id: UUID
    text: str
    created_by: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


class BugResponse(ResponseSchema):
    id: UUID
    title: str
    description: Optional[str] = None
    priority: str
    status: str
    created_by: Optional[UserSummary] = None
    assigned_to: Optional[UserSummary] = None
    comments: List[CommentResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


def serialize_bug(bug: Any, fields: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """
    Render a bug as a JSON-ready dict, applying an optional projection.

    Plain names select fields (``id`` is always kept); names with a leading
    ``-`` drop fields. A projection made only of ``-`` names keeps everything
    else.
    """
    data = BugResponse.model_validate(bug).model_dump(mode="json", by_alias=True)
    if not fields:
        return data

    included = {name for name in fields if not name.startswith("-")}
    excluded = {name[1:] for name in fields if name.startswith("-")}
    keep = {"id", *included} if included else set(data)
    return {key: value for key, value in data.items() if key in keep and key not in excluded}


def serialize_comment(comment: Any) -> Dict[str, Any]:
    return CommentResponse.model_validate(comment).model_dump(mode="json", by_alias=True)
