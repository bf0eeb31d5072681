"""
Bug Model
Tracked issues and their embedded comment thread
"""

import enum

from sqlalchemy import Column, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from bug_tracker.models.base import BaseModel


class BugPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class BugStatus(str, enum.Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    CLOSED = "Closed"


class Bug(BaseModel):
    """A reported bug. ``created_by_id`` is the owner and never changes."""
    __tablename__ = "bugs"

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(20), nullable=False, default=BugPriority.MEDIUM.value)
    status = Column(String(20), nullable=False, default=BugStatus.OPEN.value)

    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    assigned_to_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)

    created_by = relationship("User", foreign_keys=[created_by_id], lazy="selectin")
    assigned_to = relationship("User", foreign_keys=[assigned_to_id], lazy="selectin")
    comments = relationship(
        "Comment",
        back_populates="bug",
        order_by="Comment.created_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_bug_status_priority", "status", "priority"),
    )

    def __repr__(self):
        return f"<Bug(title='{self.title}', status='{self.status}')>"


class Comment(BaseModel):
    """Comment on a bug"""
    __tablename__ = "comments"

    bug_id = Column(Uuid(as_uuid=True), ForeignKey("bugs.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(String(500), nullable=False)
    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    bug = relationship("Bug", back_populates="comments")
    created_by = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<Comment(bug_id='{self.bug_id}', created_by_id='{self.created_by_id}')>"
