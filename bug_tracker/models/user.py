"""
User Model
Identity records used for authentication and ownership
"""

from sqlalchemy import Column, String

from bug_tracker.core.rbac import Role
from bug_tracker.models.base import BaseModel


class User(BaseModel):
    """User model for authentication and role assignment"""
    __tablename__ = "users"

    name = Column(String(50), nullable=False)
    email = Column(String(254), nullable=False, unique=True, index=True)
    hashed_password = Column(String(128), nullable=False)
    role = Column(String(20), nullable=False, default=Role.USER.value, index=True)

    def __repr__(self):
        return f"<User(email='{self.email}', role='{self.role}')>"
