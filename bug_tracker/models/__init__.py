"""
SQLAlchemy Models Package
Bug Tracker Database Models
"""

from bug_tracker.models.user import User
from bug_tracker.models.bug import Bug, BugPriority, BugStatus, Comment

__all__ = [
    "User",
    "Bug",
    "BugPriority",
    "BugStatus",
    "Comment",
]
