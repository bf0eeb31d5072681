"""
Error taxonomy shared by services, dependencies and the HTTP boundary.

Every API-visible failure is a ``BugTrackerError`` carrying an ``ErrorKind``.
Translation of kinds into HTTP status codes happens only in
``bug_tracker.api.error_handlers``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    UNEXPECTED = "unexpected"


class BugTrackerError(Exception):
    """Base class for failures that are reported to the client."""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, *, errors: Optional[list[dict[str, Any]]] = None) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class Unauthenticated(BugTrackerError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Not authorized"


class Forbidden(BugTrackerError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Not authorized to access this resource"


class NotFound(BugTrackerError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class ValidationFailed(BugTrackerError):
    kind = ErrorKind.VALIDATION_FAILED
    default_message = "Invalid request"


class Unexpected(BugTrackerError):
    kind = ErrorKind.UNEXPECTED


class TokenError(Exception):
    """Raised by the token codec; never reaches the client directly."""


class ExpiredToken(TokenError):
    pass


class MalformedToken(TokenError):
    pass
