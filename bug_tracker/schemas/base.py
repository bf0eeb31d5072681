"""
Base Pydantic Schemas
Common schemas and base classes for request/response models
"""

import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema for request bodies: camelCase input, unknown fields rejected"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        extra="forbid",
    )


class ResponseSchema(BaseModel):
    """Base schema for responses: read from ORM objects, serialized as camelCase"""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class Pagination(ResponseSchema):
    """Page window of a list response"""
    page: int = Field(..., description="Current page (1-based)")
    limit: int = Field(..., description="Page size")
    total_pages: int = Field(..., description="Number of pages for the current filter")


class ApiResponse(ResponseSchema):
    """Response envelope shared by every endpoint"""
    success: bool = Field(True, description="Whether the request succeeded")
    message: Optional[str] = Field(None, description="Human readable outcome")
    count: Optional[int] = Field(None, description="Number of items in data")
    total: Optional[int] = Field(None, description="Number of items matching the filter")
    pagination: Optional[Pagination] = Field(None, description="Page window")
    data: Optional[Any] = Field(None, description="Payload")


class ErrorResponse(BaseModel):
    """Error envelope"""
    success: bool = Field(False, description="Always false")
    message: str = Field(..., description="Error message")
    errors: Optional[List[dict]] = Field(None, description="Validation error details")
    stack: Optional[str] = Field(None, description="Stack trace, debug mode only")


# Validation helpers
_EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def validate_email(v: Any) -> str:
    """Validate email format"""
    if not isinstance(v, str):
        raise ValueError("Email must be a string")

    v = v.strip()
    if not _EMAIL_PATTERN.match(v):
        raise ValueError("Please provide a valid email")

    return v.lower()


def validate_non_empty_string(v: Any) -> str:
    """Validate non-empty string"""
    if not isinstance(v, str):
        raise ValueError("Must be a string")
    if not v.strip():
        raise ValueError("String cannot be empty")
    return v.strip()
