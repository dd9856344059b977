"""Common Pydantic schemas shared across the API."""

from typing import Any

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """One failed field in a request validation error."""

    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Body returned by every exception handler."""

    error_code: str = Field(..., examples=["PROFILE_NOT_FOUND"])
    message: str
    details: dict[str, Any] | list[FieldError] | None = None
