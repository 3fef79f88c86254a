"""Schemas for credential verification."""

from enum import Enum

from pydantic import BaseModel, Field


class VerifyOutcome(str, Enum):
    """
    Result tag of a credential check.

    Callers that face end users should present INVALID_PASSWORD and
    USER_NOT_FOUND with the same message.
    """

    VALID = "valid"
    INVALID_PASSWORD = "invalid_password"
    USER_NOT_FOUND = "user_not_found"


class Credentials(BaseModel):
    """Email and password submitted for verification."""

    email: str = Field(..., min_length=1, max_length=255, description="Account email")
    password: str = Field(..., min_length=1, max_length=128, repr=False, description="Password")
