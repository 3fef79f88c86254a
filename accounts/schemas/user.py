"""Pydantic schemas for user accounts: creation input and the record returned to callers."""

import json
from datetime import datetime
from enum import Enum
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from accounts.core.exceptions import ValidationError
from accounts.core.security import USERNAME_MAX_LEN, USERNAME_MIN_LEN

# first_name, last_name and email share the username column width.
TEXT_FIELD_MAX_LEN = USERNAME_MAX_LEN


class Role(str, Enum):
    """Account role. Stored as its value ('user' or 'admin')."""

    USER = "user"
    ADMIN = "admin"


def _validate_text(value: str) -> str:
    """Strip surrounding whitespace and require a non-empty value."""
    if not isinstance(value, str):
        raise ValueError("must be a string")
    stripped = value.strip()
    if not stripped:
        raise ValueError("must be non-empty")
    return stripped


def _validate_document(value: dict[str, Any] | None) -> dict[str, Any] | None:
    """Require the data document to be storable as JSON."""
    if value is None:
        return None
    try:
        json.dumps(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"must be JSON-serializable ({e})") from e
    return value


class UserCreate(BaseModel):
    """Validated input for creating a user. Role defaults to 'user' when not supplied."""

    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(..., max_length=TEXT_FIELD_MAX_LEN, description="Given name")
    last_name: str = Field(..., max_length=TEXT_FIELD_MAX_LEN, description="Family name")
    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        description="Unique login name",
    )
    email: str = Field(..., max_length=TEXT_FIELD_MAX_LEN, description="Unique email address")
    password: str = Field(
        ...,
        min_length=1,
        repr=False,
        description="Plain password; hashed before it is stored",
    )
    role: Role = Field(default=Role.USER, description="user or admin")
    data: dict[str, Any] | None = Field(default=None, description="Free-form JSON document")

    @field_validator("first_name", "last_name", "username", "email", mode="before")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _validate_text(v)

    @field_validator("role", mode="before")
    @classmethod
    def default_role(cls, v: Role | str | None) -> Role | str:
        return Role.USER if v is None else v

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        return _validate_document(v)


def parse_user_create(**fields: Any) -> UserCreate:
    """
    Build a UserCreate, converting pydantic errors to ValidationError.

    The raised error names the first offending field.
    """
    try:
        return UserCreate(**fields)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else "unknown"
        raise ValidationError(field, f"Invalid value for '{field}': {first['msg']}") from e


class UserRecord(BaseModel):
    """
    A persisted user as handed to callers (a detached, immutable copy).

    password_hash is excluded from model_dump() and repr; use to_internal()
    when the storage-internal representation is needed.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    first_name: str
    last_name: str
    username: str
    email: str
    password_hash: str = Field(exclude=True, repr=False)
    role: Role = Role.USER
    data: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_public(self) -> dict[str, Any]:
        """Authentication-safe representation (no password hash)."""
        return self.model_dump(mode="json")

    def to_internal(self) -> dict[str, Any]:
        """Storage-internal representation, including password_hash."""
        internal = self.model_dump(mode="json")
        internal["password_hash"] = self.password_hash
        return internal
