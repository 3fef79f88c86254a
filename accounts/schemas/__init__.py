"""Pydantic schemas for account input and output."""

from accounts.schemas.auth import Credentials, VerifyOutcome
from accounts.schemas.user import Role, UserCreate, UserRecord, parse_user_create

__all__ = [
    "Credentials",
    "Role",
    "UserCreate",
    "UserRecord",
    "VerifyOutcome",
    "parse_user_create",
]
