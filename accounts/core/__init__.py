"""Core configuration, database, errors and password hashing."""

from accounts.core.config import Settings, get_settings
from accounts.core.database import Database
from accounts.core.security import PasswordHasher

__all__ = ["Database", "PasswordHasher", "Settings", "get_settings"]
