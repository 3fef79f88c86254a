"""SQLAlchemy declarative Base for account tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base; Base.metadata holds the users table."""
