"""User repository: create and look up user accounts in the relational store."""

import time
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from accounts.core.database import Database
from accounts.core.exceptions import (
    DuplicateError,
    RepositoryError,
    StoreTimeoutError,
    StoreUnavailableError,
)
from accounts.core.security import PasswordHasher
from accounts.models import User
from accounts.schemas.user import Role, UserRecord, parse_user_create

UNIQUE_FIELDS = ("username", "email")


def _check_deadline(deadline: float | None, operation: str) -> None:
    """Raise StoreTimeoutError once the time.monotonic() deadline has passed."""
    if deadline is not None and time.monotonic() >= deadline:
        raise StoreTimeoutError(f"Deadline exceeded during {operation}.")


def _duplicate_field_from_message(exc: IntegrityError) -> str | None:
    """
    Read the violated unique field from the driver message.

    sqlite: 'UNIQUE constraint failed: users.email'
    postgres: 'duplicate key value violates unique constraint "ix_users_email"'
    """
    text = str(exc.orig).lower()
    for field in UNIQUE_FIELDS:
        if f"users.{field}" in text or f"ix_users_{field}" in text or f"({field})=" in text:
            return field
    return None


def _translate_store_error(exc: SQLAlchemyError, operation: str) -> RepositoryError:
    if isinstance(exc, PoolTimeoutError):
        return StoreTimeoutError(
            f"Timed out waiting for a database connection during {operation}.", cause=exc
        )
    if isinstance(exc, (OperationalError, InterfaceError)):
        return StoreUnavailableError(f"Database unavailable during {operation}.", cause=exc)
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return StoreUnavailableError(f"Database connection lost during {operation}.", cause=exc)
    return RepositoryError(f"Database error during {operation}.", cause=exc)


class UserRepository:
    """
    Sole owner of persisted user rows.

    Every call opens its own session from the pool and returns detached
    UserRecord copies. Uniqueness of username and email is left to the
    store's unique indexes, so concurrent creates cannot both succeed.
    """

    def __init__(self, database: Database, hasher: PasswordHasher) -> None:
        self._database = database
        self._hasher = hasher

    def create(
        self,
        first_name: str,
        last_name: str,
        username: str,
        email: str,
        password: str,
        role: Role | str | None = None,
        data: dict[str, Any] | None = None,
        deadline: float | None = None,
    ) -> UserRecord:
        """
        Validate, hash the password, and insert one user.

        Raises ValidationError, HashingError, DuplicateError (nothing persisted),
        StoreUnavailableError or StoreTimeoutError.

        The deadline is checked after hashing and again before commit. A commit
        that starts in time but finishes after the deadline still persists the
        row, even though a caller that stopped waiting has been told it timed out.
        """
        candidate = parse_user_create(
            first_name=first_name,
            last_name=last_name,
            username=username,
            email=email,
            password=password,
            role=role,
            data=data,
        )
        password_hash = self._hasher.hash(candidate.password)
        _check_deadline(deadline, "create")

        user = User(
            first_name=candidate.first_name,
            last_name=candidate.last_name,
            username=candidate.username,
            email=candidate.email,
            password_hash=password_hash,
            role=candidate.role,
            data=candidate.data,
        )
        try:
            with self._database.session() as db:
                try:
                    db.add(user)
                    db.flush()
                    # Past the deadline the caller has already given up; roll back instead of committing
                    _check_deadline(deadline, "create")
                    db.commit()
                except IntegrityError as e:
                    db.rollback()
                    field = _duplicate_field_from_message(e) or self._find_taken_field(
                        db, candidate.username, candidate.email
                    )
                    if field is None:
                        raise RepositoryError("Insert rejected by a database constraint.", cause=e) from e
                    raise DuplicateError(field, cause=e) from e
                except StoreTimeoutError:
                    db.rollback()
                    raise
                db.refresh(user)
                return UserRecord.model_validate(user)
        except SQLAlchemyError as e:
            raise _translate_store_error(e, "create") from e

    def find_by_email(self, email: str, deadline: float | None = None) -> UserRecord | None:
        """Exact-match lookup by email. Returns None when no user has that email."""
        return self._find_one(User.email == email, "find_by_email", deadline)

    def find_by_username(self, username: str, deadline: float | None = None) -> UserRecord | None:
        """Exact-match lookup by username. Returns None when no user has that username."""
        return self._find_one(User.username == username, "find_by_username", deadline)

    def _find_one(self, criterion: Any, operation: str, deadline: float | None) -> UserRecord | None:
        _check_deadline(deadline, operation)
        try:
            with self._database.session() as db:
                user = db.execute(select(User).where(criterion)).scalar_one_or_none()
                return UserRecord.model_validate(user) if user is not None else None
        except SQLAlchemyError as e:
            raise _translate_store_error(e, operation) from e

    @staticmethod
    def _find_taken_field(db: Session, username: str, email: str) -> str | None:
        if db.execute(select(User.id).where(User.email == email)).first() is not None:
            return "email"
        if db.execute(select(User.id).where(User.username == username)).first() is not None:
            return "username"
        return None
