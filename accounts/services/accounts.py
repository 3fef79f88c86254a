"""Account service: create, look up and verify users, reporting every outcome as a result."""

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from accounts.core.database import Database
from accounts.core.exceptions import (
    AccountsError,
    DuplicateError,
    RepositoryError,
    StoreTimeoutError,
    ValidationError,
)
from accounts.core.security import PasswordHasher
from accounts.schemas.auth import VerifyOutcome
from accounts.schemas.user import Role, UserRecord
from accounts.services.user_repository import UserRepository

if TYPE_CHECKING:
    from accounts.core.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SEC = 10.0
DEFAULT_MAX_WORKERS = 8

# A commit already under way when the wait expires still completes.
CREATE_TIMEOUT_HINT = " The user may have been created; look it up before retrying."


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of an account operation: a value on success, an AccountsError on failure."""

    value: T | None = None
    error: AccountsError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T | None:
        """Return the value, or raise the error."""
        if self.error is not None:
            raise self.error
        return self.value


class AccountService:
    """
    Entry point for callers (request handlers, CLI scripts).

    Each operation runs on a worker thread with an overall deadline and
    returns an OperationResult; no exception escapes. Unexpected faults are
    reported as RepositoryError. Outcomes are
    logged here, never in the repository.
    """

    def __init__(
        self,
        repository: UserRepository,
        hasher: PasswordHasher,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._repository = repository
        self._hasher = hasher
        self._timeout_sec = timeout_sec
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="accounts",
        )

    @classmethod
    def from_settings(cls, settings: "Settings", database: Database) -> "AccountService":
        """Wire hasher, repository and service from settings around an opened Database."""
        hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
        return cls(
            UserRepository(database, hasher),
            hasher,
            timeout_sec=settings.OPERATION_TIMEOUT_SEC,
            max_workers=settings.WORKER_THREADS,
        )

    def create_user(
        self,
        first_name: str,
        last_name: str,
        username: str,
        email: str,
        password: str,
        role: Role | str | None = None,
        data: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> OperationResult[UserRecord]:
        """Create a user; the password is hashed before the row is written."""
        result = self._run(
            "create_user",
            lambda deadline: self._repository.create(
                first_name,
                last_name,
                username,
                email,
                password,
                role=role,
                data=data,
                deadline=deadline,
            ),
            timeout,
            timeout_hint=CREATE_TIMEOUT_HINT,
        )
        if result.ok:
            user = result.value
            logger.info(
                "User created",
                extra={"user_id": user.id, "username": user.username, "role": user.role.value},
            )
        else:
            self._log_failure("create_user", result.error)
        return result

    def find_user_by_email(
        self, email: str, timeout: float | None = None
    ) -> OperationResult[UserRecord | None]:
        """Look up a user by email. A missing user is a successful result with value None."""
        result = self._run(
            "find_user_by_email",
            lambda deadline: self._repository.find_by_email(email, deadline=deadline),
            timeout,
        )
        self._log_lookup("find_user_by_email", result)
        return result

    def find_user_by_username(
        self, username: str, timeout: float | None = None
    ) -> OperationResult[UserRecord | None]:
        """Look up a user by username. A missing user is a successful result with value None."""
        result = self._run(
            "find_user_by_username",
            lambda deadline: self._repository.find_by_username(username, deadline=deadline),
            timeout,
        )
        self._log_lookup("find_user_by_username", result)
        return result

    def verify_credentials(
        self, email: str, password: str, timeout: float | None = None
    ) -> OperationResult[VerifyOutcome]:
        """
        Check an email/password pair.

        Returns VALID, INVALID_PASSWORD or USER_NOT_FOUND. When the user does
        not exist a dummy bcrypt comparison still runs, so both failure
        outcomes take about as long as a real check.
        """

        def verify(deadline: float | None) -> VerifyOutcome:
            user = self._repository.find_by_email(email, deadline=deadline)
            if user is None:
                self._hasher.dummy_verify(password)
                return VerifyOutcome.USER_NOT_FOUND
            if self._hasher.verify(password, user.password_hash):
                return VerifyOutcome.VALID
            return VerifyOutcome.INVALID_PASSWORD

        result = self._run("verify_credentials", verify, timeout)
        if result.ok:
            logger.info("Credentials checked", extra={"outcome": result.value.value})
        else:
            self._log_failure("verify_credentials", result.error)
        return result

    def close(self) -> None:
        """Stop the worker pool; queued operations are cancelled."""
        self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> "AccountService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _run(
        self,
        operation: str,
        call: Callable[[float | None], T],
        timeout: float | None,
        timeout_hint: str = "",
    ) -> OperationResult[T]:
        timeout_sec = self._timeout_sec if timeout is None else timeout
        deadline = time.monotonic() + timeout_sec
        try:
            future = self._executor.submit(call, deadline)
            return OperationResult(value=future.result(timeout=timeout_sec))
        except FutureTimeoutError as e:
            # The worker keeps running but the repository refuses to commit past the deadline
            future.cancel()
            return OperationResult(
                error=StoreTimeoutError(
                    f"{operation} did not finish within {timeout_sec:g}s.{timeout_hint}", cause=e
                )
            )
        except AccountsError as e:
            return OperationResult(error=e)
        except Exception as e:
            return OperationResult(error=RepositoryError(f"{operation} failed.", cause=e))

    @staticmethod
    def _log_lookup(operation: str, result: OperationResult[UserRecord | None]) -> None:
        if not result.ok:
            AccountService._log_failure(operation, result.error)
        elif result.value is None:
            logger.info("User not found", extra={"operation": operation})
        else:
            logger.info(
                "User found",
                extra={"operation": operation, "user_id": result.value.id},
            )

    @staticmethod
    def _log_failure(operation: str, error: AccountsError) -> None:
        extra: dict[str, str] = {
            "operation": operation,
            "error_type": type(error).__name__,
            "reason": error.message[:500],
        }
        if isinstance(error, ValidationError):
            logger.info("Rejected invalid input", extra={**extra, "field": error.field})
        elif isinstance(error, DuplicateError):
            logger.warning("Duplicate user", extra={**extra, "field": error.field})
        else:
            logger.error("Account operation failed", extra=extra)
