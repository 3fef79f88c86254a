"""Tests for accounts.services.accounts: result reporting, credential checks, deadlines and logging."""

import time
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

from accounts.core.database import Database
from accounts.core.exceptions import (
    DuplicateError,
    HashingError,
    RepositoryError,
    StoreTimeoutError,
    StoreUnavailableError,
    ValidationError,
)
from accounts.core.security import PasswordHasher
from accounts.models import Base
from accounts.schemas.auth import VerifyOutcome
from accounts.schemas.user import Role
from accounts.services.accounts import AccountService, OperationResult
from accounts.services.user_repository import UserRepository

TEST_ROUNDS = 4
LOGGER_NAME = "accounts.services.accounts"


def _service(database: Database, **kwargs: object) -> AccountService:
    """AccountService over a real repository and a low-cost hasher."""
    hasher = PasswordHasher(rounds=TEST_ROUNDS)
    return AccountService(UserRepository(database, hasher), hasher, **kwargs)


class TestAccountScenario(unittest.TestCase):
    """End-to-end create / find / verify through the service on in-memory SQLite."""

    def setUp(self) -> None:
        self.database = Database("sqlite://")
        Base.metadata.create_all(self.database.engine)
        self.service = _service(self.database)

    def tearDown(self) -> None:
        self.service.close()
        self.database.dispose()

    def test_ann_scenario(self) -> None:
        created = self.service.create_user("Ann", "Lee", "ann", "ann@x.com", "secret123")
        self.assertTrue(created.ok)
        self.assertEqual(created.value.role, Role.USER)

        self.assertEqual(
            self.service.verify_credentials("ann@x.com", "secret123").value, VerifyOutcome.VALID
        )
        self.assertEqual(
            self.service.verify_credentials("ann@x.com", "wrong").value,
            VerifyOutcome.INVALID_PASSWORD,
        )
        self.assertEqual(
            self.service.verify_credentials("nobody@x.com", "secret123").value,
            VerifyOutcome.USER_NOT_FOUND,
        )

    def test_lookups(self) -> None:
        self.service.create_user("Ann", "Lee", "ann", "ann@x.com", "secret123")
        by_email = self.service.find_user_by_email("ann@x.com")
        by_username = self.service.find_user_by_username("ann")
        self.assertTrue(by_email.ok)
        self.assertEqual(by_email.value.id, by_username.value.id)
        self.assertNotEqual(by_email.value.password_hash, "secret123")

    def test_missing_user_is_ok_with_none(self) -> None:
        result = self.service.find_user_by_username("nobody")
        self.assertTrue(result.ok)
        self.assertIsNone(result.value)
        self.assertIsNone(self.service.find_user_by_email("nobody@x.com").unwrap())

    def test_duplicate_email_reported_not_raised(self) -> None:
        self.service.create_user("Ann", "Lee", "ann", "ann@x.com", "secret123")
        with self.assertLogs(LOGGER_NAME, level="WARNING") as logs:
            result = self.service.create_user("Ann", "Lee", "ann2", "ann@x.com", "secret123")
        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, DuplicateError)
        self.assertEqual(result.error.field, "email")
        self.assertEqual(logs.records[0].levelname, "WARNING")
        self.assertIsNone(self.service.find_user_by_username("ann2").value)

    def test_duplicate_username_reported(self) -> None:
        self.service.create_user("Ann", "Lee", "ann", "ann@x.com", "secret123")
        result = self.service.create_user("Ann", "Lee", "ann", "ann2@x.com", "secret123")
        self.assertEqual(result.error.field, "username")

    def test_validation_error_logged_at_info(self) -> None:
        with self.assertLogs(LOGGER_NAME, level="INFO") as logs:
            result = self.service.create_user("Ann", "", "ann", "ann@x.com", "secret123")
        self.assertIsInstance(result.error, ValidationError)
        self.assertEqual(result.error.field, "last_name")
        self.assertEqual([r.levelname for r in logs.records], ["INFO"])

    def test_create_log_never_contains_password_or_hash(self) -> None:
        with self.assertLogs(LOGGER_NAME, level="INFO") as logs:
            result = self.service.create_user("Ann", "Lee", "ann", "ann@x.com", "secret123")
        record = logs.records[0]
        self.assertEqual(record.getMessage(), "User created")
        self.assertEqual(record.user_id, result.value.id)
        for value in vars(record).values():
            self.assertNotEqual(value, "secret123")
            self.assertNotEqual(value, result.value.password_hash)

    def test_unwrap_raises_error(self) -> None:
        self.service.create_user("Ann", "Lee", "ann", "ann@x.com", "secret123")
        result = self.service.create_user("Ann", "Lee", "ann", "ann@x.com", "secret123")
        with self.assertRaises(DuplicateError):
            result.unwrap()


class TestVerifyCredentialsWithMocks(unittest.TestCase):
    """verify_credentials control flow with a mocked repository and hasher."""

    def setUp(self) -> None:
        self.repository = MagicMock()
        self.hasher = MagicMock()
        self.service = AccountService(self.repository, self.hasher)

    def tearDown(self) -> None:
        self.service.close()

    def test_unknown_user_runs_dummy_comparison(self) -> None:
        self.repository.find_by_email.return_value = None
        result = self.service.verify_credentials("nobody@x.com", "secret123")
        self.assertEqual(result.value, VerifyOutcome.USER_NOT_FOUND)
        self.hasher.dummy_verify.assert_called_once_with("secret123")
        self.hasher.verify.assert_not_called()

    def test_known_user_uses_stored_hash(self) -> None:
        self.repository.find_by_email.return_value = MagicMock(password_hash="$2b$04$stored")
        self.hasher.verify.return_value = False
        result = self.service.verify_credentials("ann@x.com", "wrong")
        self.assertEqual(result.value, VerifyOutcome.INVALID_PASSWORD)
        self.hasher.verify.assert_called_once_with("wrong", "$2b$04$stored")
        self.hasher.dummy_verify.assert_not_called()

    def test_malformed_stored_hash_is_error_result(self) -> None:
        self.repository.find_by_email.return_value = MagicMock(password_hash="garbage")
        self.hasher.verify.side_effect = HashingError("Stored password hash is malformed.")
        with self.assertLogs(LOGGER_NAME, level="ERROR"):
            result = self.service.verify_credentials("ann@x.com", "secret123")
        self.assertIsInstance(result.error, HashingError)
        self.assertIsNone(result.value)

    def test_store_unavailable_is_error_result(self) -> None:
        self.repository.find_by_email.side_effect = StoreUnavailableError("down")
        with self.assertLogs(LOGGER_NAME, level="ERROR") as logs:
            result = self.service.find_user_by_email("ann@x.com")
        self.assertIsInstance(result.error, StoreUnavailableError)
        self.assertEqual(logs.records[0].error_type, "StoreUnavailableError")

    def test_deadline_passed_to_repository(self) -> None:
        self.repository.find_by_username.return_value = None
        before = time.monotonic()
        self.service.find_user_by_username("ann", timeout=5.0)
        deadline = self.repository.find_by_username.call_args.kwargs["deadline"]
        self.assertGreaterEqual(deadline, before + 5.0)


class TestTimeout(unittest.TestCase):
    """A slow store call is abandoned and reported as StoreTimeoutError."""

    def test_slow_lookup_times_out(self) -> None:
        repository = MagicMock()
        repository.find_by_email.side_effect = lambda email, deadline=None: time.sleep(0.5)
        service = AccountService(repository, MagicMock(), timeout_sec=0.05)
        try:
            with self.assertLogs(LOGGER_NAME, level="ERROR"):
                result = service.find_user_by_email("ann@x.com")
        finally:
            service.close()
        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, StoreTimeoutError)

    def test_create_timeout_tells_caller_to_look_up_first(self) -> None:
        repository = MagicMock()
        repository.create.side_effect = lambda *args, **kwargs: time.sleep(0.5)
        service = AccountService(repository, MagicMock(), timeout_sec=0.05)
        try:
            result = service.create_user("Ann", "Lee", "ann", "ann@x.com", "secret123")
        finally:
            service.close()
        self.assertIsInstance(result.error, StoreTimeoutError)
        self.assertIn("look it up before retrying", result.error.message)

    def test_per_call_timeout_overrides_default(self) -> None:
        repository = MagicMock()
        repository.find_by_username.side_effect = lambda username, deadline=None: time.sleep(0.5)
        service = AccountService(repository, MagicMock(), timeout_sec=30.0)
        try:
            result = service.find_user_by_username("ann", timeout=0.05)
        finally:
            service.close()
        self.assertIsInstance(result.error, StoreTimeoutError)


class TestUnexpectedFaults(unittest.TestCase):
    """Faults outside the account error taxonomy still come back as error results."""

    def test_unexpected_exception_becomes_repository_error(self) -> None:
        repository = MagicMock()
        repository.create.side_effect = SystemError("driver returned NULL")
        service = AccountService(repository, MagicMock())
        try:
            with self.assertLogs(LOGGER_NAME, level="ERROR") as logs:
                result = service.create_user("Ann", "Lee", "ann", "ann@x.com", "secret123")
        finally:
            service.close()
        self.assertIsInstance(result.error, RepositoryError)
        self.assertIsInstance(result.error.cause, SystemError)
        self.assertEqual(logs.records[0].levelname, "ERROR")

    def test_calls_after_close_return_error(self) -> None:
        service = AccountService(MagicMock(), MagicMock())
        service.close()
        with self.assertLogs(LOGGER_NAME, level="ERROR"):
            result = service.find_user_by_email("ann@x.com")
        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, RepositoryError)
        self.assertIsInstance(result.error.cause, RuntimeError)


class TestConcurrentService(unittest.TestCase):
    """Many concurrent service calls on in-memory SQLite stay fail-soft and keep usernames unique."""

    CALLS = 32

    def test_concurrent_creates_same_username(self) -> None:
        database = Database("sqlite://")
        Base.metadata.create_all(database.engine)
        service = _service(database)
        try:
            with ThreadPoolExecutor(max_workers=self.CALLS) as callers:
                results = list(
                    callers.map(
                        lambda n: service.create_user(
                            "Ann", "Lee", "ann", f"ann{n}@x.com", "secret123"
                        ),
                        range(self.CALLS),
                    )
                )
            created = [r for r in results if r.ok]
            self.assertEqual(len(created), 1)
            for result in results:
                if not result.ok:
                    self.assertIsInstance(result.error, DuplicateError)
                    self.assertEqual(result.error.field, "username")
            self.assertEqual(service.find_user_by_username("ann").value.id, created[0].value.id)
        finally:
            service.close()
            database.dispose()


class TestOperationResult(unittest.TestCase):
    """OperationResult reports ok only without an error."""

    def test_ok_and_error(self) -> None:
        self.assertTrue(OperationResult(value=None).ok)
        self.assertFalse(OperationResult(error=StoreUnavailableError("down")).ok)


class TestFromSettings(unittest.TestCase):
    """from_settings wires bcrypt cost, timeout and worker count."""

    def test_wiring(self) -> None:
        settings = MagicMock()
        settings.BCRYPT_ROUNDS = 6
        settings.OPERATION_TIMEOUT_SEC = 3.0
        settings.WORKER_THREADS = 2
        database = MagicMock()
        service = AccountService.from_settings(settings, database)
        try:
            self.assertEqual(service._hasher.rounds, 6)
            self.assertEqual(service._timeout_sec, 3.0)
            self.assertIs(service._repository._database, database)
        finally:
            service.close()


if __name__ == "__main__":
    unittest.main()
