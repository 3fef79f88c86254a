"""Error taxonomy for account operations."""


class AccountsError(Exception):
    """Base for every failure an account operation can report."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class RepositoryError(AccountsError):
    """Raised when the user repository cannot complete an operation."""


class ValidationError(RepositoryError):
    """Input fails the user schema constraints (caller's fault)."""

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"Invalid value for '{field}'.")


class DuplicateError(RepositoryError):
    """A unique field (username or email) is already taken."""

    def __init__(self, field: str, cause: Exception | None = None) -> None:
        self.field = field
        super().__init__(f"A user with this {field} already exists.", cause=cause)


class StoreUnavailableError(RepositoryError):
    """The database is unreachable or rejected the connection."""


class StoreTimeoutError(RepositoryError):
    """The operation did not finish before its deadline."""


class HashingError(AccountsError):
    """The password hashing or verification transform could not run."""
