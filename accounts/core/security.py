"""Password hashing and verification for account credentials."""

import bcrypt

from accounts.core.exceptions import HashingError

# Bcrypt cost (rounds); 10 keeps create/verify fast enough for interactive logins.
BCRYPT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of the password.
BCRYPT_MAX_BYTES = 72

# Username limits for the schema; password limits are the operator CLI policy.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


def _encode(plain_password: str) -> bytes:
    if not isinstance(plain_password, str):
        raise HashingError("Password must be a string.")
    try:
        return plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    except UnicodeEncodeError as e:
        raise HashingError("Password is not valid UTF-8 text.", cause=e) from e


class PasswordHasher:
    """
    One-way bcrypt transform for stored credentials.

    Each hash carries its own fresh salt, so hashing the same password twice
    yields different strings that both verify.
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self.rounds = rounds
        # Built up front so the first unknown-user check costs no extra hashpw
        self._dummy_hash = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=rounds))

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        pw_bytes = _encode(plain_password)
        try:
            hashed = bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self.rounds))
        except (ValueError, TypeError) as e:
            raise HashingError("Password hashing failed.", cause=e) from e
        return hashed.decode("utf-8")

    def verify(self, plain_password: str, password_hash: str) -> bool:
        """
        Verify a plain password against a stored hash.

        A mismatch returns False. Raises HashingError only when password_hash
        is not a bcrypt hash.
        """
        pw_bytes = _encode(plain_password)
        if not isinstance(password_hash, str) or not password_hash:
            raise HashingError("Stored password hash is empty or not a string.")
        try:
            return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
        except (ValueError, TypeError) as e:
            raise HashingError("Stored password hash is malformed.", cause=e) from e

    def dummy_verify(self, plain_password: str) -> bool:
        """Spend the same bcrypt work as verify() for a user that does not exist. Always False."""
        pw_bytes = _encode(plain_password)
        bcrypt.checkpw(pw_bytes, self._dummy_hash)
        return False
