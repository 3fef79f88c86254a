"""
Check a user's credentials. Run from project root:
  python -m accounts.scripts.verify_user EMAIL PASSWORD
Exits 0 when the credentials are valid, 1 otherwise.
"""
import argparse
import sys

import pydantic
from dotenv import load_dotenv

from accounts.core.config import get_settings
from accounts.core.database import Database
from accounts.core.logging import configure_logging
from accounts.schemas.auth import Credentials, VerifyOutcome
from accounts.services.accounts import AccountService


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Verify an email/password pair.")
    parser.add_argument("email", help="Account email")
    parser.add_argument("password", help="Password")
    args = parser.parse_args(argv)

    try:
        credentials = Credentials(email=args.email, password=args.password)
    except pydantic.ValidationError:
        print("Invalid email or password.", file=sys.stderr)
        return 1

    load_dotenv()
    settings = get_settings()
    configure_logging(settings)

    database = Database.from_settings(settings)
    try:
        with AccountService.from_settings(settings, database) as service:
            result = service.verify_credentials(credentials.email, credentials.password)
    finally:
        database.dispose()

    if not result.ok:
        print(result.error.message, file=sys.stderr)
        return 1
    if result.value is not VerifyOutcome.VALID:
        # Same message for unknown email and wrong password
        print("Invalid email or password.", file=sys.stderr)
        return 1
    print("Credentials are valid.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
