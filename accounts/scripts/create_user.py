"""
Create a user (e.g. first admin). Run from project root:
  python -m accounts.scripts.create_user FIRST LAST USERNAME EMAIL PASSWORD [role]
Example:
  python -m accounts.scripts.create_user Ann Lee admin ann@example.com your-secure-password admin
"""
import argparse
import sys

from dotenv import load_dotenv

from accounts.core.config import get_settings
from accounts.core.database import Database
from accounts.core.logging import configure_logging
from accounts.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from accounts.schemas.user import Role
from accounts.services.accounts import AccountService


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a user account.")
    parser.add_argument("first_name", help="First name")
    parser.add_argument("last_name", help="Last name")
    parser.add_argument("username", help="Username (1-255 chars, unique)")
    parser.add_argument("email", help="Email address (unique)")
    parser.add_argument("password", help="Password (8-128 chars)")
    parser.add_argument(
        "role", nargs="?", default=Role.USER.value, choices=[r.value for r in Role]
    )
    args = parser.parse_args(argv)

    if len(args.password) < PASSWORD_MIN_LEN or len(args.password) > PASSWORD_MAX_LEN:
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr
        )
        return 1

    load_dotenv()
    settings = get_settings()
    configure_logging(settings)

    database = Database.from_settings(settings)
    try:
        with AccountService.from_settings(settings, database) as service:
            result = service.create_user(
                args.first_name,
                args.last_name,
                args.username,
                args.email,
                args.password,
                role=args.role,
            )
    finally:
        database.dispose()

    if not result.ok:
        print(result.error.message, file=sys.stderr)
        return 1
    print(f"Created user '{result.value.username}' with role '{result.value.role.value}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
