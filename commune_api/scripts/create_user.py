"""
Create an account from the command line (e.g. an extra administrator). Run from project root:
  python -m commune_api.scripts.create_user EMAIL PASSWORD [--username NAME] [--role ROLE]
Example:
  python -m commune_api.scripts.create_user mayor@mlomp.sn your-secure-password --role ADMIN
"""
import argparse
import sys

from sqlalchemy import or_, select

from commune_api.core.database import SessionLocal
from commune_api.core.security import PASSWORD_MAX_LEN, hash_password
from commune_api.models.account import ROLE_EDITOR, ROLES, Account
from commune_api.schemas.common import normalize_email


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a commune website account.")
    parser.add_argument("email", help="Login email address")
    parser.add_argument("password", help=f"Password (8-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("--username", default=None, help="Display name (defaults to the email's local part)")
    parser.add_argument("--role", default=ROLE_EDITOR, type=str.upper, choices=ROLES)
    args = parser.parse_args(argv)

    try:
        email = normalize_email(args.email)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1
    if len(args.password) < 8 or len(args.password) > PASSWORD_MAX_LEN:
        print(f"Password must be 8-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1
    username = (args.username or email.split("@", 1)[0]).strip()
    if not username or len(username) > 255:
        print("Invalid username length.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        existing = db.execute(
            select(Account).where(or_(Account.email == email, Account.username == username))
        ).scalars().first()
        if existing:
            print(f"An account with email '{email}' or username '{username}' already exists.", file=sys.stderr)
            return 1
        account = Account(
            email=email,
            username=username,
            password_hash=hash_password(args.password),
            role=args.role,
        )
        db.add(account)
        db.commit()
        print(f"Created account '{email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
