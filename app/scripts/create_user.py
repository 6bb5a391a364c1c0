"""
Create a user (e.g. first admin). Run from project root:
  python -m app.scripts.create_user EMAIL NAME [--role admin] [--pin 12345678] [--password ...]
Example:
  python -m app.scripts.create_user ops@example.com "Ops" --role admin --pin 24681357
"""
import argparse
import sys

from app.core.database import session_scope
from app.core.permissions import ROLES
from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    hash_password,
    hash_pin,
    is_valid_pin,
)
from app.models import Account, User
from app.services.sessions import CREDENTIAL_PROVIDER


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a MyBase Control user.")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument("name", help="Display name")
    parser.add_argument("--role", default="user", choices=list(ROLES))
    parser.add_argument("--pin", help="8-digit PIN for PIN login")
    parser.add_argument("--password", help="Password for email sign-in (8-128 chars)")
    args = parser.parse_args()

    email = args.email.strip().lower()
    name = args.name.strip()
    if not email or "@" not in email or len(email) > 255:
        print("Invalid email.", file=sys.stderr)
        return 1
    if not name or len(name) > 255:
        print("Invalid name length.", file=sys.stderr)
        return 1
    if args.pin is None and args.password is None:
        print("Give at least one of --pin or --password.", file=sys.stderr)
        return 1
    if args.pin is not None and not is_valid_pin(args.pin):
        print("PIN must be exactly 8 digits.", file=sys.stderr)
        return 1
    if args.password is not None and not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    with session_scope() as db:
        if db.query(User).filter(User.email == email).first():
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        pin_hash = hash_pin(args.pin) if args.pin else None
        if pin_hash and db.query(User).filter(User.pin_hash == pin_hash).first():
            print("This PIN is already in use.", file=sys.stderr)
            return 1
        user = User(name=name, email=email, role=args.role, pin_hash=pin_hash)
        db.add(user)
        db.flush()
        if args.password:
            db.add(
                Account(
                    account_id=user.id,
                    provider_id=CREDENTIAL_PROVIDER,
                    user_id=user.id,
                    password=hash_password(args.password),
                )
            )
        db.commit()
        print(f"Created user '{email}' with role '{args.role}'.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
