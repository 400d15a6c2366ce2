"""Script to create a user account from the command line."""

import argparse
import sys

from app.db.session import SessionLocal
from app.models.user import UserRole
from app.services.auth import create_user, get_user_by_username


def main():
    parser = argparse.ArgumentParser(description="Create a GameVault user")
    parser.add_argument("--username", required=True, help="Login name")
    parser.add_argument("--password", required=True, help="Password (min 8 characters)")
    parser.add_argument("--email", help="Optional email address")
    parser.add_argument("--admin", action="store_true", help="Grant the admin role")
    args = parser.parse_args()

    if len(args.password) < 8:
        print("Password must be at least 8 characters.", file=sys.stderr)
        sys.exit(1)

    db = SessionLocal()
    try:
        if get_user_by_username(db, args.username):
            print(f"User '{args.username}' already exists.")
            sys.exit(1)

        role = UserRole.ADMIN if args.admin else UserRole.USER
        user = create_user(db, args.username, args.password, role=role.value, email=args.email)
        print(f"Created {user.role} '{user.username}' with ID {user.id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
