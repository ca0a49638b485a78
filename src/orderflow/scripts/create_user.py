# src/orderflow/scripts/create_user.py
"""Provision a local account that auto-login tokens can resolve to."""
from __future__ import annotations

import argparse
import getpass
import sys

from orderflow.db.session import SessionLocal, create_tables
from orderflow.services.user_service import create_user, get_user_by_username


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a local order-management account")
    parser.add_argument("username")
    parser.add_argument("--password", help="Password (prompted for when omitted)")
    args = parser.parse_args(argv)

    password = args.password or getpass.getpass(f"Password for {args.username}: ")
    if not password:
        print("A password is required", file=sys.stderr)
        return 2

    create_tables()
    db = SessionLocal()
    try:
        if get_user_by_username(db, args.username) is not None:
            print(f"User '{args.username}' already exists", file=sys.stderr)
            return 1
        user = create_user(db, args.username, password)
    finally:
        db.close()

    print(f"Created user '{user.username}' with id {user.id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
