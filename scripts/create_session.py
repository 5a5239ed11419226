#!/usr/bin/env python
"""Mint a session cookie for an existing user, for manual API testing."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from archive_api.config import settings
from archive_api.db.session import SessionLocal
from archive_api.services.auth import AuthService


def create_session(identifier: str) -> str:
    with SessionLocal() as db:
        service = AuthService(db)
        user = service.get_user_by_identifier(identifier)
        if user is None:
            raise SystemExit(f"No user with identifier {identifier!r}; create one with `archive-admin create-user`.")

        token = service.issue_session(user, user_agent="scripts/create_session.py")

        print("User:", user.email, f"({user.role.value})")
        print("Session valid for:", f"{settings.session_ttl_hours}h")
        print("\nSend it as a cookie:")
        print(f"{settings.cookie_name}={token}")
        print("\nor as a header:")
        print(f"Authorization: Bearer {token}")
        return token


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a session token for local testing")
    parser.add_argument("identifier", help="Email or USN of the user to authenticate as")
    args = parser.parse_args()

    create_session(args.identifier)


if __name__ == "__main__":
    main()
