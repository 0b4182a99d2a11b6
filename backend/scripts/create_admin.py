#!/usr/bin/env python3
"""Create an organizer (admin) account."""

import getpass
import sys
from pathlib import Path

# Make the backend package importable when run from anywhere
BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BASE_DIR))

from sqlmodel import Session

from ndrop.db import engine, init_db
from ndrop.services.accounts import create_admin_account
from ndrop.services.errors import NdropError


def main() -> int:
    username = input("Username: ").strip()
    display_name = input("Display name (optional): ").strip() or None
    password = getpass.getpass("Password: ")

    init_db()
    with Session(engine) as session:
        try:
            admin = create_admin_account(session, username, password, display_name)
        except NdropError as exc:
            print(f"Error: {exc.detail}")
            return 1

    print(f"Admin created: {admin.username} ({admin.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
