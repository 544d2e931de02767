#!/usr/bin/env python
"""
Create the first admin user.
Run with: cd backend; python scripts/seed_admin.py
Requires DATABASE_URL and SECRET_KEY in .env.
"""

import getpass
import os
import re
import sys

# Add medbox to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from medbox.config import settings
from medbox.constants.enums import Role
from medbox.database import SessionLocal
from medbox.dependencies import build_token_authority, build_user_store
from medbox.errors import MedboxError
from medbox.services.user_admin import UserAdministration

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{2,30}$")
PIN_RE = re.compile(r"^\d{4}$")


def ask(prompt: str) -> str:
    return input(prompt).strip()


def seed_admin() -> int:
    print("\n=== Medication Box Inventory: admin seed ===\n")

    username = ask("Admin username (2-30 alphanumeric chars): ")
    if not USERNAME_RE.match(username):
        print("Invalid username. Must be 2-30 alphanumeric characters or underscores.")
        return 1

    display_name = ask("Display name: ")
    if not display_name or len(display_name) > 50:
        print("Display name must be 1-50 characters.")
        return 1

    pin = getpass.getpass("4-digit PIN: ")
    if not PIN_RE.match(pin):
        print("PIN must be exactly 4 digits.")
        return 1

    if getpass.getpass("Confirm 4-digit PIN: ") != pin:
        print("PINs do not match.")
        return 1

    user_admin = UserAdministration(build_user_store(SessionLocal), build_token_authority(settings))
    print("\nCreating admin user...")
    try:
        user = user_admin.create_user(
            username=username,
            pin=pin,
            display_name=display_name,
            role=Role.ADMIN,
            created_by="seed-script",
        )
    except MedboxError as e:
        print(f"\nFailed to create admin user: {e.message}")
        return 1

    print("\nAdmin user created successfully!")
    print(f"   Username: {user.username}")
    print(f"   Display Name: {user.display_name}")
    print(f"   Role: {user.role.value}")
    print(f"   ID: {user.id}")
    print("\nYou can now log in with this username and PIN.\n")
    return 0


if __name__ == '__main__':
    sys.exit(seed_admin())
