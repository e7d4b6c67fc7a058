#!/usr/bin/env python3
"""Seed or reset an admin identity in the credential store."""

from __future__ import annotations

import argparse
import getpass
import sys
import uuid

from dotenv import load_dotenv

from storefront_auth.auth.models import Admin
from storefront_auth.auth.repository import AuthRepository
from storefront_auth.core.config import AppConfig
from storefront_auth.core.security import hash_password

MIN_PASSWORD_LENGTH = 8


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Create or reset an admin account.")
    parser.add_argument("email", help="Admin e-mail (stored lowercase).")
    parser.add_argument(
        "--password",
        default="",
        help="Password; prompted interactively when omitted.",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Replace the password of an existing admin and revoke its sessions.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Execute admin seeding flow."""
    load_dotenv()
    args = _parse_args(argv)
    email = args.email.strip().lower()
    password = args.password or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(
            f"ERROR: password must have at least {MIN_PASSWORD_LENGTH} characters",
            file=sys.stderr,
        )
        return 1

    repo = AuthRepository(AppConfig.from_env().storage)
    existing = repo.find_admin_by_email(email)
    if existing is not None and not args.reset:
        print(f"Admin already exists: {email} (use --reset to change the password)")
        return 1

    admin = Admin(
        admin_id=existing.admin_id if existing else uuid.uuid4().hex,
        email=email,
        password_hash=hash_password(password),
    )
    repo.upsert_admin(admin)
    if existing is not None:
        revoked = repo.revoke_all_for_admin(admin.admin_id)
        print(f"Password reset for {email}; revoked sessions: {revoked}")
    else:
        print(f"Admin created: {email} ({admin.admin_id})")
    print(f"Backend: {repo.backend}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
