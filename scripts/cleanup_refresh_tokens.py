#!/usr/bin/env python3
"""One-shot removal of expired and revoked refresh tokens.

The API already sweeps hourly; this is for cron jobs and maintenance windows.
"""

from __future__ import annotations

import argparse
import sys
import time

from dotenv import load_dotenv

from storefront_auth.auth.repository import AuthRepository
from storefront_auth.core.config import AppConfig


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Delete expired or revoked refresh tokens from the credential store."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the current token count.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Execute cleanup flow."""
    load_dotenv()
    args = _parse_args(argv)
    repo = AuthRepository(AppConfig.from_env().storage)
    before = repo.count_refresh_tokens()
    print(f"Backend: {repo.backend}")
    print(f"Refresh tokens before: {before}")
    if args.dry_run:
        return 0

    try:
        removed = repo.delete_expired_or_revoked_refresh_tokens(time.time())
    except Exception as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    print(f"Refresh tokens removed: {removed}")
    print(f"Refresh tokens now: {repo.count_refresh_tokens()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
