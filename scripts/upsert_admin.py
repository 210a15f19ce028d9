"""
Create or update an admin user.

Usage (after `pip install -e .`):
    DATABASE_URL=postgresql://... python scripts/upsert_admin.py \
        --email admin@example.com --password 's3cret'
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from auth import repository, security
from core.config import Settings
from core.db import Database
from core.log import configure_logging

logger = logging.getLogger("upsert_admin")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upsert an admin user.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Admin")
    parser.add_argument("--department", default="admin")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL.")
    return parser.parse_args(argv)


async def upsert_admin(args: argparse.Namespace) -> dict:
    database = Database(args.database_url or Settings.from_env().database_url)
    await database.connect()
    try:
        await repository.ensure_user_schema(database)
        return await repository.upsert_user(
            database,
            email=args.email,
            password_hash=security.hash_password(args.password),
            name=args.name,
            department=args.department,
            role="admin",
        )
    finally:
        await database.close()


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        user = asyncio.run(upsert_admin(args))
    except Exception:
        logger.exception("admin_upsert_failed email=%s", args.email)
        return 1
    logger.info("admin_upserted email=%s id=%s", user["email"], user["id"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
