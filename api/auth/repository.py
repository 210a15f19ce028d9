"""
Auth persistence helpers.
"""

from __future__ import annotations

from core.db import Database

from .security import normalize_email

USER_COLUMNS = "id::text AS id, email, name, department, role, created_at, updated_at"


async def ensure_user_schema(database: Database) -> None:
    """
    Create the users table if needed and add columns older deployments lack.
    """
    await database.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")
    await database.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
          id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
          email TEXT UNIQUE NOT NULL,
          password_hash TEXT NOT NULL,
          name TEXT,
          department TEXT NOT NULL DEFAULT 'general',
          role TEXT NOT NULL DEFAULT 'user',
          created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
          updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
        """
    )
    await database.execute(
        "ALTER TABLE users ADD COLUMN IF NOT EXISTS department TEXT NOT NULL DEFAULT 'general';"
    )
    await database.execute(
        "ALTER TABLE users ADD COLUMN IF NOT EXISTS role TEXT NOT NULL DEFAULT 'user';"
    )


async def create_user(
    database: Database,
    *,
    email: str,
    password_hash: str,
    name: str | None,
    department: str,
    role: str,
) -> dict | None:
    """
    Insert a user. Returns None when the email is already taken.
    """
    return await database.fetch_one(
        f"""
        INSERT INTO users (email, password_hash, name, department, role)
        VALUES ($1, $2, NULLIF($3, ''), $4, $5)
        ON CONFLICT (email) DO NOTHING
        RETURNING {USER_COLUMNS}
        """,
        normalize_email(email),
        password_hash,
        name or "",
        department,
        role,
    )


async def upsert_user(
    database: Database,
    *,
    email: str,
    password_hash: str,
    name: str | None,
    department: str,
    role: str,
) -> dict:
    row = await database.fetch_one(
        f"""
        INSERT INTO users (email, password_hash, name, department, role)
        VALUES ($1, $2, NULLIF($3, ''), $4, $5)
        ON CONFLICT (email) DO UPDATE SET
          password_hash = EXCLUDED.password_hash,
          name = EXCLUDED.name,
          department = EXCLUDED.department,
          role = EXCLUDED.role,
          updated_at = now()
        RETURNING {USER_COLUMNS}
        """,
        normalize_email(email),
        password_hash,
        name or "",
        department,
        role,
    )
    if row is None:
        raise RuntimeError("Failed to upsert user.")
    return row


async def get_user_by_email(database: Database, email: str) -> dict | None:
    return await database.fetch_one(
        f"""
        SELECT {USER_COLUMNS}, password_hash
        FROM users
        WHERE email = $1
        LIMIT 1
        """,
        normalize_email(email),
    )


async def get_user_by_id(database: Database, user_id: str) -> dict | None:
    return await database.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM users
        WHERE id = $1::uuid
        """,
        user_id,
    )
