"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns the connection pool. The app factory constructs one instance,
FastAPI opens it on startup and closes it on shutdown (see `api/main.py`).
Handlers reach it through the `get_database` dependency.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg
from fastapi import Request

# libpq-only options asyncpg rejects in a DSN.
_UNSUPPORTED_PARAMS = {"sslmode", "channel_binding"}


def _sanitize_database_url(url: str) -> tuple[str, str | None]:
    """
    Strip libpq-only query params, returning the DSN and the requested sslmode.
    """
    parts = urlsplit(url)
    if not parts.query:
        return url, None

    pairs = parse_qsl(parts.query, keep_blank_values=True)
    sslmode = next((v for (k, v) in pairs if k == "sslmode"), None)
    params = [(k, v) for (k, v) in pairs if k not in _UNSUPPORTED_PARAMS]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment)), sslmode


class Database:
    def __init__(self, url: str, *, min_size: int = 1, max_size: int = 10) -> None:
        self.url = (url or "").strip()
        self.min_size = min_size
        self.max_size = max_size
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        if self._pool is not None:
            return None
        if not self.url:
            raise RuntimeError("DATABASE_URL is not set.")

        dsn, sslmode = _sanitize_database_url(self.url)
        kwargs: dict[str, Any] = {}
        if sslmode in ("require", "verify-ca", "verify-full"):
            kwargs["ssl"] = "require"

        self._pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            command_timeout=30,
            **kwargs,
        )

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None

    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call connect() on startup.")
        return self._pool

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self.pool().fetchrow(sql, *args)
        return dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        rows = await self.pool().fetch(sql, *args)
        return [dict(r) for r in rows]

    async def execute(self, sql: str, *args: Any) -> None:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
        """
        await self.pool().execute(sql, *args)


def get_database(request: Request) -> Database:
    return request.app.state.database
