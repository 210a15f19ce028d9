"""
Auth dependencies for protected FastAPI routes.
"""

from __future__ import annotations

from fastapi import Cookie, Depends, Header, HTTPException, status

from core.db import Database, get_database

from . import security, service


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format.",
        )

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization must be: Bearer <token>.",
        )
    return token


async def get_session_token(
    authorization: str | None = Header(default=None),
    session: str | None = Cookie(default=None, alias=security.SESSION_COOKIE),
) -> str:
    """
    Bearer header wins; the browser session cookie is the fallback.
    """
    if (authorization or "").strip():
        return _extract_bearer_token(authorization)
    if (session or "").strip():
        return session.strip()
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated.",
    )


async def get_current_user(
    access_token: str = Depends(get_session_token),
    database: Database = Depends(get_database),
) -> dict:
    return await service.get_user_from_access_token(database, access_token)
