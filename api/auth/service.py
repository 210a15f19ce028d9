"""
Auth business logic.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException, status

from core.db import Database

from . import repository, schemas, security

DEFAULT_DEPARTMENT = "general"

logger = logging.getLogger(__name__)


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=str(user_row["id"]),
        email=str(user_row["email"]),
        name=user_row.get("name"),
        department=str(user_row.get("department") or DEFAULT_DEPARTMENT),
        role=str(user_row.get("role") or "user"),
        created_at=user_row.get("created_at"),
    )


def role_for_email(email: str, admin_email: str) -> str:
    admin = security.normalize_email(admin_email)
    return "admin" if admin and admin == security.normalize_email(email) else "user"


def _require_email(email: str) -> None:
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="email and password are required",
        )


async def register(
    database: Database,
    payload: schemas.RegisterRequest,
    *,
    admin_email: str = "",
) -> schemas.RegisterResponse:
    email = security.normalize_email(payload.email)
    _require_email(email)
    department = (payload.department or "").strip() or DEFAULT_DEPARTMENT
    logger.info("register_attempt email=%s department=%s", email, department)

    user_row = await repository.create_user(
        database,
        email=email,
        password_hash=security.hash_password(payload.password),
        name=(payload.name or "").strip(),
        department=department,
        role=role_for_email(email, admin_email),
    )
    if user_row is None:
        logger.info("register_conflict email=%s", email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="email already exists",
        )

    logger.info("register_success email=%s role=%s", email, user_row["role"])
    return schemas.RegisterResponse(user=_to_user_response(user_row))


async def login(database: Database, payload: schemas.LoginRequest) -> schemas.SessionResponse:
    email = security.normalize_email(payload.email)
    _require_email(email)
    logger.info("login_attempt email=%s", email)

    user_row = await repository.get_user_by_email(database, email)
    if user_row is None:
        logger.info("login_failed email=%s reason=not_found", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid credentials",
        )

    if not security.verify_password(payload.password, str(user_row.get("password_hash") or "")):
        logger.info("login_failed email=%s reason=bad_password", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid credentials",
        )

    user = _to_user_response(user_row)
    token = security.build_access_token(
        user_id=user.id,
        email=user.email,
        department=user.department,
        role=user.role,
    )
    logger.info("login_success email=%s role=%s department=%s", email, user.role, user.department)
    return schemas.SessionResponse(user=user, access_token=token)


async def get_user_from_access_token(database: Database, access_token: str) -> dict:
    try:
        payload = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc

    subject = str(payload.get("sub") or "").strip()
    try:
        uuid.UUID(subject)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token subject.",
        ) from exc

    user_row = await repository.get_user_by_id(database, subject)
    if user_row is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found.",
        )
    return user_row


async def me(database: Database, access_token: str) -> schemas.UserResponse:
    user_row = await get_user_from_access_token(database, access_token)
    return _to_user_response(user_row)
