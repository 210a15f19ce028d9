"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from core.db import Database, get_database

from . import dependencies, schemas, security, service

router = APIRouter(prefix="/auth")


@router.post("/register", response_model=schemas.RegisterResponse)
async def register(
    payload: schemas.RegisterRequest,
    request: Request,
    database: Database = Depends(get_database),
) -> schemas.RegisterResponse:
    return await service.register(
        database,
        payload,
        admin_email=request.app.state.settings.admin_email,
    )


@router.post("/login", response_model=schemas.SessionResponse)
async def login(
    payload: schemas.LoginRequest,
    response: Response,
    database: Database = Depends(get_database),
) -> schemas.SessionResponse:
    session = await service.login(database, payload)
    response.set_cookie(
        security.SESSION_COOKIE,
        session.access_token,
        max_age=security.access_token_expire_minutes() * 60,
        httponly=True,
        samesite="lax",
        path="/",
    )
    return session


@router.post("/logout")
async def logout(response: Response) -> dict:
    response.delete_cookie(security.SESSION_COOKIE, path="/")
    return {"ok": True}


@router.get("/me", response_model=schemas.UserResponse)
async def me(
    access_token: str = Depends(dependencies.get_session_token),
    database: Database = Depends(get_database),
) -> schemas.UserResponse:
    return await service.me(database, access_token)
