"""
Google OAuth + Apps Script listing endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, Request, Response
from fastapi.responses import RedirectResponse

from core.google import GoogleClient
from core.sealing import TokenSealer

from . import service

router = APIRouter()


def _set_token_cookie(response: Response, sealed: str) -> None:
    response.set_cookie(
        service.TOKEN_COOKIE,
        sealed,
        max_age=service.TOKEN_COOKIE_MAX_AGE,
        httponly=True,
        secure=True,
        samesite="lax",
        path="/",
    )


@router.get("/google/auth/url")
async def google_auth_url(
    request: Request,
    state: str | None = Query(default=None, max_length=500),
    google: GoogleClient = Depends(service.get_google_client),
) -> dict:
    redirect = service.redirect_uri(
        request.headers.get("origin"),
        request.app.state.settings.app_origin,
    )
    return {"url": service.auth_url(google, redirect=redirect, state=state)}


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str | None = Query(default=None),
    google: GoogleClient = Depends(service.get_google_client),
    sealer: TokenSealer = Depends(service.get_token_sealer),
) -> RedirectResponse:
    if not code:
        raise HTTPException(status_code=400, detail="Missing code")

    redirect = service.redirect_uri(
        request.headers.get("origin"),
        request.app.state.settings.app_origin,
    )
    sealed = await service.exchange_and_seal(google, sealer, code=code, redirect=redirect)

    response = RedirectResponse(url="/", status_code=307)
    _set_token_cookie(response, sealed)
    return response


@router.get("/apps-script/list")
async def list_apps_scripts(
    response: Response,
    gs_tokens: str | None = Cookie(default=None, alias=service.TOKEN_COOKIE),
    google: GoogleClient = Depends(service.get_google_client),
    sealer: TokenSealer = Depends(service.get_token_sealer),
) -> dict:
    automations, resealed = await service.list_automations(google, sealer, gs_tokens)
    if resealed:
        # Keep the refreshed access token so the next call can skip the refresh.
        _set_token_cookie(response, resealed)
    return {"automations": automations}
