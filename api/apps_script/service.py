"""
Google Apps Script sync logic.

Tokens from the OAuth callback are sealed into the `gs_tokens` cookie; later
requests unseal them and call Drive/Apps Script on the user's behalf.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request, status

from core.google import GoogleAuthError, GoogleClient, GoogleTokenRevokedError
from core.sealing import SealingError, TokenSealer

TOKEN_COOKIE = "gs_tokens"
TOKEN_COOKIE_MAX_AGE = 60 * 60 * 24 * 30
CALLBACK_PATH = "/google/callback"

logger = logging.getLogger(__name__)


def get_google_client(request: Request) -> GoogleClient:
    return request.app.state.google


def get_token_sealer(request: Request) -> TokenSealer:
    return request.app.state.token_sealer


def redirect_uri(origin: str | None, app_origin: str) -> str:
    base = (origin or "").strip() or app_origin
    return f"{base.rstrip('/')}{CALLBACK_PATH}"


def auth_url(google: GoogleClient, *, redirect: str, state: str | None = None) -> str:
    try:
        return google.build_auth_url(redirect, state=state)
    except GoogleAuthError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


async def exchange_and_seal(
    google: GoogleClient,
    sealer: TokenSealer,
    *,
    code: str,
    redirect: str,
) -> str:
    """
    Trade the callback code for tokens and return the sealed cookie value.
    """
    try:
        tokens = await google.exchange_code(code, redirect)
    except GoogleAuthError as exc:
        logger.warning("google_exchange_failed error=%s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    if not tokens.get("refresh_token") and not tokens.get("access_token"):        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="No tokens returned from Google",
        )

    try:
        sealed = sealer.seal(tokens)
    except SealingError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    logger.info("google_connected has_refresh_token=%s", bool(tokens.get("refresh_token")))
    return sealed


async def list_automations(
    google: GoogleClient,
    sealer: TokenSealer,
    sealed: str | None,
) -> tuple[list[dict[str, Any]], str | None]:
    """
    List the user's Apps Script projects.

    Returns the automations and a re-sealed cookie value when the access token
    had to be refreshed (otherwise None).
    """
    try:
        tokens = sealer.unseal(sealed)
    except SealingError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    if not tokens or not (tokens.get("access_token") or tokens.get("refresh_token")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="not_authenticated")

    try:
        automations, refreshed = await google.list_apps_scripts(tokens)
    except GoogleTokenRevokedError as exc:
        logger.warning("apps_script_token_revoked error=%s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="not_authenticated") from exc
    except GoogleAuthError as exc:
        logger.warning("apps_script_list_failed error=%s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    resealed = sealer.seal(refreshed) if refreshed else None
    return automations, resealed
