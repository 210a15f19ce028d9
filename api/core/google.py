"""
Google OAuth + Drive/Apps Script client built on google-auth.

- Consent URL and code exchange go through `google_auth_oauthlib.flow.Flow`.
- Drive/Apps Script calls go through an `AuthorizedSession`, which refreshes the
  access token when it is missing, past its expiry, or rejected with 401.

Tokens travel as a plain dict, which is what gets sealed into the cookie:
    {"access_token": str, "refresh_token": str, "expires_at": epoch seconds}

Used endpoints:
- GET  script.googleapis.com/v1/projects/{id}/deployments -> {"deployments": [...]}
- GET  www.googleapis.com/drive/v3/files                  -> {"files": [...]}
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping

import requests
from google.auth import exceptions as google_exceptions
from google.auth.transport.requests import AuthorizedSession, Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
SCRIPT_PROJECTS_URL = "https://script.googleapis.com/v1/projects"

SCOPES = (
    "https://www.googleapis.com/auth/drive.metadata.readonly",
    "https://www.googleapis.com/auth/script.deployments.readonly",
    "https://www.googleapis.com/auth/script.projects.readonly",
    "https://www.googleapis.com/auth/userinfo.email",
)

SCRIPT_FILES_QUERY = (
    "mimeType='application/vnd.google-apps.script' and 'me' in owners and trashed = false"
)
SCRIPT_FILES_FIELDS = (
    "files(id,name,owners(emailAddress,displayName),modifiedTime,createdTime)"
)

logger = logging.getLogger(__name__)


# Google failures are explicit and separable from other runtime errors.
class GoogleAuthError(RuntimeError):
    pass


class GoogleTokenRevokedError(GoogleAuthError):
    """The stored tokens can no longer be refreshed."""


class GoogleClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        timeout_s: float = 30.0,
        adapter: requests.adapters.BaseAdapter | None = None,
    ) -> None:
        self.client_id = (client_id or "").strip()
        self.client_secret = (client_secret or "").strip()
        self.timeout_s = timeout_s
        self._adapter = adapter

    def _require_credentials(self) -> None:
        if not self.client_id or not self.client_secret:
            raise GoogleAuthError("Missing GOOGLE_CLIENT_ID or GOOGLE_CLIENT_SECRET")

    def _mount(self, session: requests.Session) -> requests.Session:
        if self._adapter is not None:
            session.mount("https://", self._adapter)
        return session

    def _flow(self, redirect_uri: str) -> Flow:
        self._require_credentials()
        flow = Flow.from_client_config(
            {
                "web": {
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "auth_uri": AUTH_URL,
                    "token_uri": TOKEN_URL,
                }
            },
            scopes=list(SCOPES),
            redirect_uri=redirect_uri,
            # The callback builds a fresh Flow, so there is no PKCE verifier to replay.
            autogenerate_code_verifier=False,
        )
        self._mount(flow.oauth2session)
        return flow

    def build_auth_url(self, redirect_uri: str, state: str | None = None) -> str:
        url, _ = self._flow(redirect_uri).authorization_url(
            access_type="offline",
            prompt="consent",
            state=state,
        )
        return url

    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """
        Trade an authorization code for tokens. Only non-empty tokens are returned.
        """
        flow = self._flow(redirect_uri)
        try:
            token = await asyncio.to_thread(flow.fetch_token, code=code)
        except (OAuth2Error, Warning, requests.RequestException) as exc:
            # oauthlib raises Warning when Google grants fewer scopes than requested.
            raise GoogleAuthError(f"Google token request failed: {exc}") from exc
        finally:
            flow.oauth2session.close()
        return _token_fields(token)

    def credentials(self, tokens: Mapping[str, Any]) -> Credentials:
        self._require_credentials()
        expiry = None
        expires_at = tokens.get("expires_at")
        if isinstance(expires_at, (int, float)) and not isinstance(expires_at, bool):
            # google-auth compares expiry against naive UTC datetimes.
            expiry = datetime.fromtimestamp(expires_at, tz=timezone.utc).replace(tzinfo=None)
        return Credentials(
            token=tokens.get("access_token") or None,
            refresh_token=tokens.get("refresh_token") or None,
            token_uri=TOKEN_URL,
            client_id=self.client_id,
            client_secret=self.client_secret,
            expiry=expiry,
        )

    @contextmanager
    def _authorized_session(self, credentials: Credentials) -> Iterator[AuthorizedSession]:
        auth_session = self._mount(requests.Session())
        session = AuthorizedSession(credentials, auth_request=Request(session=auth_session))
        self._mount(session)
        try:
            yield session
        finally:
            session.close()
            auth_session.close()

    async def list_apps_scripts(
        self, tokens: Mapping[str, Any]
    ) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
        """
        List up to 50 Apps Script projects owned by the user, with deployments.

        Returns the automations and, when the access token was refreshed along
        the way, the new token dict (otherwise None).
        """
        credentials = self.credentials(tokens)
        issued = credentials.token

        with self._authorized_session(credentials) as session:
            try:
                files = await asyncio.to_thread(self._list_script_files, session)
            except google_exceptions.RefreshError as exc:
                raise GoogleTokenRevokedError(f"Google token refresh failed: {exc}") from exc
            except (google_exceptions.TransportError, requests.RequestException) as exc:
                raise GoogleAuthError(f"Drive files request failed: {exc}") from exc

            deployments = await asyncio.gather(
                *(
                    asyncio.to_thread(self._list_deployments, session, str(f.get("id")))
                    for f in files
                )
            )

        refreshed = _credential_tokens(credentials) if credentials.token != issued else None
        if refreshed is not None:
            logger.info("google_token_refreshed")
        return [_to_automation(f, d) for f, d in zip(files, deployments)], refreshed

    def _list_script_files(self, session: AuthorizedSession) -> list[dict]:
        resp = session.get(
            DRIVE_FILES_URL,
            params={"q": SCRIPT_FILES_QUERY, "fields": SCRIPT_FILES_FIELDS, "pageSize": 50},
            timeout=self.timeout_s,
        )
        if resp.status_code != 200:
            # Avoid dumping huge bodies; include a small snippet.
            body = resp.text[:500]
            raise GoogleAuthError(f"Drive files request failed: {resp.status_code} {body}")
        return resp.json().get("files") or []

    def _list_deployments(self, session: AuthorizedSession, script_id: str) -> list[dict]:
        # A project we cannot inspect still shows up, just without deployments.
        try:
            resp = session.get(
                f"{SCRIPT_PROJECTS_URL}/{script_id}/deployments",
                timeout=self.timeout_s,
            )
        except (google_exceptions.GoogleAuthError, requests.RequestException):
            logger.warning("deployments_lookup_failed script_id=%s", script_id, exc_info=True)
            return []
        if resp.status_code != 200:
            logger.warning(
                "deployments_lookup_failed script_id=%s status=%s", script_id, resp.status_code
            )
            return []
        return resp.json().get("deployments") or []


def _token_fields(token: Mapping[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {
        key: token[key]
        for key in ("access_token", "refresh_token")
        if isinstance(token.get(key), str) and token[key]
    }
    expires_at = token.get("expires_at")
    if isinstance(expires_at, (int, float)) and not isinstance(expires_at, bool):
        fields["expires_at"] = int(expires_at)
    return fields


def _credential_tokens(credentials: Credentials) -> dict[str, Any]:
    expires_at = None
    if credentials.expiry is not None:
        expires_at = credentials.expiry.replace(tzinfo=timezone.utc).timestamp()
    return _token_fields(
        {
            "access_token": credentials.token,
            "refresh_token": credentials.refresh_token,
            "expires_at": expires_at,
        }
    )


def _owner_label(owners: list[dict] | None) -> str:
    names = [o.get("displayName") or o.get("emailAddress") for o in owners or []]
    label = ", ".join(n for n in names if n)
    return label or "Unknown"


def _to_automation(file: dict[str, Any], deployments: list[dict]) -> dict[str, Any]:
    return {
        "id": file.get("id"),
        "name": file.get("name") or "Untitled script",
        "owner": _owner_label(file.get("owners")),
        "createdAt": file.get("createdTime"),
        "updatedAt": file.get("modifiedTime"),
        "deployments": [
            {
                "deploymentId": d.get("deploymentId"),
                "version": (d.get("deploymentConfig") or {}).get("versionNumber"),
                "description": (d.get("deploymentConfig") or {}).get("description"),
                "updateTime": d.get("updateTime"),
            }
            for d in deployments
        ],
    }
