"""Tests for the Google client, token sealing and Apps Script endpoints."""

import json
import time
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter

from apps_script import service as apps_script_service
from core.google import GoogleAuthError, GoogleClient, GoogleTokenRevokedError
from core.sealing import SealingError, TokenSealer

FILES = [
    {
        "id": "script-1",
        "name": "Invoice mailer",
        "owners": [{"displayName": "Dana", "emailAddress": "dana@example.com"}],
        "createdTime": "2024-04-01T09:00:00Z",
        "modifiedTime": "2024-05-01T09:00:00Z",
    },
    {"id": "script-2", "owners": [{"emailAddress": "sam@example.com"}]},
]

VALID_TOKENS = ("Bearer acc", "Bearer fresh-access")


def _form(request: requests.PreparedRequest) -> dict:
    body = request.body or ""
    if isinstance(body, bytes):
        body = body.decode()
    return parse_qs(body)


def google_handler(request: requests.PreparedRequest) -> tuple[int, dict]:
    url = urlsplit(request.url)
    if url.hostname == "oauth2.googleapis.com" and url.path == "/token":
        form = _form(request)
        if form.get("grant_type") == ["refresh_token"]:
            if form.get("refresh_token") == ["revoked"]:
                return 400, {"error": "invalid_grant", "error_description": "Token has been revoked."}
            return 200, {"access_token": "fresh-access", "expires_in": 3599, "token_type": "Bearer"}
        if form.get("code") == ["bad"]:
            return 400, {"error": "invalid_grant"}
        return 200, {
            "access_token": "acc",
            "refresh_token": "ref",
            "expires_in": 3599,
            "token_type": "Bearer",
        }
    if url.hostname == "www.googleapis.com" and url.path == "/drive/v3/files":
        if request.headers.get("Authorization") not in VALID_TOKENS:
            return 401, {"error": "unauthorized"}
        return 200, {"files": FILES}
    if url.path == "/v1/projects/script-1/deployments":
        return 200, {
            "deployments": [
                {
                    "deploymentId": "dep-1",
                    "deploymentConfig": {"versionNumber": 3, "description": "prod"},
                    "updateTime": "2024-05-01T09:00:00Z",
                }
            ]
        }
    if url.path == "/v1/projects/script-2/deployments":
        return 403, {"error": "forbidden"}
    return 404, {}


class FakeGoogle(BaseAdapter):
    """requests transport adapter answering like the Google endpoints used here."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, str | None]] = []

    def send(self, request, **kwargs):
        self.calls.append((urlsplit(request.url).path, request.headers.get("Authorization")))
        status, payload = google_handler(request)

        resp = requests.Response()
        resp.status_code = status
        resp._content = json.dumps(payload).encode()
        resp.headers["Content-Type"] = "application/json"
        resp.encoding = "utf-8"
        resp.url = request.url
        resp.request = request
        return resp

    def close(self) -> None:
        pass

    def drive_auth_headers(self) -> list[str | None]:
        return [auth for path, auth in self.calls if path == "/drive/v3/files"]


@pytest.fixture
def fake_google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
def google(fake_google) -> GoogleClient:
    return GoogleClient("client-id", "client-secret", adapter=fake_google)


class TestGoogleClient:
    def test_auth_url_requests_offline_consent(self, google):
        url = google.build_auth_url("http://dashboard.test/google/callback", state="xyz")
        params = parse_qs(urlsplit(url).query)

        assert params["access_type"] == ["offline"]
        assert params["prompt"] == ["consent"]
        assert params["state"] == ["xyz"]
        assert params["redirect_uri"] == ["http://dashboard.test/google/callback"]
        assert "https://www.googleapis.com/auth/script.projects.readonly" in params["scope"][0].split()

    def test_missing_credentials(self):
        with pytest.raises(GoogleAuthError):
            GoogleClient("", "").build_auth_url("http://x/google/callback")

    async def test_exchange_code(self, google):
        tokens = await google.exchange_code("good", "http://x/google/callback")
        assert tokens["access_token"] == "acc"
        assert tokens["refresh_token"] == "ref"
        assert tokens["expires_at"] > time.time()

        with pytest.raises(GoogleAuthError):
            await google.exchange_code("bad", "http://x/google/callback")

    async def test_list_apps_scripts(self, google):
        scripts, refreshed = await google.list_apps_scripts(
            {"access_token": "acc", "refresh_token": "ref", "expires_at": int(time.time()) + 3600}
        )

        assert refreshed is None
        assert scripts[0] == {
            "id": "script-1",
            "name": "Invoice mailer",
            "owner": "Dana",
            "createdAt": "2024-04-01T09:00:00Z",
            "updatedAt": "2024-05-01T09:00:00Z",
            "deployments": [
                {
                    "deploymentId": "dep-1",
                    "version": 3,
                    "description": "prod",
                    "updateTime": "2024-05-01T09:00:00Z",
                }
            ],
        }
        assert scripts[1]["name"] == "Untitled script"
        assert scripts[1]["owner"] == "sam@example.com"
        assert scripts[1]["deployments"] == []

    async def test_past_expiry_refreshes_before_calling_drive(self, google, fake_google):
        scripts, refreshed = await google.list_apps_scripts(
            {"access_token": "stale", "refresh_token": "ref", "expires_at": int(time.time()) - 60}
        )

        assert [s["id"] for s in scripts] == ["script-1", "script-2"]
        assert fake_google.drive_auth_headers() == ["Bearer fresh-access"]
        assert refreshed["access_token"] == "fresh-access"
        assert refreshed["refresh_token"] == "ref"
        assert refreshed["expires_at"] > time.time()

    async def test_rejected_access_token_is_refreshed_and_retried(self, google, fake_google):
        scripts, refreshed = await google.list_apps_scripts(
            {"access_token": "expired", "refresh_token": "ref"}
        )

        assert len(scripts) == 2
        assert fake_google.drive_auth_headers() == ["Bearer expired", "Bearer fresh-access"]
        assert refreshed["access_token"] == "fresh-access"

    async def test_revoked_refresh_token(self, google):
        with pytest.raises(GoogleTokenRevokedError):
            await google.list_apps_scripts({"access_token": "expired", "refresh_token": "revoked"})


class TestTokenSealer:
    def test_round_trip(self):
        sealer = TokenSealer("secret")
        sealed = sealer.seal({"refresh_token": "ref"})
        assert "refresh_token" not in sealed
        assert sealer.unseal(sealed) == {"refresh_token": "ref"}

    def test_tampered_or_foreign_values_unseal_to_none(self):
        sealed = TokenSealer("secret").seal({"access_token": "acc"})
        assert TokenSealer("other-secret").unseal(sealed) is None
        assert TokenSealer("secret").unseal(sealed[:-4] + "AAAA") is None
        assert TokenSealer("secret").unseal(None) is None

    def test_missing_secret(self):
        with pytest.raises(SealingError):
            TokenSealer("").seal({"access_token": "acc"})


def test_redirect_uri_prefers_origin():
    assert (
        apps_script_service.redirect_uri("https://keeper.example.com/", "http://localhost:3000")
        == "https://keeper.example.com/google/callback"
    )
    assert apps_script_service.redirect_uri(None, "http://localhost:3000") == "http://localhost:3000/google/callback"


def _sealed_cookie(resp) -> str:
    cookie = resp.headers["set-cookie"]
    assert cookie.startswith(f"{apps_script_service.TOKEN_COOKIE}=")
    # Starlette quotes values that contain "=" padding.
    return cookie.split(";", 1)[0].split("=", 1)[1].strip('"')


class TestRoutes:
    @pytest.fixture(autouse=True)
    def use_fake_google(self, app, google):
        app.state.google = google

    async def test_auth_url(self, client):
        resp = await client.get("/google/auth/url")
        assert resp.status_code == 200
        params = parse_qs(urlsplit(resp.json()["url"]).query)
        assert params["redirect_uri"] == ["http://dashboard.test/google/callback"]

    async def test_callback_requires_code(self, client):
        resp = await client.get("/google/callback")
        assert resp.status_code == 400

    async def test_callback_sets_sealed_cookie(self, client, app):
        resp = await client.get("/google/callback", params={"code": "good"})
        assert resp.status_code == 307
        assert resp.headers["location"] == "/"
        assert "HttpOnly" in resp.headers["set-cookie"]
        assert "Secure" in resp.headers["set-cookie"]

        tokens = app.state.token_sealer.unseal(_sealed_cookie(resp))
        assert tokens["access_token"] == "acc"
        assert tokens["refresh_token"] == "ref"

    async def test_callback_exchange_failure_is_500(self, client):
        resp = await client.get("/google/callback", params={"code": "bad"})
        assert resp.status_code == 500

    async def test_list_requires_tokens(self, client):
        resp = await client.get("/apps-script/list")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "not_authenticated"

    async def test_list_with_refresh_only_tokens(self, client, app):
        sealed = app.state.token_sealer.seal({"refresh_token": "ref"})
        client.cookies.set(apps_script_service.TOKEN_COOKIE, sealed)

        resp = await client.get("/apps-script/list")
        assert resp.status_code == 200
        assert [a["id"] for a in resp.json()["automations"]] == ["script-1", "script-2"]

    async def test_list_refreshes_expired_access_token(self, client, app):
        sealed = app.state.token_sealer.seal({"access_token": "expired", "refresh_token": "ref"})
        client.cookies.set(apps_script_service.TOKEN_COOKIE, sealed)

        resp = await client.get("/apps-script/list")
        assert resp.status_code == 200
        assert len(resp.json()["automations"]) == 2

        tokens = app.state.token_sealer.unseal(_sealed_cookie(resp))
        assert tokens["access_token"] == "fresh-access"
        assert tokens["refresh_token"] == "ref"

    async def test_list_with_fresh_token_keeps_cookie(self, client, app):
        sealed = app.state.token_sealer.seal(
            {"access_token": "acc", "refresh_token": "ref", "expires_at": int(time.time()) + 3600}
        )
        client.cookies.set(apps_script_service.TOKEN_COOKIE, sealed)

        resp = await client.get("/apps-script/list")
        assert resp.status_code == 200
        assert "set-cookie" not in resp.headers

    async def test_list_with_revoked_refresh_token_is_401(self, client, app):
        sealed = app.state.token_sealer.seal({"access_token": "expired", "refresh_token": "revoked"})
        client.cookies.set(apps_script_service.TOKEN_COOKIE, sealed)

        resp = await client.get("/apps-script/list")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "not_authenticated"
