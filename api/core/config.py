"""
Process settings read from environment variables.

`Settings.from_env()` is called once by the app factory; handlers read the
resulting object from `request.app.state.settings`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_DIR = ".data"
DEFAULT_APP_ORIGIN = "http://localhost:3000"
DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def env_list(name: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    data_dir: Path = Path(DEFAULT_DATA_DIR)
    database_url: str = ""
    app_origin: str = DEFAULT_APP_ORIGIN
    admin_email: str = ""
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    google_client_id: str = ""
    google_client_secret: str = ""
    google_token_secret: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_dir=Path(env_str("DATA_DIR", DEFAULT_DATA_DIR)),
            database_url=env_str("DATABASE_URL"),
            app_origin=env_str("APP_ORIGIN", DEFAULT_APP_ORIGIN),
            admin_email=env_str("ADMIN_EMAIL").lower(),
            cors_origins=env_list("CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
            google_client_id=env_str("GOOGLE_CLIENT_ID"),
            google_client_secret=env_str("GOOGLE_CLIENT_SECRET"),
            google_token_secret=env_str("GOOGLE_TOKEN_SECRET"),
        )
