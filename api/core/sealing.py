"""
Symmetric sealing of small JSON payloads (OAuth tokens kept in a cookie).

Uses Fernet. The key is derived from GOOGLE_TOKEN_SECRET.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class SealingError(RuntimeError):
    pass


class TokenSealer:
    def __init__(self, secret: str) -> None:
        self._secret = (secret or "").strip()
        self._fernet: Fernet | None = None

    def _cipher(self) -> Fernet:
        if not self._secret:
            raise SealingError("Missing GOOGLE_TOKEN_SECRET")
        if self._fernet is None:
            # Fernet wants 32 url-safe base64 bytes; derive them from the secret.
            key = base64.urlsafe_b64encode(hashlib.sha256(self._secret.encode("utf-8")).digest())
            self._fernet = Fernet(key)
        return self._fernet

    def seal(self, payload: dict[str, Any]) -> str:
        data = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        return self._cipher().encrypt(data).decode("utf-8")

    def unseal(self, sealed: str | None) -> dict[str, Any] | None:
        """
        Return the payload, or None when the value is missing or cannot be opened.
        """
        if not sealed:
            return None
        try:
            raw = self._cipher().decrypt(sealed.encode("utf-8"))
        except InvalidToken:
            logger.warning("unseal_failed reason=invalid_token")
            return None

        try:
            payload = json.loads(raw)
        except ValueError:
            logger.warning("unseal_failed reason=bad_json")
            return None
        return payload if isinstance(payload, dict) else None
