# src/services/token_provider.py

"""File-backed Mercado Livre OAuth token with refresh-on-expiry."""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any

from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.errors import TokenRefreshError

logger = logging.getLogger("shop_ranker.token")

_EXPIRY_SKEW = 60.0  # seconds of remaining life treated as expired


class MercadoLivreTokenProvider:
    """Hand out a valid access token, refreshing and persisting as needed.

    The token file holds ``access_token``, ``refresh_token`` and
    ``expires_at`` (epoch seconds) and is written with mode 0600.  When
    no file exists yet the refresh token is seeded from
    ``ML_REFRESH_TOKEN``.  The initial authorization-code exchange is
    out of scope; a revoked refresh token raises ``TokenRefreshError``.
    Without an injected *session* each refresh opens and closes its own.
    """

    def __init__(
        self,
        app_id: str | None = None,
        app_secret: str | None = None,
        refresh_token: str | None = None,
        token_path: Path | None = None,
        session: Any | None = None,
    ) -> None:
        self.app_id = Settings.ML_APP_ID if app_id is None else app_id
        self.app_secret = (
            Settings.ML_APP_SECRET if app_secret is None else app_secret
        )
        self.seed_refresh_token = (
            Settings.ML_REFRESH_TOKEN if refresh_token is None else refresh_token
        )
        self.token_path = token_path or Settings.TOKEN_PATH
        self.session = session

    @property
    def configured(self) -> bool:
        """True when client credentials and some refresh token exist."""
        if not (self.app_id and self.app_secret):
            return False
        return bool(self.seed_refresh_token) or self.token_path.exists()

    def _load(self) -> dict[str, Any]:
        if not self.token_path.exists():
            return {}
        try:
            with open(self.token_path, encoding="utf-8") as f:
                data: dict[str, Any] = json.load(f)
            return data
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable token file %s: %s", self.token_path, exc)
            return {}

    def _save(self, token: dict[str, Any]) -> None:
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(
            self.token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(token, f, indent=2)
        os.chmod(self.token_path, 0o600)
        logger.debug("Token persisted to %s", self.token_path)

    @staticmethod
    def is_expired(token: dict[str, Any], now: float | None = None) -> bool:
        """True when the access token is missing or about to expire."""
        if not token.get("access_token"):
            return True
        current = time.time() if now is None else now
        return float(token.get("expires_at", 0)) - _EXPIRY_SKEW <= current

    def _post_refresh(self, session: Any, refresh_token: str) -> Any:
        return session.post(
            Settings.ML_TOKEN_URL,
            data={
                "grant_type": "refresh_token",
                "client_id": self.app_id,
                "client_secret": self.app_secret,
                "refresh_token": refresh_token,
            },
            headers={"Accept": "application/json"},
            timeout=Settings.TOKEN_TIMEOUT,
        )

    def refresh(self, refresh_token: str) -> dict[str, Any]:
        """Exchange *refresh_token* for a new access token and persist it."""
        if not (self.app_id and self.app_secret and refresh_token):
            raise TokenRefreshError(
                "auth failure: ML_APP_ID, ML_APP_SECRET and a refresh token "
                "are required"
            )
        try:
            if self.session is not None:
                resp = self._post_refresh(self.session, refresh_token)
            else:
                with curl_requests.Session() as session:
                    resp = self._post_refresh(session, refresh_token)
        except curl_requests.RequestsError as exc:
            raise TokenRefreshError(f"auth failure: token refresh failed: {exc}") from exc

        if resp.status_code != 200:
            raise TokenRefreshError(
                f"auth failure: token refresh returned HTTP {resp.status_code}; "
                "generate a new refresh token via OAuth"
            )
        try:
            payload: dict[str, Any] = resp.json()
            access_token = str(payload["access_token"])
        except (ValueError, KeyError) as exc:
            raise TokenRefreshError(
                "auth failure: token response missing access_token"
            ) from exc

        token = {
            "access_token": access_token,
            "refresh_token": payload.get("refresh_token") or refresh_token,
            "expires_at": time.time() + float(payload.get("expires_in", 21600)),
        }
        self._save(token)
        logger.info("Mercado Livre access token refreshed")
        return token

    def get_access_token(self) -> str:
        """Return a non-expired access token, refreshing when required."""
        token = self._load()
        if not self.is_expired(token):
            return str(token["access_token"])
        refresh_token = token.get("refresh_token") or self.seed_refresh_token
        return str(self.refresh(refresh_token)["access_token"])
