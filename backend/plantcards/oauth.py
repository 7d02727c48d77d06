"""Google OAuth code flow used by the redirect callback."""
import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode
from uuid import uuid4

import httpx
from jose import JWTError, jwt

from plantcards.config import Settings, get_settings
from plantcards.database import utcnow

logger = logging.getLogger("plantcards.oauth")

STATE_TTL_MINUTES = 10


class OAuthError(Exception):
    pass


def safe_next(next_path: Optional[str]) -> str:
    """Only local paths are allowed as post-login targets."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//") or "\\" in next_path:
        return "/"
    return next_path


def sign_state(next_path: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    payload = {
        "next": safe_next(next_path),
        "nonce": uuid4().hex,
        "exp": utcnow() + timedelta(minutes=STATE_TTL_MINUTES),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm="HS256")


def read_state(state: Optional[str], settings: Optional[Settings] = None) -> str:
    """Return the ``next`` path carried by a signed state, or raise ``OAuthError``."""
    if not state:
        raise OAuthError("Missing state")
    settings = settings or get_settings()
    try:
        payload = jwt.decode(state, settings.jwt_secret_key, algorithms=["HS256"])
    except JWTError as exc:
        raise OAuthError("Invalid state") from exc
    return safe_next(payload.get("next"))


class GoogleOAuthClient:
    def __init__(self, settings: Settings, timeout: float = 10.0):
        self.settings = settings
        self.timeout = timeout

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.settings.google_client_id,
            "redirect_uri": self.settings.oauth_redirect_url,
            "response_type": "code",
            "scope": "openid email profile",
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{self.settings.google_authorize_url}?{urlencode(params)}"

    def exchange_code(self, code: str) -> dict:
        data = {
            "code": code,
            "client_id": self.settings.google_client_id,
            "client_secret": self.settings.google_client_secret,
            "redirect_uri": self.settings.oauth_redirect_url,
            "grant_type": "authorization_code",
        }
        try:
            response = httpx.post(self.settings.google_token_url, data=data, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("OAuth code exchange failed: %s", exc)
            raise OAuthError("Code exchange failed") from exc
        tokens = response.json()
        if "access_token" not in tokens:
            raise OAuthError("Provider returned no access token")
        return tokens

    def fetch_userinfo(self, access_token: str) -> dict:
        try:
            response = httpx.get(
                self.settings.google_userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("OAuth userinfo request failed: %s", exc)
            raise OAuthError("Could not read user info") from exc
        info = response.json()
        if not info.get("email") or not info.get("sub"):
            raise OAuthError("Provider did not return an email address")
        return info


def get_oauth_client() -> Optional[GoogleOAuthClient]:
    settings = get_settings()
    if not settings.oauth_enabled:
        return None
    return GoogleOAuthClient(settings)
