"""Authorization header providers for the target system."""

import base64
import threading
import time
from typing import Callable, Optional

import requests

from .errors import AuthError, ConfigurationError
from .logging_config import get_logger
from .models import AuthConfig, AuthType

logger = get_logger("jobrelay.auth")

TOKEN_EXPIRY_MARGIN_SECONDS = 10
TOKEN_REQUEST_TIMEOUT = 30


class AuthHeaderProvider:
    """Produces the value of an ``Authorization`` header on demand."""

    def get_auth_header(self) -> str:
        raise NotImplementedError


class BasicAuth(AuthHeaderProvider):
    def __init__(self, username: str, password: str):
        self.username = username
        self.password = password

    def get_auth_header(self) -> str:
        encoded = base64.b64encode(f"{self.username}:{self.password}".encode("utf-8")).decode("ascii")
        return "Basic " + encoded


class BearerAuth(AuthHeaderProvider):
    def __init__(self, token: str):
        self.token = token

    def get_auth_header(self) -> str:
        return "Bearer " + self.token


class OAuth2Auth(AuthHeaderProvider):
    """Bearer tokens obtained through the refresh-token grant.

    The access token is cached until shortly before it expires. Refreshes
    are serialized by a per-instance lock: a caller that waited on the lock
    finds the token its predecessor fetched and does not refresh again.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        refresh_token: str,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.refresh_token = refresh_token
        self._session = session or requests.Session()
        self._clock = clock

        self._access_token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def get_auth_header(self) -> str:
        with self._lock:
            if self._access_token and self._clock() < self._expires_at:
                return "Bearer " + self._access_token
            return "Bearer " + self._refresh_access_token()

    def _refresh_access_token(self) -> str:
        """Exchange the refresh token; cached state is only touched on success."""
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        try:
            response = self._session.post(self.token_url, data=payload, timeout=TOKEN_REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise AuthError(f"token request failed: {e}") from e

        if response.status_code != 200:
            raise AuthError(f"token error: status {response.status_code}, body: {response.text}")

        try:
            data = response.json()
            access_token = data["access_token"]
            expires_in = int(data.get("expires_in", 0))
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(f"token parse error: {e}") from e

        self._access_token = access_token
        self._expires_at = self._clock() + (expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
        logger.info("Access token refreshed", token_url=self.token_url, expires_in=expires_in)
        return access_token


def build_auth_provider(config: AuthConfig, session: Optional[requests.Session] = None) -> Optional[AuthHeaderProvider]:
    """Create the provider for an auth config; ``none`` yields no provider."""
    if config.type == AuthType.NONE:
        return None

    if config.type == AuthType.BASIC:
        if not config.username or config.password is None:
            raise ConfigurationError("basic auth requires username and password")
        return BasicAuth(config.username, config.password)

    if config.type == AuthType.BEARER:
        if not config.token:
            raise ConfigurationError("bearer auth requires a token")
        return BearerAuth(config.token)

    if config.type == AuthType.OAUTH2:
        missing = [
            name
            for name in ("client_id", "client_secret", "token_url", "refresh_token")
            if not getattr(config, name)
        ]
        if missing:
            raise ConfigurationError(f"oauth2 auth requires {', '.join(missing)}")
        return OAuth2Auth(
            client_id=config.client_id,
            client_secret=config.client_secret,
            token_url=config.token_url,
            refresh_token=config.refresh_token,
            session=session,
        )

    raise ConfigurationError(f"unknown auth type: {config.type}")
