"""Credential providers for the recognition and storage backends."""

import base64
import binascii
import json
import threading
from datetime import datetime, timedelta, timezone

import google.auth.transport.requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from transcription_common import setup_logging

from domain.models import BearerToken
from exceptions import ConfigurationError

from .interfaces import CredentialProvider

logger = setup_logging()

# Tokens this close to expiry are refreshed instead of reused.
_EXPIRY_MARGIN = timedelta(seconds=60)


class ServiceAccountCredentialProvider(CredentialProvider):
    """Issues OAuth tokens from a base64-encoded service account key."""

    def __init__(self, encoded_key: str):
        if not encoded_key:
            raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_KEY is not set")
        try:
            info = json.loads(base64.b64decode(encoded_key, validate=True).decode("utf-8"))
            self._credentials = service_account.Credentials.from_service_account_info(info)
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_KEY is not a valid key", e) from e

        self._lock = threading.Lock()
        self._cache: dict[tuple[str, ...], BearerToken] = {}

    @property
    def credentials(self) -> service_account.Credentials:
        """Unscoped credentials for constructing Google API clients."""
        return self._credentials

    @property
    def project_id(self) -> str | None:
        return self._credentials.project_id

    def get_token(self, scopes: tuple[str, ...]) -> BearerToken:
        key = tuple(sorted(scopes))
        with self._lock:
            cached = self._cache.get(key)
            if cached and not self._expiring(cached):
                return cached

            scoped = self._credentials.with_scopes(list(key))
            try:
                scoped.refresh(google.auth.transport.requests.Request())
            except GoogleAuthError as e:
                logger.exception("Service account token refresh failed")
                raise ConfigurationError("Failed to obtain access token", e) from e

            expires_at = scoped.expiry.replace(tzinfo=timezone.utc) if scoped.expiry else None
            token = BearerToken(token=scoped.token, expires_at=expires_at)
            self._cache[key] = token
            logger.info(
                "Access token issued",
                extra={"scopes": list(key), "expires_at": str(expires_at)},
            )
            return token

    def _expiring(self, token: BearerToken) -> bool:
        if token.expires_at is None:
            return False
        return token.expires_at - _EXPIRY_MARGIN <= datetime.now(timezone.utc)


class StaticKeyCredentialProvider(CredentialProvider):
    """Wraps a provider API key that never expires."""

    def __init__(self, api_key: str, env_var: str = "ASSEMBLYAI_API_KEY"):
        if not api_key:
            raise ConfigurationError(f"{env_var} is not set")
        self._api_key = api_key

    def get_token(self, scopes: tuple[str, ...]) -> BearerToken:
        return BearerToken(token=self._api_key)
