"""OAuth session providers for the YouTube Data API."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from .config import SchedulerConfig
from .errors import AuthError

LOGGER = logging.getLogger("livestream_scheduler.auth")

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/youtube",)


class AuthProvider:
    """Source of an authenticated session usable for API calls."""

    def get_valid_session(self) -> Any:
        raise NotImplementedError


def _write_token(path: Path, credentials: Credentials) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(credentials.to_json(), encoding="utf-8")


class StoredTokenAuth(AuthProvider):
    """Use a persisted authorized-user token, refreshing it when needed."""

    def __init__(self, token_path: Path, scopes: Sequence[str] = SCOPES) -> None:
        self.token_path = Path(token_path)
        self.scopes = list(scopes)

    def get_valid_session(self) -> Credentials:
        if not self.token_path.exists():
            raise AuthError(f"Token file {self.token_path} not found; run 'authorize'.")
        try:
            credentials = Credentials.from_authorized_user_file(
                str(self.token_path), self.scopes
            )
        except (ValueError, OSError) as exc:
            raise AuthError(f"Could not load token {self.token_path}: {exc}") from exc

        if not credentials.refresh_token:
            raise AuthError(
                f"Missing refresh_token in {self.token_path}. Delete it and reauthorize."
            )

        if not credentials.valid:
            try:
                credentials.refresh(Request())
            except RefreshError as exc:
                raise AuthError(f"Token refresh failed: {exc}") from exc
            _write_token(self.token_path, credentials)
            LOGGER.info("Access token refreshed and saved to %s", self.token_path)
        return credentials


class InteractiveConsentAuth(AuthProvider):
    """Run the browser consent flow and persist the resulting token."""

    def __init__(
        self,
        client_secret_path: Path,
        token_path: Path,
        scopes: Sequence[str] = SCOPES,
        port: int = 8080,
        open_browser: bool = True,
    ) -> None:
        self.client_secret_path = Path(client_secret_path)
        self.token_path = Path(token_path)
        self.scopes = list(scopes)
        self.port = port
        self.open_browser = open_browser

    def get_valid_session(self) -> Credentials:
        if not self.client_secret_path.exists():
            raise AuthError(f"Client secret {self.client_secret_path} not found.")
        flow = InstalledAppFlow.from_client_secrets_file(
            str(self.client_secret_path), self.scopes
        )
        try:
            credentials = flow.run_local_server(
                port=self.port,
                open_browser=self.open_browser,
                access_type="offline",
                prompt="consent",
                authorization_prompt_message="Authorize this app by visiting: {url}",
            )
        except (GoogleAuthError, OAuth2Error) as exc:
            raise AuthError(f"Error retrieving access token: {exc}") from exc

        if not credentials.refresh_token:
            raise AuthError(
                "Token does not include a refresh_token. "
                "Delete the token file and authorize again."
            )
        _write_token(self.token_path, credentials)
        LOGGER.info("Token saved to %s", self.token_path)
        return credentials


class ServiceAccountAuth(AuthProvider):
    def __init__(self, key_path: Path, scopes: Sequence[str] = SCOPES) -> None:
        self.key_path = Path(key_path)
        self.scopes = list(scopes)

    def get_valid_session(self) -> service_account.Credentials:
        try:
            credentials = service_account.Credentials.from_service_account_file(
                str(self.key_path), scopes=self.scopes
            )
        except (ValueError, OSError) as exc:
            raise AuthError(f"Could not load service account {self.key_path}: {exc}") from exc
        return credentials


def auth_provider_from_config(config: SchedulerConfig) -> AuthProvider:
    mode = config.auth_mode
    if mode == "service_account":
        if not config.service_account_path:
            raise AuthError("AUTH_MODE=service_account requires SERVICE_ACCOUNT_PATH.")
        return ServiceAccountAuth(config.service_account_path)
    if mode == "interactive" or (mode == "auto" and not config.token_path.exists()):
        return InteractiveConsentAuth(
            config.client_secret_path, config.token_path, port=config.oauth_port
        )
    return StoredTokenAuth(config.token_path)
