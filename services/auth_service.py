from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from services.errors import AuthError, PersistenceError

LOGGER = logging.getLogger(__name__)
SCOPES: Iterable[str] = ("https://www.googleapis.com/auth/gmail.modify",)


class AuthService:
    """Load, refresh and persist the OAuth2 credential for the mailbox."""

    def __init__(self, credentials_file: Path, token_file: Path):
        self._credentials_file = credentials_file
        self._token_file = token_file

    def persist(self, creds: Credentials) -> None:
        LOGGER.debug("Persisting OAuth tokens to %s", self._token_file)
        try:
            self._token_file.parent.mkdir(parents=True, exist_ok=True)
            self._token_file.write_text(creds.to_json(), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Unable to write token file {self._token_file}: {exc}") from exc

    def load(self) -> Credentials | None:
        if not self._token_file.exists():
            return None
        LOGGER.debug("Loading cached credential from %s", self._token_file)
        try:
            data = json.loads(self._token_file.read_text(encoding="utf-8"))
            return Credentials.from_authorized_user_info(data, SCOPES)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unusable token file %s: %s", self._token_file, exc)
            return None

    def authenticate(self) -> Credentials:
        creds = self.load()
        if creds and creds.expired and creds.refresh_token:
            LOGGER.info("Refreshing expired Gmail token")
            try:
                creds.refresh(Request())
            except GoogleAuthError as exc:
                raise AuthError(f"Unable to refresh Gmail token: {exc}") from exc
            self.persist(creds)
            return creds

        if creds and creds.valid:
            return creds

        return self._run_flow()

    def _run_flow(self) -> Credentials:
        if not self._credentials_file.exists():
            raise AuthError(
                f"Credentials file not found at {self._credentials_file}. "
                "Download the OAuth client credentials from the Google Cloud Console."
            )
        LOGGER.info("Initiating OAuth flow using %s", self._credentials_file)
        try:
            flow = InstalledAppFlow.from_client_secrets_file(str(self._credentials_file), scopes=SCOPES)
            creds = flow.run_local_server(port=0)
        except (GoogleAuthError, OAuth2Error, ValueError) as exc:
            raise AuthError(f"Interactive authorization failed: {exc}") from exc
        if not creds:
            raise AuthError("Interactive authorization returned no credentials")
        self.persist(creds)
        return creds
