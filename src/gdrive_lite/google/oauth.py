"""Google OAuth management using Authlib.

This module ties the token cache, the consent flow and the token refresher
together:
- Tokens are loaded from the local cache on construction
- Expired access tokens are refreshed transparently before each API call
- The consent flow runs when there is no token or it cannot be refreshed

Credentials are stored in the gdrive-lite config directory by default:
    ~/.config/gdrive-lite/credentials.json - OAuth client credentials
    ~/.config/gdrive-lite/token.json       - OAuth tokens
"""

import json
import logging
import os
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

import requests
from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from gdrive_lite.config import (
    CLIENT_ID_ENV,
    CLIENT_SECRET_ENV,
    GOOGLE_CREDENTIALS,
    GOOGLE_TOKEN,
)
from gdrive_lite.google.consent import ConsentFlow
from gdrive_lite.google.exceptions import (
    CredentialsNotFoundError,
    RefreshTokenInvalidError,
    TokenError,
    TokenStoreUnwritableError,
)
from gdrive_lite.google.receivers import CodeReceiver
from gdrive_lite.google.refresher import TokenRefresher
from gdrive_lite.google.token_store import TokenRecord, TokenStore, is_valid, utcnow

logger = logging.getLogger(__name__)


# Common Google Drive OAuth scopes
SCOPES = {
    "drive": "https://www.googleapis.com/auth/drive",
    "drive_readonly": "https://www.googleapis.com/auth/drive.readonly",
    "drive_file": "https://www.googleapis.com/auth/drive.file",
    "drive_metadata_readonly": "https://www.googleapis.com/auth/drive.metadata.readonly",
}


class AuthState(Enum):
    """Authentication state of a ``GoogleOAuth`` instance."""

    NO_TOKEN = "no_token"
    VALID_TOKEN = "valid"
    EXPIRED_TOKEN = "expired"
    AUTHENTICATING = "authenticating"


class GoogleOAuth:
    """Google OAuth management using Authlib.

    Owns the token cache for one OAuth client and drives it to a valid
    access token on demand.

    Example:
        >>> auth = GoogleOAuth(receiver=LocalServerReceiver())
        >>> token = auth.ensure_valid_token()
        >>> drive_service = auth.build_service("drive", "v3")
    """

    AUTHORIZE_URL = ConsentFlow.AUTHORIZE_URL
    TOKEN_URL = ConsentFlow.TOKEN_URL
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        token: TokenRecord | dict[str, Any] | None = None,
        scopes: list[str] | None = None,
        token_path: str | Path | None = None,
        credentials_path: str | Path | None = None,
        receiver: CodeReceiver | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize Google OAuth.

        Args:
            client_id: OAuth client ID. Falls back to GDRIVE_CLIENT_ID, then
                the credentials file.
            client_secret: OAuth client secret. Falls back to
                GDRIVE_CLIENT_SECRET, then the credentials file.
            token: Existing token to seed the cache with instead of loading it.
                A TokenRecord, a token endpoint response dict, or a dict in
                the cache file layout. Missing scopes default to ``scopes``.
            scopes: List of scope names (e.g., ["drive"]) or full URLs.
                If None, defaults to ["drive"].
            token_path: Path to store/load tokens. Defaults to
                ~/.config/gdrive-lite/token.json.
            credentials_path: Path to OAuth credentials file. Defaults to
                ~/.config/gdrive-lite/credentials.json.
            receiver: Code receiver used when user consent is needed. Without
                one, consent raises AuthorizationRequired.
            clock: Callable returning the current aware UTC datetime.
        """
        self.token_path = Path(token_path) if token_path else GOOGLE_TOKEN
        self.credentials_path = Path(credentials_path) if credentials_path else GOOGLE_CREDENTIALS

        # Resolve scope names to full URLs
        self.required_scopes = self._resolve_scopes(scopes or ["drive"])

        if not client_id or not client_secret:
            client_id, client_secret = self._load_client_credentials()

        self.client_id = client_id
        self.client_secret = client_secret
        self.clock = clock or utcnow

        self.store = TokenStore(self.token_path, client_id=self.client_id)
        self.consent = ConsentFlow(
            self.client_id,
            self.client_secret,
            self.required_scopes,
            self.store,
            receiver=receiver,
            clock=self.clock,
        )
        self.refresher = TokenRefresher(
            self.client_id, self.client_secret, self.store, clock=self.clock
        )

        self._authenticating = False
        self.last_refresh: datetime | None = None
        self.refresh_count = 0

        if token is not None:
            self._record = self._seed_record(token)
        else:
            self._record = self._load_token()

        logger.debug(f"Initial auth state: {self.state.value}")

    def _resolve_scopes(self, scopes: list[str]) -> list[str]:
        """Resolve scope names to full URLs."""
        resolved = []
        for scope in scopes:
            if scope.startswith("https://"):
                resolved.append(scope)
            elif scope in SCOPES:
                resolved.append(SCOPES[scope])
            else:
                raise ValueError(
                    f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
                )
        return resolved

    def _load_client_credentials(self) -> tuple[str, str]:
        """Load OAuth client credentials from the environment or file."""
        env_id = os.environ.get(CLIENT_ID_ENV)
        env_secret = os.environ.get(CLIENT_SECRET_ENV)
        if env_id and env_secret:
            return env_id, env_secret

        if not self.credentials_path.exists():
            raise CredentialsNotFoundError(str(self.credentials_path))

        with open(self.credentials_path) as f:
            creds = json.load(f)

        # Handle both web and installed app credential formats
        if "installed" in creds:
            app_creds = creds["installed"]
        elif "web" in creds:
            app_creds = creds["web"]
        else:
            raise ValueError("Invalid credentials.json format. Expected 'installed' or 'web' key.")

        return app_creds["client_id"], app_creds["client_secret"]

    def _load_token(self) -> TokenRecord | None:
        """Load token from the cache, dropping it if scopes are missing."""
        record = self.store.load()
        if record is None:
            return None

        current_scopes = set(record.scopes)
        required_scopes = set(self.required_scopes)
        if not required_scopes.issubset(current_scopes):
            missing = required_scopes - current_scopes
            logger.warning(f"Token missing required scopes: {missing}")
            return None

        logger.info(f"Loaded token with scopes: {current_scopes}")
        return record

    def _seed_record(self, token: TokenRecord | dict[str, Any]) -> TokenRecord:
        """Turn a caller-supplied token into a record and persist it."""
        if isinstance(token, TokenRecord):
            record = token
        elif "access_token" in token:
            record = TokenRecord.from_token_response(
                token, self.clock(), default_scopes=self.required_scopes
            )
        elif "token" in token and "expiry" in token:
            record = TokenRecord.from_dict(token)
        else:
            raise TokenError(
                "Unrecognized token dict: expected 'access_token' (token response) "
                "or 'token' and 'expiry' (cache layout)"
            )

        if not record.scopes:
            record = replace(record, scopes=list(self.required_scopes))

        try:
            self.store.save(record)
        except TokenStoreUnwritableError as e:
            logger.warning(f"{e}; using supplied token in memory only")
        return record

    @property
    def receiver(self) -> CodeReceiver | None:
        return self.consent.receiver

    @receiver.setter
    def receiver(self, receiver: CodeReceiver | None) -> None:
        self.consent.receiver = receiver

    @property
    def token(self) -> TokenRecord | None:
        """The in-memory token record, if any."""
        return self._record

    @property
    def state(self) -> AuthState:
        """Current authentication state."""
        if self._authenticating:
            return AuthState.AUTHENTICATING
        if self._record is None:
            return AuthState.NO_TOKEN
        if is_valid(self._record, self.clock()):
            return AuthState.VALID_TOKEN
        return AuthState.EXPIRED_TOKEN

    def ensure_valid_token(self) -> str:
        """Return a valid access token, refreshing or re-authorizing as needed.

        A cached token that is still valid is returned without any network
        call. An expired token is refreshed; if its refresh token is missing
        or rejected, the consent flow runs.

        Returns:
            The access token string.

        Raises:
            AuthorizationRequired: If consent is needed but no receiver is set.
            ConsentError: If the consent flow fails.
            RefreshError: If the refresh fails for a non-credential reason.
            TokenStoreUnwritableError: If the new token could not be persisted.
                The token is still used for the rest of the process.
        """
        state = self.state
        if state is AuthState.VALID_TOKEN:
            return self._record.access_token

        self._authenticating = True
        try:
            if state is AuthState.EXPIRED_TOKEN:
                logger.debug("token expired")
                try:
                    self._refresh()
                    return self._record.access_token
                except RefreshTokenInvalidError as e:
                    logger.warning(f"{e}; falling back to consent flow")
                    self._record = None

            logger.debug("no token, requesting consent")
            self._authorize()
            return self._record.access_token
        finally:
            self._authenticating = False

    def _refresh(self) -> None:
        previous = self._record
        try:
            self._record = self.refresher.refresh(previous)
        except TokenStoreUnwritableError as e:
            self._record = e.record
            raise
        finally:
            if self._record is not previous:
                self.last_refresh = self.clock()
                self.refresh_count += 1

    def _authorize(self) -> None:
        try:
            self._record = self.consent.authorize()
        except TokenStoreUnwritableError as e:
            self._record = e.record
            raise

    def authorize(self) -> TokenRecord:
        """Run the consent flow regardless of the current state."""
        self._authenticating = True
        try:
            self._authorize()
        finally:
            self._authenticating = False
        return self._record

    def refresh(self) -> TokenRecord:
        """Force a refresh of the current token.

        Raises:
            TokenError: If there is no token to refresh.
        """
        if self._record is None:
            raise TokenError("No token to refresh")
        self._authenticating = True
        try:
            self._refresh()
        finally:
            self._authenticating = False
        return self._record

    def is_authorized(self) -> bool:
        """Check if we have a token with the required scopes.

        The token may be expired; it is refreshed on the next API call.
        """
        if self._record is None:
            return False
        return set(self.required_scopes).issubset(set(self._record.scopes))

    def get_authorization_url(self) -> str:
        """Get a consent URL to show the user."""
        return self.consent.authorization_url()

    def get_credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Returns:
            Google Credentials object carrying a valid access token.
        """
        access_token = self.ensure_valid_token()
        # Expiry left unset so google-auth never attempts its own refresh
        return GoogleCredentials(token=access_token, scopes=self.required_scopes)

    def build_service(self, service_name: str = "drive", version: str = "v3"):
        """Build a Google API service with current credentials.

        Args:
            service_name: Name of the service (e.g., 'drive').
            version: API version (e.g., 'v3').

        Returns:
            Google API service object.
        """
        creds = self.get_credentials()
        return build(service_name, version, credentials=creds, cache_discovery=False)

    def revoke_token(self) -> None:
        """Revoke the current token and clear local storage."""
        if self._record is None:
            logger.warning("No token to revoke")
            return

        revocable = self._record.refresh_token or self._record.access_token
        try:
            requests.post(
                self.REVOKE_URL,
                params={"token": revocable},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=30,
            )
        except requests.RequestException as e:
            logger.warning(f"Failed to revoke token remotely: {e}")

        self.store.clear()
        self._record = None
        logger.info("Token revoked successfully")

    def get_token_info(self) -> dict[str, Any]:
        """Get information about the current token.

        Returns:
            Dictionary with token status, scopes, expiry, etc.
        """
        if self._record is None:
            return {"status": AuthState.NO_TOKEN.value}

        expires_in = (self._record.expires_at - self.clock()).total_seconds()

        return {
            "status": self.state.value,
            "scopes": list(self._record.scopes),
            "expires_in": str(timedelta(seconds=int(max(0, expires_in)))),
            "expires_at": self._record.expires_at.isoformat(),
            "has_refresh_token": bool(self._record.refresh_token),
            "refresh_count": self.refresh_count,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
        }
