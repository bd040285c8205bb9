"""Silent renewal of expired access tokens."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.requests_client import OAuth2Session

from gdrive_lite.google.exceptions import RefreshError, RefreshTokenInvalidError
from gdrive_lite.google.token_store import TokenRecord, TokenStore, utcnow

logger = logging.getLogger(__name__)


class TokenRefresher:
    """Exchange a refresh token for a new access token."""

    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        store: TokenStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.store = store
        self.clock = clock

    def refresh(self, record: TokenRecord) -> TokenRecord:
        """Refresh ``record`` and persist the result.

        The store is left untouched when the refresh fails.

        Args:
            record: The current (usually expired) token record.

        Returns:
            A new record with a fresh access token and expiry.

        Raises:
            RefreshTokenInvalidError: If there is no refresh token or the
                provider rejects it. Re-run the consent flow.
            RefreshError: On network failure or any other provider error.
            TokenStoreUnwritableError: If the new token cannot be persisted.
        """
        if not record.refresh_token:
            raise RefreshTokenInvalidError("No refresh token available")

        session = OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(record.scopes),
            token=record.to_authlib(),
            token_endpoint_auth_method="client_secret_post",
        )

        logger.info("Token expired, refreshing...")
        try:
            token = session.refresh_token(self.TOKEN_URL, refresh_token=record.refresh_token)
        except AuthlibBaseError as e:
            if e.error == "invalid_grant":
                raise RefreshTokenInvalidError(
                    f"Refresh token rejected: {e.description or e.error}"
                ) from e
            raise RefreshError(f"Failed to refresh token: {e}") from e
        except requests.RequestException as e:
            raise RefreshError(f"Refresh request failed: {e}") from e

        try:
            new_record = TokenRecord.from_token_response(dict(token), self.clock(), previous=record)
        except ValueError as e:
            raise RefreshError(f"Invalid refresh response: {e}") from e

        self.store.save(new_record)
        logger.info("Token refreshed")
        return new_record
