"""Browser-based consent flow for installed applications.

Builds the Google authorization URL, hands it to a ``CodeReceiver`` and
exchanges the returned authorization code for an initial token.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from urllib.parse import parse_qs, urlsplit

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.common.security import generate_token
from authlib.integrations.requests_client import OAuth2Session

from gdrive_lite.config import DEFAULT_REDIRECT_URI
from gdrive_lite.google.exceptions import (
    AuthCodeInvalidError,
    AuthDeniedError,
    AuthExchangeError,
    AuthorizationRequired,
    ScopeMismatchError,
)
from gdrive_lite.google.receivers import CodeReceiver
from gdrive_lite.google.token_store import TokenRecord, TokenStore, utcnow

logger = logging.getLogger(__name__)


class ConsentFlow:
    """Obtain a fresh token through the user's consent.

    Example:
        >>> flow = ConsentFlow(client_id, client_secret, scopes, store, LocalServerReceiver())
        >>> record = flow.authorize()
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        scopes: list[str],
        store: TokenStore,
        receiver: CodeReceiver | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = scopes
        self.store = store
        self.receiver = receiver
        self.clock = clock

    @property
    def redirect_uri(self) -> str:
        return self.receiver.redirect_uri if self.receiver else DEFAULT_REDIRECT_URI

    def _session(self) -> OAuth2Session:
        return OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(self.scopes),
            redirect_uri=self.redirect_uri,
            token_endpoint_auth_method="client_secret_post",
            code_challenge_method="S256",
        )

    def _create_authorization_url(
        self, session: OAuth2Session, code_verifier: str
    ) -> tuple[str, str]:
        return session.create_authorization_url(
            self.AUTHORIZE_URL,
            code_verifier=code_verifier,
            access_type="offline",
            prompt="consent",
            include_granted_scopes="true",
        )

    def authorization_url(self) -> str:
        """Return a consent URL for display only (no exchange follows)."""
        url, _ = self._create_authorization_url(self._session(), generate_token(48))
        return url

    def authorize(self) -> TokenRecord:
        """Run the consent flow and persist the resulting token.

        Returns:
            The new token record.

        Raises:
            AuthorizationRequired: If no code receiver is configured.
            AuthDeniedError: If the user denies consent.
            AuthCodeInvalidError: If the code is missing, mismatched or rejected.
            AuthExchangeError: If the token exchange fails.
            ScopeMismatchError: If the user did not grant every required scope.
            TokenStoreUnwritableError: If the token cannot be persisted.
        """
        session = self._session()
        code_verifier = generate_token(48)
        url, state = self._create_authorization_url(session, code_verifier)

        if self.receiver is None:
            raise AuthorizationRequired(
                url,
                "Google Drive requires OAuth authorization. "
                "Run 'gdrive-lite auth login' to authorize.",
            )

        logger.debug("Waiting for authorization response")
        response_url = self.receiver.receive(url)
        code = self._parse_response(response_url, state)

        try:
            token = session.fetch_token(
                self.TOKEN_URL,
                code=code,
                code_verifier=code_verifier,
            )
        except AuthlibBaseError as e:
            if e.error == "invalid_grant":
                raise AuthCodeInvalidError(
                    f"Authorization code rejected: {e.description or e.error}"
                ) from e
            raise AuthExchangeError(f"Token exchange failed: {e}") from e
        except requests.RequestException as e:
            raise AuthExchangeError(f"Token exchange request failed: {e}") from e

        try:
            record = TokenRecord.from_token_response(
                dict(token), self.clock(), default_scopes=self.scopes
            )
        except ValueError as e:
            raise AuthExchangeError(f"Invalid token response: {e}") from e

        missing = set(self.scopes) - set(record.scopes)
        if missing:
            raise ScopeMismatchError(missing)

        logger.info("Consent granted, token obtained")
        self.store.save(record)
        return record

    @staticmethod
    def _parse_response(response_url: str, state: str | None) -> str:
        params = parse_qs(urlsplit(response_url).query)

        if "error" in params:
            raise AuthDeniedError(params["error"][0])

        returned_state = params.get("state", [None])[0]
        if returned_state is not None and state is not None and returned_state != state:
            raise AuthCodeInvalidError("State mismatch in authorization response")

        code = params.get("code", [None])[0]
        if not code:
            raise AuthCodeInvalidError("No authorization code in response")
        return code
