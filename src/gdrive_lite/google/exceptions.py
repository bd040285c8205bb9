"""Google authentication exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gdrive_lite.google.token_store import TokenRecord


class GoogleAuthError(Exception):
    """Base exception for Google authentication errors."""

    pass


class CredentialsNotFoundError(GoogleAuthError):
    """Raised when no OAuth client credentials can be found."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Credentials file not found at {path}. "
            "Pass client_id/client_secret, set GDRIVE_CLIENT_ID and "
            "GDRIVE_CLIENT_SECRET, or download OAuth credentials from Google Cloud Console."
        )


class AuthorizationRequired(GoogleAuthError):
    """Raised when user consent is needed but no code receiver is configured."""

    def __init__(self, auth_url: str, message: str | None = None):
        self.auth_url = auth_url
        super().__init__(message or f"Authorization required. Visit: {auth_url}")


class ScopeMismatchError(GoogleAuthError):
    """Raised when token scopes don't match required scopes."""

    def __init__(self, missing_scopes: set[str]):
        self.missing_scopes = missing_scopes
        super().__init__(f"Token missing required scopes: {missing_scopes}")


# Consent flow


class ConsentError(GoogleAuthError):
    """Base exception for consent flow failures."""

    pass


class AuthDeniedError(ConsentError):
    """Raised when the user denies consent."""

    def __init__(self, reason: str = "access_denied"):
        self.reason = reason
        super().__init__(f"Authorization denied: {reason}")


class AuthExchangeError(ConsentError):
    """Raised when exchanging the authorization code fails."""

    pass


class AuthCodeInvalidError(ConsentError):
    """Raised when the authorization code is missing, malformed or expired."""

    pass


# Token refresh


class TokenError(GoogleAuthError):
    """Raised when there's an issue with the OAuth token."""

    pass


class RefreshTokenInvalidError(TokenError):
    """Raised when the refresh token is absent, revoked or expired."""

    pass


class RefreshError(TokenError):
    """Raised when a refresh request fails for a non-credential reason."""

    pass


# Token store


class TokenStoreError(GoogleAuthError):
    """Base exception for token cache problems."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class TokenStoreUnreadableError(TokenStoreError):
    """Raised when the token cache exists but cannot be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(path, f"Token cache at {path} is unreadable: {reason}")


class TokenStoreUnwritableError(TokenStoreError):
    """Raised when the token cache cannot be written.

    The token that failed to persist is kept on ``record`` and stays usable
    for the lifetime of the process.
    """

    def __init__(self, path: str, reason: str, record: TokenRecord | None = None):
        self.record = record
        super().__init__(path, f"Failed to write token cache at {path}: {reason}")
