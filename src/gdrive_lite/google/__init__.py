"""Google OAuth authentication utilities."""

from gdrive_lite.google.consent import ConsentFlow
from gdrive_lite.google.exceptions import (
    AuthCodeInvalidError,
    AuthDeniedError,
    AuthExchangeError,
    AuthorizationRequired,
    ConsentError,
    CredentialsNotFoundError,
    GoogleAuthError,
    RefreshError,
    RefreshTokenInvalidError,
    ScopeMismatchError,
    TokenError,
    TokenStoreError,
    TokenStoreUnreadableError,
    TokenStoreUnwritableError,
)
from gdrive_lite.google.oauth import AuthState, GoogleOAuth
from gdrive_lite.google.receivers import CodeReceiver, LocalServerReceiver, ManualPasteReceiver
from gdrive_lite.google.refresher import TokenRefresher
from gdrive_lite.google.token_store import TokenRecord, TokenStore, is_valid

__all__ = [
    "GoogleOAuth",
    "AuthState",
    "ConsentFlow",
    "TokenRefresher",
    "TokenRecord",
    "TokenStore",
    "is_valid",
    "CodeReceiver",
    "LocalServerReceiver",
    "ManualPasteReceiver",
    "GoogleAuthError",
    "CredentialsNotFoundError",
    "AuthorizationRequired",
    "ConsentError",
    "AuthDeniedError",
    "AuthExchangeError",
    "AuthCodeInvalidError",
    "TokenError",
    "RefreshTokenInvalidError",
    "RefreshError",
    "TokenStoreError",
    "TokenStoreUnreadableError",
    "TokenStoreUnwritableError",
    "ScopeMismatchError",
]
