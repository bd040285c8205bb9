"""Local token cache.

A ``TokenStore`` is a durable single-slot cache for one ``TokenRecord``.
Tokens are written in the Google "authorized user" JSON layout so the file
can also be read by ``google.oauth2.credentials.Credentials``:

    {
      "token": "...",
      "refresh_token": "...",
      "token_uri": "https://oauth2.googleapis.com/token",
      "client_id": "...",
      "scopes": ["https://www.googleapis.com/auth/drive"],
      "type": "Bearer",
      "expiry": "2024-05-01T12:00:00+00:00"
    }

The expiry is always stored as an absolute timestamp with a UTC offset.
No locking is performed; when several processes share one file the last
writer wins.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from gdrive_lite.google.exceptions import (
    TokenStoreUnreadableError,
    TokenStoreUnwritableError,
)

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"

# Google access tokens live for an hour unless the response says otherwise
DEFAULT_EXPIRES_IN = 3600


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _parse_expiry(value: Any) -> datetime:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            # google-auth writes naive UTC timestamps
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    raise ValueError(f"unsupported expiry value: {value!r}")


def _parse_scopes(value: Any) -> list[str]:
    if isinstance(value, str):
        return value.split()
    return list(value)


@dataclass
class TokenRecord:
    """An OAuth access token with its refresh token and absolute expiry."""

    access_token: str
    expires_at: datetime
    refresh_token: str | None = None
    scopes: list[str] = field(default_factory=list)
    token_type: str = "Bearer"

    @classmethod
    def from_token_response(
        cls,
        token: dict[str, Any],
        now: datetime,
        previous: TokenRecord | None = None,
        default_scopes: list[str] | None = None,
    ) -> TokenRecord:
        """Build a record from a token endpoint response.

        A missing refresh token or scope in the response falls back to the
        values of ``previous``.

        Raises:
            ValueError: If the response carries no access token.
        """
        access_token = token.get("access_token")
        if not access_token:
            raise ValueError("token response has no access_token")

        if token.get("expires_in") is not None:
            expires_at = now + timedelta(seconds=int(token["expires_in"]))
        elif token.get("expires_at") is not None:
            expires_at = _parse_expiry(token["expires_at"])
        else:
            expires_at = now + timedelta(seconds=DEFAULT_EXPIRES_IN)

        refresh_token = token.get("refresh_token") or (previous.refresh_token if previous else None)

        if token.get("scope"):
            scopes = token["scope"].split()
        elif previous is not None:
            scopes = list(previous.scopes)
        else:
            scopes = list(default_scopes or [])

        return cls(
            access_token=access_token,
            expires_at=expires_at,
            refresh_token=refresh_token,
            scopes=scopes,
            token_type=token.get("token_type", "Bearer"),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenRecord:
        """Parse the on-disk layout."""
        return cls(
            access_token=data["token"],
            expires_at=_parse_expiry(data["expiry"]),
            refresh_token=data.get("refresh_token"),
            scopes=_parse_scopes(data.get("scopes", [])),
            token_type=data.get("type", "Bearer"),
        )

    def to_dict(self, client_id: str | None = None) -> dict[str, Any]:
        """Serialize to the on-disk layout."""
        return {
            "token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_uri": TOKEN_URI,
            "client_id": client_id,
            "scopes": list(self.scopes),
            "type": self.token_type,
            "expiry": self.expires_at.isoformat(),
        }

    def to_authlib(self) -> dict[str, Any]:
        """Convert to the token dict an authlib ``OAuth2Session`` expects."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_at": int(self.expires_at.timestamp()),
            "scope": " ".join(self.scopes),
        }


def is_valid(record: TokenRecord, now: datetime) -> bool:
    """Return True iff the access token has not yet expired at ``now``."""
    return now < record.expires_at


class TokenStore:
    """Single-slot JSON token cache, keyed by OAuth client id."""

    is_valid = staticmethod(is_valid)

    def __init__(self, path: str | Path, client_id: str | None = None):
        self.path = Path(path)
        self.client_id = client_id

    def read(self) -> TokenRecord | None:
        """Read the cached record.

        Returns:
            The record, or None if there is no cache file or it belongs to a
            different client id.

        Raises:
            TokenStoreUnreadableError: If the file exists but cannot be parsed.
        """
        if not self.path.exists():
            logger.info(f"No token cache at {self.path}")
            return None

        try:
            with open(self.path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            cached_client = data.get("client_id")
            record = TokenRecord.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise TokenStoreUnreadableError(str(self.path), str(e)) from e

        if self.client_id and cached_client and cached_client != self.client_id:
            logger.info(f"Token cache at {self.path} belongs to another client, ignoring")
            return None

        return record

    def load(self) -> TokenRecord | None:
        """Read the cached record, treating a corrupt cache as absent."""
        try:
            return self.read()
        except TokenStoreUnreadableError as e:
            logger.warning(f"{e}; treating as no token")
            return None

    def save(self, record: TokenRecord) -> None:
        """Overwrite the cache with ``record``.

        Raises:
            TokenStoreUnwritableError: If the file cannot be written. The
                record is attached to the exception.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(record.to_dict(self.client_id), f, indent=2)
        except OSError as e:
            raise TokenStoreUnwritableError(str(self.path), str(e), record=record) from e

        logger.info(f"Token saved to {self.path}")

    def clear(self) -> None:
        """Delete the cache file if present."""
        if self.path.exists():
            self.path.unlink()
            logger.info(f"Token cache {self.path} removed")
