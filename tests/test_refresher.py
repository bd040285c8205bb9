"""Tests for the token refresher."""

from datetime import timedelta
from unittest.mock import patch

import pytest
import requests
from authlib.integrations.base_client import OAuthError
from authlib.integrations.requests_client import OAuth2Session

from gdrive_lite.google import (
    RefreshError,
    RefreshTokenInvalidError,
    TokenRefresher,
    TokenStore,
)

from conftest import NOW

REFRESH_RESPONSE = {"access_token": "new-token", "expires_in": 3600, "token_type": "Bearer"}


@pytest.fixture
def store(token_path, expired_record):
    store = TokenStore(token_path, client_id="client-id")
    store.save(expired_record)
    return store


@pytest.fixture
def refresher(store, clock):
    return TokenRefresher("client-id", "client-secret", store, clock=clock)


class TestRefresh:
    def test_success(self, refresher, store, expired_record):
        """Should return and persist a record with a later expiry."""
        with patch.object(
            OAuth2Session, "refresh_token", return_value=dict(REFRESH_RESPONSE)
        ) as refresh:
            record = refresher.refresh(expired_record)

        assert refresh.call_args.kwargs["refresh_token"] == "r-1"
        assert record.access_token == "new-token"
        assert record.access_token != expired_record.access_token
        assert record.expires_at > expired_record.expires_at
        assert record.expires_at == NOW + timedelta(hours=1)
        assert store.load() == record

    def test_preserves_refresh_token_and_scopes(self, refresher, expired_record):
        with patch.object(OAuth2Session, "refresh_token", return_value=dict(REFRESH_RESPONSE)):
            record = refresher.refresh(expired_record)
        assert record.refresh_token == "r-1"
        assert record.scopes == expired_record.scopes

    def test_rotated_refresh_token(self, refresher, expired_record):
        response = dict(REFRESH_RESPONSE, refresh_token="r-2")
        with patch.object(OAuth2Session, "refresh_token", return_value=response):
            record = refresher.refresh(expired_record)
        assert record.refresh_token == "r-2"

    def test_revoked_refresh_token_leaves_store(self, refresher, token_path, expired_record):
        """A rejected refresh token should raise and leave the cache untouched."""
        before = token_path.read_bytes()
        error = OAuthError(error="invalid_grant", description="Token has been expired or revoked.")
        with patch.object(OAuth2Session, "refresh_token", side_effect=error):
            with pytest.raises(RefreshTokenInvalidError, match="expired or revoked"):
                refresher.refresh(expired_record)
        assert token_path.read_bytes() == before

    def test_missing_refresh_token(self, refresher, expired_record):
        expired_record.refresh_token = None
        with patch.object(OAuth2Session, "refresh_token") as refresh:
            with pytest.raises(RefreshTokenInvalidError):
                refresher.refresh(expired_record)
        refresh.assert_not_called()

    def test_network_failure(self, refresher, token_path, expired_record):
        before = token_path.read_bytes()
        with patch.object(
            OAuth2Session, "refresh_token", side_effect=requests.ConnectionError("offline")
        ):
            with pytest.raises(RefreshError, match="offline"):
                refresher.refresh(expired_record)
        assert token_path.read_bytes() == before

    def test_other_provider_error(self, refresher, expired_record):
        error = OAuthError(error="invalid_client", description="The OAuth client was not found.")
        with patch.object(OAuth2Session, "refresh_token", side_effect=error):
            with pytest.raises(RefreshError):
                refresher.refresh(expired_record)
