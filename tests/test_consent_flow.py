"""Tests for the consent flow."""

from datetime import timedelta
from unittest.mock import patch

import pytest
import requests
from authlib.integrations.base_client import OAuthError
from authlib.integrations.requests_client import OAuth2Session

from gdrive_lite.google import (
    AuthCodeInvalidError,
    AuthDeniedError,
    AuthExchangeError,
    AuthorizationRequired,
    ConsentFlow,
    ScopeMismatchError,
    TokenStore,
    TokenStoreUnwritableError,
)

from conftest import DRIVE_SCOPE, NOW, StaticCodeReceiver

TOKEN_RESPONSE = {
    "access_token": "ya29.fresh",
    "expires_in": 3599,
    "refresh_token": "r-1",
    "scope": DRIVE_SCOPE,
    "token_type": "Bearer",
}


@pytest.fixture
def store(token_path):
    return TokenStore(token_path, client_id="client-id")


def make_flow(store, receiver, clock):
    return ConsentFlow(
        "client-id",
        "client-secret",
        [DRIVE_SCOPE],
        store,
        receiver=receiver,
        clock=clock,
    )


class TestAuthorizationUrl:
    def test_url_contents(self, store, receiver, clock):
        """Should request offline access for the configured client and scope."""
        url = make_flow(store, receiver, clock).authorization_url()
        assert url.startswith("https://accounts.google.com/o/oauth2/auth?")
        assert "client_id=client-id" in url
        assert "access_type=offline" in url
        assert "scope=" in url
        assert "redirect_uri=" in url
        assert "code_challenge=" in url


class TestAuthorize:
    def test_approval_saves_token(self, store, receiver, clock):
        """Approval with code ABC123 should persist a usable token."""
        with patch.object(OAuth2Session, "fetch_token", return_value=dict(TOKEN_RESPONSE)) as fetch:
            record = make_flow(store, receiver, clock).authorize()

        assert fetch.call_args.kwargs["code"] == "ABC123"
        assert record.access_token == "ya29.fresh"
        assert record.refresh_token == "r-1"
        assert record.expires_at == NOW + timedelta(seconds=3599)
        assert store.load() == record

    def test_receiver_gets_authorization_url(self, store, receiver, clock):
        with patch.object(OAuth2Session, "fetch_token", return_value=dict(TOKEN_RESPONSE)):
            make_flow(store, receiver, clock).authorize()
        assert len(receiver.urls) == 1
        assert "prompt=consent" in receiver.urls[0]

    def test_denied(self, store, clock):
        receiver = StaticCodeReceiver(error="access_denied")
        with patch.object(OAuth2Session, "fetch_token") as fetch:
            with pytest.raises(AuthDeniedError, match="access_denied"):
                make_flow(store, receiver, clock).authorize()
        fetch.assert_not_called()
        assert store.load() is None

    def test_no_receiver(self, store, clock):
        with pytest.raises(AuthorizationRequired) as exc_info:
            make_flow(store, None, clock).authorize()
        assert "accounts.google.com" in exc_info.value.auth_url

    def test_state_mismatch(self, store, clock):
        class WrongState(StaticCodeReceiver):
            def receive(self, authorization_url):
                return f"{self.redirect_uri}?code=ABC123&state=forged"

        with pytest.raises(AuthCodeInvalidError, match="State mismatch"):
            make_flow(store, WrongState(), clock).authorize()

    def test_missing_code(self, store, clock):
        receiver = StaticCodeReceiver(code="")
        with pytest.raises(AuthCodeInvalidError):
            make_flow(store, receiver, clock).authorize()

    def test_code_rejected(self, store, receiver, clock):
        error = OAuthError(error="invalid_grant", description="Malformed auth code.")
        with patch.object(OAuth2Session, "fetch_token", side_effect=error):
            with pytest.raises(AuthCodeInvalidError, match="Malformed auth code"):
                make_flow(store, receiver, clock).authorize()
        assert store.load() is None

    def test_provider_error(self, store, receiver, clock):
        error = OAuthError(error="invalid_client", description="Unauthorized")
        with patch.object(OAuth2Session, "fetch_token", side_effect=error):
            with pytest.raises(AuthExchangeError):
                make_flow(store, receiver, clock).authorize()

    def test_network_failure(self, store, receiver, clock):
        with patch.object(
            OAuth2Session, "fetch_token", side_effect=requests.ConnectionError("offline")
        ):
            with pytest.raises(AuthExchangeError, match="offline"):
                make_flow(store, receiver, clock).authorize()

    def test_scope_not_granted(self, store, receiver, clock):
        response = dict(TOKEN_RESPONSE, scope="https://www.googleapis.com/auth/drive.file")
        with patch.object(OAuth2Session, "fetch_token", return_value=response):
            with pytest.raises(ScopeMismatchError):
                make_flow(store, receiver, clock).authorize()
        assert store.load() is None

    def test_unwritable_store_keeps_record(self, tmp_path, receiver, clock):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = TokenStore(blocker / "token.json")
        with patch.object(OAuth2Session, "fetch_token", return_value=dict(TOKEN_RESPONSE)):
            with pytest.raises(TokenStoreUnwritableError) as exc_info:
                make_flow(store, receiver, clock).authorize()
        assert exc_info.value.record.access_token == "ya29.fresh"
