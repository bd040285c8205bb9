"""Pytest configuration shared across the suite."""

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlencode, urlsplit

import pytest

from gdrive_lite.google import CodeReceiver, TokenRecord

DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StaticCodeReceiver(CodeReceiver):
    """Code receiver that approves consent with a canned code."""

    def __init__(self, code: str = "ABC123", error: str | None = None, echo_state: bool = True):
        self.code = code
        self.error = error
        self.echo_state = echo_state
        self.urls: list[str] = []

    @property
    def redirect_uri(self) -> str:
        return "http://127.0.0.1:3000/"

    def receive(self, authorization_url: str) -> str:
        self.urls.append(authorization_url)
        params = {"error": self.error} if self.error else {"code": self.code}
        state = parse_qs(urlsplit(authorization_url).query).get("state")
        if self.echo_state and state:
            params["state"] = state[0]
        return f"{self.redirect_uri}?{urlencode(params)}"


@pytest.fixture(autouse=True)
def _no_client_env(monkeypatch):
    """Keep real client credentials out of the tests."""
    monkeypatch.delenv("GDRIVE_CLIENT_ID", raising=False)
    monkeypatch.delenv("GDRIVE_CLIENT_SECRET", raising=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def receiver():
    return StaticCodeReceiver()


@pytest.fixture
def token_path(tmp_path):
    return tmp_path / "token.json"


@pytest.fixture
def valid_record():
    return TokenRecord(
        access_token="cached-token",
        expires_at=NOW + timedelta(minutes=10),
        refresh_token="r-1",
        scopes=[DRIVE_SCOPE],
    )


@pytest.fixture
def expired_record():
    return TokenRecord(
        access_token="old-token",
        expires_at=NOW - timedelta(minutes=10),
        refresh_token="r-1",
        scopes=[DRIVE_SCOPE],
    )
