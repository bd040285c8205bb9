"""Tests for authorization code receivers."""

import socket
import threading
import time
import urllib.error
import urllib.request
from urllib.parse import parse_qs, urlsplit

import pytest

from gdrive_lite.google import AuthDeniedError, LocalServerReceiver, ManualPasteReceiver


def free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def get_when_up(url: str, timeout: float = 5.0) -> int:
    """GET ``url``, retrying until the listener accepts connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            with urllib.request.urlopen(url, timeout=2) as resp:
                return resp.status
        except urllib.error.HTTPError as e:
            return e.code
        except urllib.error.URLError:
            if time.monotonic() > deadline:
                raise
            time.sleep(0.05)


class TestManualPasteReceiver:
    def test_full_redirect_url(self):
        pasted = "http://127.0.0.1:3000/?code=ABC123&state=xyz"
        receiver = ManualPasteReceiver(open_browser=False, input_func=lambda _: pasted)
        assert receiver.receive("https://accounts.google.com/o/oauth2/auth?x=1") == pasted

    def test_bare_code(self):
        receiver = ManualPasteReceiver(open_browser=False, input_func=lambda _: " ABC123 ")
        url = receiver.receive("https://accounts.google.com/o/oauth2/auth")
        assert parse_qs(urlsplit(url).query) == {"code": ["ABC123"]}
        assert url.startswith(receiver.redirect_uri)

    def test_empty_input_is_denial(self):
        receiver = ManualPasteReceiver(open_browser=False, input_func=lambda _: "")
        with pytest.raises(AuthDeniedError):
            receiver.receive("https://accounts.google.com/o/oauth2/auth")

    def test_prints_url(self, capsys):
        receiver = ManualPasteReceiver(open_browser=False, input_func=lambda _: "code")
        receiver.receive("https://accounts.google.com/o/oauth2/auth?client_id=x")
        assert "client_id=x" in capsys.readouterr().out


class TestLocalServerReceiver:
    def test_redirect_uri(self):
        assert LocalServerReceiver(port=3000).redirect_uri == "http://127.0.0.1:3000/"

    def test_receives_code(self):
        port = free_port()
        receiver = LocalServerReceiver(port=port, open_browser=False, timeout=10)
        result = {}

        thread = threading.Thread(
            target=lambda: result.setdefault("url", receiver.receive("https://example.test/auth"))
        )
        thread.start()

        # Requests without a code are ignored
        assert get_when_up(f"http://127.0.0.1:{port}/favicon.ico") == 404
        assert get_when_up(f"http://127.0.0.1:{port}/?code=ABC123&state=s1") == 200
        thread.join(timeout=10)

        params = parse_qs(urlsplit(result["url"]).query)
        assert params == {"code": ["ABC123"], "state": ["s1"]}
