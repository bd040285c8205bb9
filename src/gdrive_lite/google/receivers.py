"""Authorization code receivers.

A receiver presents the consent URL to the user and blocks until the
provider redirects back with an authorization code (or an error). It
returns the redirect URL so the consent flow can parse ``code``, ``state``
and ``error`` from it.
"""

from __future__ import annotations

import logging
import webbrowser
from abc import ABC, abstractmethod
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlencode, urlsplit

from gdrive_lite.config import DEFAULT_REDIRECT_URI
from gdrive_lite.google.exceptions import AuthDeniedError, AuthExchangeError

logger = logging.getLogger(__name__)

SUCCESS_PAGE = b"<html><body><p>Authenticated. You can close this window.</p></body></html>"


class CodeReceiver(ABC):
    """Abstract base class for authorization code receivers."""

    @property
    @abstractmethod
    def redirect_uri(self) -> str:
        """Redirect URI registered with the provider."""

    @abstractmethod
    def receive(self, authorization_url: str) -> str:
        """
        Present the consent URL and wait for the redirect.

        Args:
            authorization_url: URL of the provider's consent screen.

        Returns:
            The redirect URL carrying the ``code`` or ``error`` query params.
        """
        pass


class _CallbackHandler(BaseHTTPRequestHandler):
    def do_GET(self):  # noqa: N802
        query = parse_qs(urlsplit(self.path).query)
        if "code" in query or "error" in query:
            self.server.callback_path = self.path
            self.send_response(200)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.end_headers()
            self.wfile.write(SUCCESS_PAGE)
        else:
            self.send_response(404)
            self.end_headers()

    def log_message(self, format, *args):
        logger.debug("callback server: " + format, *args)


class _CallbackServer(HTTPServer):
    callback_path: str | None = None
    timed_out = False

    def handle_timeout(self):
        self.timed_out = True


class LocalServerReceiver(CodeReceiver):
    """Receive the code on a one-shot local HTTP listener.

    Example:
        >>> receiver = LocalServerReceiver(port=3000)
        >>> auth = GoogleOAuth(receiver=receiver)
        >>> token = auth.ensure_valid_token()
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 3000,
        open_browser: bool = True,
        timeout: float | None = None,
    ):
        """Initialize the receiver.

        Args:
            host: Interface to listen on.
            port: Port to listen on; must match the registered redirect URI.
            open_browser: Open the consent URL in the default browser.
            timeout: Seconds to wait for the redirect. None waits forever.
        """
        self.host = host
        self.port = port
        self.open_browser = open_browser
        self.timeout = timeout

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}/"

    def receive(self, authorization_url: str) -> str:
        server = _CallbackServer((self.host, self.port), _CallbackHandler)
        server.timeout = self.timeout

        try:
            if self.open_browser:
                webbrowser.open(authorization_url)
            logger.info(
                "This application needs your consent to use Google Drive. "
                "Please check your browser and either approve or deny it."
            )
            print(f"Authorization URL:\n{authorization_url}\n")

            while server.callback_path is None:
                server.handle_request()
                if server.timed_out:
                    raise AuthExchangeError(
                        f"No authorization response within {self.timeout} seconds"
                    )
        finally:
            server.server_close()

        return f"http://{self.host}:{self.port}{server.callback_path}"


class ManualPasteReceiver(CodeReceiver):
    """Ask the user to paste the redirect URL (or the bare code)."""

    def __init__(
        self,
        redirect_uri: str = DEFAULT_REDIRECT_URI,
        open_browser: bool = True,
        input_func: Callable[[str], str] = input,
    ):
        self._redirect_uri = redirect_uri
        self.open_browser = open_browser
        self.input_func = input_func

    @property
    def redirect_uri(self) -> str:
        return self._redirect_uri

    def receive(self, authorization_url: str) -> str:
        print(f"Authorization URL:\n{authorization_url}\n")
        if self.open_browser:
            webbrowser.open(authorization_url)

        pasted = self.input_func("Paste redirect URL or code: ").strip()
        if not pasted:
            raise AuthDeniedError("no authorization response provided")

        if "://" in pasted or pasted.startswith("?"):
            return pasted

        # Bare code
        return f"{self._redirect_uri}?{urlencode({'code': pasted})}"
