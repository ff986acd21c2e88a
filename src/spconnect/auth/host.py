"""Interactive host capabilities: credential prompts and browser logins.

Strategies never talk to the terminal or the browser directly. They call a
:class:`HostUI`, which the factory injects, so tests can script both
interactions and non-interactive runs can refuse them up front.

:class:`ConsoleHost` is the terminal implementation:

- :meth:`~ConsoleHost.prompt_for_credential` asks for a user name with
  :func:`typer.prompt` and for the password with :func:`getpass.getpass`.
- :meth:`~ConsoleHost.open_browser_login` opens the system browser and
  waits on a local HTTP callback server for the redirect. There is no
  timeout; the user ends the wait with Ctrl+C.
"""

from __future__ import annotations

import getpass
import logging
import socket
import sys
import threading
import webbrowser
from abc import ABC, abstractmethod
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import typer

from spconnect.exceptions import AuthenticationError, CancelledError, NoCredentialsError
from spconnect.models import CredentialPair

logger = logging.getLogger(__name__)

_CAPTURED_PARAMS = ("code", "access_token", "token")
_LOOPBACK_HOSTS = ("localhost", "127.0.0.1")


class HostUI(ABC):
    """The interactive capabilities a strategy may need."""

    @abstractmethod
    def prompt_for_credential(self, title: str, message: str) -> CredentialPair:
        """Ask the user for a user name and password.

        Raises:
            NoCredentialsError: If prompting is impossible (non-interactive).
            CancelledError: If the user dismisses the prompt.
        """
        ...

    @abstractmethod
    def open_browser_login(self, url: str, redirect_uri: Optional[str] = None) -> str:
        """Send the user to *url* and return the value the login redirects back.

        Args:
            url: The login page to open.
            redirect_uri: Where the identity provider redirects when done.
                When omitted, a local callback URL is appended to *url*
                as the ``redirect_uri`` query parameter.

        Returns:
            The captured ``code``, ``access_token`` or ``token`` value.

        Raises:
            AuthenticationError: If the login fails or is impossible here.
            CancelledError: If the user closes or denies the login.
        """
        ...


def _find_free_port() -> int:
    """Find a free TCP port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _extract_value(params: dict[str, list[str]]) -> Optional[str]:
    for name in _CAPTURED_PARAMS:
        if params.get(name):
            return params[name][0]
    return None


def _check_error(params: dict[str, list[str]]) -> None:
    if "error" not in params:
        return
    error = params["error"][0]
    description = params.get("error_description", [""])[0]
    if error == "access_denied":
        raise CancelledError("The sign-in was cancelled in the browser")
    message = f"Browser sign-in failed: {error}"
    if description:
        message += f" - {description}"
    raise AuthenticationError(message)


class ConsoleHost(HostUI):
    """Terminal and system-browser implementation of :class:`HostUI`.

    Args:
        interactive: When ``False`` every interaction is refused, so the
            connect command fails fast instead of hanging on a prompt.
    """

    def __init__(self, interactive: bool = True) -> None:
        self.interactive = interactive

    def _can_interact(self) -> bool:
        return self.interactive and sys.stdin.isatty()

    def prompt_for_credential(self, title: str, message: str) -> CredentialPair:
        if not self._can_interact():
            raise NoCredentialsError(
                f"{message} but prompting is disabled (non-interactive session). "
                "Store a credential for the site or pass --credentials."
            )
        try:
            typer.echo(title, err=True)
            username = typer.prompt("User name", err=True)
            password = getpass.getpass("Password: ")
        except (KeyboardInterrupt, EOFError, typer.Abort) as exc:
            raise CancelledError("Credential prompt cancelled") from exc
        if not username:
            raise CancelledError("Credential prompt cancelled")
        return CredentialPair(username=username, password=password)

    def open_browser_login(self, url: str, redirect_uri: Optional[str] = None) -> str:
        if not self._can_interact():
            raise AuthenticationError(
                "Browser sign-in requires an interactive terminal "
                "(stdin must be a TTY)"
            )

        if redirect_uri is None:
            port = _find_free_port()
            callback = f"http://127.0.0.1:{port}/callback"
            separator = "&" if urlparse(url).query else "?"
            url = f"{url}{separator}{urlencode({'redirect_uri': callback})}"
            return self._wait_for_callback(port, url)

        parsed = urlparse(redirect_uri)
        if parsed.scheme == "http" and parsed.hostname in _LOOPBACK_HOSTS and parsed.port:
            return self._wait_for_callback(parsed.port, url)

        return self._paste_redirect(url)

    def _paste_redirect(self, url: str) -> str:
        """Open *url* and ask the user to paste the URL the browser ended on.

        Used for redirect URIs a local server cannot listen on, such as
        ``urn:ietf:wg:oauth:2.0:oob``.
        """
        webbrowser.open(url)
        try:
            pasted = typer.prompt(
                "Paste the address the browser was redirected to", err=True
            )
        except (KeyboardInterrupt, EOFError, typer.Abort) as exc:
            raise CancelledError("Browser sign-in cancelled") from exc

        params = parse_qs(urlparse(pasted).query)
        _check_error(params)
        value = _extract_value(params)
        if value is None:
            # A bare code pasted on its own.
            value = pasted.strip()
        if not value:
            raise AuthenticationError("No authorization code was supplied")
        return value

    def _wait_for_callback(self, port: int, url: str) -> str:
        """Start a local HTTP server, open the browser, and capture the redirect.

        Args:
            port: TCP port for the local callback server.
            url: The fully-formed login URL to open in the browser.

        Returns:
            The captured value from the callback query string.

        Raises:
            AuthenticationError: If the callback carries an error or no value.
            CancelledError: If the user denies the login or presses Ctrl+C.
        """
        result: dict[str, Any] = {"params": None}

        class CallbackHandler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                params = parse_qs(urlparse(self.path).query)
                result["params"] = params
                if "error" in params:
                    body = f"Sign-in failed: {params['error'][0]}"
                elif _extract_value(params) is not None:
                    body = (
                        "Sign-in successful! You can close this window "
                        "and return to the terminal."
                    )
                else:
                    body = "No sign-in result received."

                self.send_response(200)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.end_headers()
                self.wfile.write(
                    f"<html><body><h2>{body}</h2></body></html>".encode("utf-8")
                )

            def log_message(self, format: str, *args: Any) -> None:
                pass

        try:
            server = HTTPServer(("127.0.0.1", port), CallbackHandler)
        except OSError as exc:
            raise AuthenticationError(
                f"Cannot listen for the sign-in callback on port {port}: {exc}"
            ) from exc
        server.timeout = None

        def open_browser() -> None:
            webbrowser.open(url)

        logger.debug("Waiting for sign-in callback on port %d", port)
        browser_thread = threading.Thread(target=open_browser, daemon=True)
        browser_thread.start()

        try:
            server.handle_request()
        except KeyboardInterrupt as exc:
            raise CancelledError("Browser sign-in cancelled") from exc
        finally:
            server.server_close()

        params = result["params"] or {}
        _check_error(params)
        value = _extract_value(params)
        if value is None:
            raise AuthenticationError("No sign-in result received from the browser callback")
        return value
