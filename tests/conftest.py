"""Shared test fixtures for spconnect.

Provides in-memory stand-ins for the credential store and the interactive
host, isolated config environments, output and registry resets, and a CLI
runner. These fixtures are automatically discovered by pytest and available
to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx
import pytest

from spconnect.auth.credential_store import CredentialStore
from spconnect.auth.host import HostUI
from spconnect.connection import get_registry
from spconnect.exceptions import NoCredentialsError
from spconnect.models import CredentialPair
from spconnect.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class InMemoryCredentialStore(CredentialStore):
    """Credential store backed by a dict; records every key queried."""

    def __init__(self, entries: Optional[dict[str, CredentialPair]] = None) -> None:
        self.entries = dict(entries or {})
        self.queried: list[str] = []

    def add(self, key: str, username: str, password: str = "secret") -> CredentialPair:
        pair = CredentialPair(username=username, password=password)
        self.entries[key] = pair
        return pair

    def get_credential(self, key: str) -> Optional[CredentialPair]:
        self.queried.append(key)
        return self.entries.get(key)


class ScriptedHost(HostUI):
    """HostUI that answers from pre-set values and records its calls.

    ``credential`` is returned by the prompt (``None`` means prompting is
    impossible). ``browser_result`` is returned by the browser login, or
    raised when it is an exception.
    """

    def __init__(
        self,
        credential: Optional[CredentialPair] = None,
        browser_result: object = "browser-token",
    ) -> None:
        self.credential = credential
        self.browser_result = browser_result
        self.prompts: list[tuple[str, str]] = []
        self.browser_calls: list[tuple[str, Optional[str]]] = []

    def prompt_for_credential(self, title: str, message: str) -> CredentialPair:
        self.prompts.append((title, message))
        if self.credential is None:
            raise NoCredentialsError(message)
        return self.credential

    def open_browser_login(self, url: str, redirect_uri: Optional[str] = None) -> str:
        self.browser_calls.append((url, redirect_uri))
        if isinstance(self.browser_result, BaseException):
            raise self.browser_result
        return str(self.browser_result)


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _clear_registry() -> None:
    """Start and finish every test with no current connection."""
    get_registry().clear()
    yield
    get_registry().clear()


# ---------------------------------------------------------------------------
# Fake fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def host() -> ScriptedHost:
    return ScriptedHost()


@pytest.fixture
def alice() -> CredentialPair:
    return CredentialPair(username="alice@contoso.com", password="s3cret")


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


def make_response(
    status_code: int = 200,
    url: str = "https://contoso.sharepoint.com/",
    method: str = "POST",
    **kwargs: object,
) -> httpx.Response:
    """Build a real httpx.Response bound to a request, so cookies and errors work."""
    return httpx.Response(status_code, request=httpx.Request(method, url), **kwargs)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    so that tests never touch real user config, forces the XDG layout, and
    clears all SPCONNECT_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("spconnect.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "SPCONNECT_MIN_HEALTH_SCORE",
        "SPCONNECT_RETRY_COUNT",
        "SPCONNECT_RETRY_WAIT",
        "SPCONNECT_REQUEST_TIMEOUT",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format output manager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
