"""Tests for the Azure AD native application strategy."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest

from conftest import ScriptedHost, make_response
from spconnect.auth.token_cache import TokenCache, TokenEntry, cache_key
from spconnect.exceptions import AuthenticationError
from spconnect.models import ConnectionRequest, NativeAadRequest
from spconnect.strategies.native_aad import NativeAadStrategy
from spconnect.strategies.native_aad.strategy import TOKEN_URL, generate_pkce_pair, resource_for

URL = "https://contoso.sharepoint.com/sites/team"
RESOURCE = "https://contoso.sharepoint.com"
CLIENT_ID = "9bc3ab49-b65d-410a-85ad-de819febfddc"
REDIRECT = "https://oauth.spops.microsoft.com/"
KEY = cache_key(CLIENT_ID, RESOURCE)


@pytest.fixture
def cache(tmp_path: Path) -> TokenCache:
    return TokenCache(tmp_path / "tokencache.json")


def _request(clear: bool = False) -> ConnectionRequest:
    return ConnectionRequest(
        url=URL,
        strategy=NativeAadRequest(client_id=CLIENT_ID, redirect_uri=REDIRECT, clear_token_cache=clear),
    )


def _future(minutes: int = 30) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)


def _token_response(access: str = "new-access", refresh: str | None = "new-refresh") -> object:
    body = {"access_token": access, "expires_in": 3600}
    if refresh:
        body["refresh_token"] = refresh
    return make_response(url=TOKEN_URL, json=body)


def test_generate_pkce_pair() -> None:
    verifier, challenge = generate_pkce_pair()
    assert 43 <= len(verifier) <= 128
    assert "=" not in challenge
    assert generate_pkce_pair()[0] != verifier


def test_resource_for_drops_path_and_port() -> None:
    assert resource_for("https://contoso.sharepoint.com:443/sites/x") == RESOURCE


class TestCachedToken:
    def test_valid_cached_token_skips_network(self, cache: TokenCache) -> None:
        cache.put(KEY, TokenEntry(access_token="cached", refresh_token="r", expires_at=_future()))
        host = ScriptedHost()
        with patch("httpx.post") as mock_post:
            context = NativeAadStrategy(host, cache).connect(_request())

        mock_post.assert_not_called()
        assert host.browser_calls == []
        assert context.headers == {"Authorization": "Bearer cached"}
        assert context.auth_mode == "native_aad"

    def test_clear_token_cache_forces_sign_in(self, cache: TokenCache) -> None:
        cache.put(KEY, TokenEntry(access_token="cached", refresh_token="r", expires_at=_future()))
        host = ScriptedHost(browser_result="auth-code")
        with patch("httpx.post", return_value=_token_response()):
            context = NativeAadStrategy(host, cache).connect(_request(clear=True))

        assert len(host.browser_calls) == 1
        assert context.headers == {"Authorization": "Bearer new-access"}
        assert cache.get(KEY).access_token == "new-access"


class TestRefresh:
    def test_expired_token_is_refreshed(self, cache: TokenCache) -> None:
        cache.put(
            KEY,
            TokenEntry(access_token="old", refresh_token="old-refresh", expires_at=_future(-5)),
        )
        host = ScriptedHost()
        with patch("httpx.post", return_value=_token_response(refresh=None)) as mock_post:
            context = NativeAadStrategy(host, cache).connect(_request())

        data = mock_post.call_args[1]["data"]
        assert data["grant_type"] == "refresh_token"
        assert data["refresh_token"] == "old-refresh"
        assert data["resource"] == RESOURCE
        assert host.browser_calls == []
        assert context.headers == {"Authorization": "Bearer new-access"}
        # The old refresh token is kept when none is returned
        assert cache.get(KEY).refresh_token == "old-refresh"

    def test_failed_refresh_falls_back_to_sign_in(
        self, cache: TokenCache, caplog: pytest.LogCaptureFixture
    ) -> None:
        cache.put(
            KEY,
            TokenEntry(access_token="old", refresh_token="revoked", expires_at=_future(-5)),
        )
        host = ScriptedHost(browser_result="auth-code")
        rejected = make_response(400, url=TOKEN_URL, json={"error": "invalid_grant"})
        with caplog.at_level(logging.WARNING, logger="spconnect"):
            with patch("httpx.post", side_effect=[rejected, _token_response()]):
                context = NativeAadStrategy(host, cache).connect(_request())

        assert "Token refresh failed" in caplog.text
        assert len(host.browser_calls) == 1
        assert context.headers == {"Authorization": "Bearer new-access"}


class TestInteractiveSignIn:
    def test_pkce_code_exchange(self, cache: TokenCache) -> None:
        host = ScriptedHost(browser_result="auth-code")
        with patch("httpx.post", return_value=_token_response()) as mock_post:
            NativeAadStrategy(host, cache).connect(_request())

        auth_url, redirect_uri = host.browser_calls[0]
        assert redirect_uri == REDIRECT
        query = parse_qs(urlparse(auth_url).query)
        assert query["response_type"] == ["code"]
        assert query["client_id"] == [CLIENT_ID]
        assert query["resource"] == [RESOURCE]
        assert query["code_challenge_method"] == ["S256"]
        assert query["prompt"] == ["login"]

        assert mock_post.call_args[0][0] == TOKEN_URL
        data = mock_post.call_args[1]["data"]
        assert data["grant_type"] == "authorization_code"
        assert data["code"] == "auth-code"
        assert data["redirect_uri"] == REDIRECT
        assert data["code_verifier"]

        entry = cache.get(KEY)
        assert entry.refresh_token == "new-refresh"
        assert entry.is_valid()

    def test_rejected_code(self, cache: TokenCache) -> None:
        host = ScriptedHost(browser_result="bad-code")
        rejected = make_response(400, url=TOKEN_URL, json={"error": "invalid_grant"})
        with patch("httpx.post", return_value=rejected):
            with pytest.raises(AuthenticationError, match="Token exchange failed"):
                NativeAadStrategy(host, cache).connect(_request())

        assert cache.get(KEY) is None
