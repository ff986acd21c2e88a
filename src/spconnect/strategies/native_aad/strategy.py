"""Azure AD native application strategy.

Implements :class:`NativeAadStrategy` for the ``native_aad`` kind, an
OAuth2 Authorization Code flow with PKCE against the Azure AD common
endpoint. The resource is the site's ``scheme://host``.

Order of attempts:

1. If ``clear_token_cache`` is set, delete the token cache file first.
2. A cached access token that has not expired.
3. A cached refresh token. A failed refresh is logged and falls through.
4. Interactive sign-in through the host's browser login, followed by the
   code exchange.

Fresh tokens are written back to the cache.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from typing import Any
from urllib.parse import urlencode, urlparse

from spconnect.auth.base import ClientContext, ConnectionStrategy
from spconnect.auth.host import HostUI
from spconnect.auth.token_cache import TokenCache, TokenEntry, cache_key
from spconnect.exceptions import AuthenticationError
from spconnect.models import ConnectionRequest, NativeAadRequest, StrategyKind
from spconnect.strategies.common import post_token_request, token_expiry

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://login.microsoftonline.com/common/oauth2/authorize"
TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/token"


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    # RFC 7636: 43-128 characters from unreserved character set
    code_verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    code_challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return code_verifier, code_challenge


def resource_for(url: str) -> str:
    """Return the Azure AD resource identifier of the site at *url*."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.hostname}"


class NativeAadStrategy(ConnectionStrategy):
    """Authenticate as the signed-in user through an Azure AD native application.

    Args:
        host: Interactive host that runs the browser sign-in.
        token_cache: Where access and refresh tokens are kept between runs.
    """

    def __init__(self, host: HostUI, token_cache: TokenCache) -> None:
        self._host = host
        self._cache = token_cache

    @property
    def kind(self) -> StrategyKind:
        return StrategyKind.NATIVE_AAD

    def connect(self, request: ConnectionRequest) -> ClientContext:
        strategy = request.strategy
        assert isinstance(strategy, NativeAadRequest)

        if strategy.clear_token_cache:
            logger.debug("Clearing token cache %s", self._cache.path)
            self._cache.clear()

        resource = resource_for(request.url)
        key = cache_key(strategy.client_id, resource)
        entry = self._cache.get(key)

        if entry is not None and entry.is_valid():
            return self._build_context(request.url, entry)

        if entry is not None and entry.refresh_token:
            try:
                token_data = self._refresh(strategy, resource, entry.refresh_token)
                return self._store_and_build(request.url, key, token_data, entry.refresh_token)
            except AuthenticationError as exc:
                logger.warning("Token refresh failed, signing in again: %s", exc)

        token_data = self._sign_in(strategy, resource)
        return self._store_and_build(request.url, key, token_data)

    def _sign_in(self, strategy: NativeAadRequest, resource: str) -> dict[str, Any]:
        """Run the interactive authorization code + PKCE flow."""
        code_verifier, code_challenge = generate_pkce_pair()
        params = {
            "response_type": "code",
            "client_id": strategy.client_id,
            "redirect_uri": strategy.redirect_uri,
            "resource": resource,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            "prompt": "login",
        }
        code = self._host.open_browser_login(
            f"{AUTHORIZE_URL}?{urlencode(params)}", strategy.redirect_uri
        )
        data = {
            "grant_type": "authorization_code",
            "client_id": strategy.client_id,
            "code": code,
            "redirect_uri": strategy.redirect_uri,
            "resource": resource,
            "code_verifier": code_verifier,
        }
        return post_token_request(TOKEN_URL, data, "Token exchange")

    def _refresh(self, strategy: NativeAadRequest, resource: str, refresh_token: str) -> dict[str, Any]:
        data = {
            "grant_type": "refresh_token",
            "client_id": strategy.client_id,
            "refresh_token": refresh_token,
            "resource": resource,
        }
        return post_token_request(TOKEN_URL, data, "Token refresh")

    def _store_and_build(
        self,
        url: str,
        key: str,
        token_data: dict[str, Any],
        previous_refresh: str | None = None,
    ) -> ClientContext:
        entry = TokenEntry(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token", previous_refresh),
            expires_at=token_expiry(token_data),
        )
        self._cache.put(key, entry)
        return self._build_context(url, entry)

    def _build_context(self, url: str, entry: TokenEntry) -> ClientContext:
        return ClientContext(
            url,
            auth_mode=self.kind.value,
            headers={"Authorization": f"Bearer {entry.access_token}"},
            expires_at=entry.expires_at,
        )
