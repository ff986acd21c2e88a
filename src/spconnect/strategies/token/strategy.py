"""App-only token strategy -- realm, app id and app secret.

Implements :class:`TokenStrategy` for the ``token`` kind. It obtains an
access token from the Azure Access Control service with the OAuth2 client
credentials grant:

1. If the request carries no realm, discover it: an anonymous
   ``GET {url}/_vti_bin/client.svc`` with an empty bearer token answers
   ``401`` and names the realm in the ``WWW-Authenticate`` header.
2. POST ``grant_type=client_credentials`` to
   ``https://accounts.accesscontrol.windows.net/{realm}/tokens/OAuth/2``.
3. Return a context with an ``Authorization: Bearer`` header.
"""

from __future__ import annotations

import logging
import re
import httpx

from spconnect.auth.base import ClientContext, ConnectionStrategy
from spconnect.auth.resolver import authority
from spconnect.exceptions import AuthenticationError
from spconnect.models import ConnectionRequest, StrategyKind, TokenRequest
from spconnect.strategies.common import (
    TOKEN_REQUEST_TIMEOUT,
    post_token_request,
    token_expiry,
)

logger = logging.getLogger(__name__)

ACS_TOKEN_URL = "https://accounts.accesscontrol.windows.net/{realm}/tokens/OAuth/2"
SHAREPOINT_PRINCIPAL = "00000003-0000-0ff1-ce00-000000000000"

_REALM_PATTERN = re.compile(r'realm="([^"]*)"', re.IGNORECASE)


def parse_realm(www_authenticate: str) -> str | None:
    """Extract the realm from a ``WWW-Authenticate`` header value."""
    match = _REALM_PATTERN.search(www_authenticate)
    if match and match.group(1):
        return match.group(1)
    return None


def discover_realm(url: str) -> str:
    """Ask the site which realm (tenant id) it trusts.

    Raises:
        AuthenticationError: If the site cannot be reached or does not
            advertise a realm.
    """
    probe = url.rstrip("/") + "/_vti_bin/client.svc"
    try:
        response = httpx.get(
            probe,
            headers={"Authorization": "Bearer"},
            timeout=TOKEN_REQUEST_TIMEOUT,
        )
    except httpx.HTTPError as exc:
        raise AuthenticationError(f"Realm discovery failed: {exc}") from exc

    realm = parse_realm(response.headers.get("WWW-Authenticate", ""))
    if realm is None:
        raise AuthenticationError(
            f"Could not discover the realm for {url}; pass --realm explicitly"
        )
    logger.debug("Discovered realm %s for %s", realm, url)
    return realm


class TokenStrategy(ConnectionStrategy):
    """Authenticate as an app with an app id and app secret."""

    @property
    def kind(self) -> StrategyKind:
        return StrategyKind.TOKEN

    def connect(self, request: ConnectionRequest) -> ClientContext:
        strategy = request.strategy
        assert isinstance(strategy, TokenRequest)

        realm = strategy.realm or discover_realm(request.url)
        host = authority(request.url)
        data = {
            "grant_type": "client_credentials",
            "client_id": f"{strategy.app_id}@{realm}",
            "client_secret": strategy.app_secret.get_secret_value(),
            "resource": f"{SHAREPOINT_PRINCIPAL}/{host}@{realm}",
        }
        token_data = post_token_request(
            ACS_TOKEN_URL.format(realm=realm), data, "App-only token request"
        )
        return ClientContext(
            request.url,
            auth_mode=self.kind.value,
            headers={"Authorization": f"Bearer {token_data['access_token']}"},
            expires_at=token_expiry(token_data),
        )
