"""Default strategy -- sign in with a user name and password, or as the current user.

With ``current_credentials`` the connection signs in as the current
operating-system user through Windows integrated authentication; no
credential is looked up. Otherwise a credential pair is obtained (explicit,
stored label, stored for the URL, or prompted) and:

- SharePoint Online hosts (``*.sharepoint.com``) exchange it for a
  security token at ``extSTS.srf`` and keep the ``FedAuth`` and ``rtFa``
  cookies the site issues for that token.
- Any other host is treated as on-premises and answers the site's
  Negotiate or NTLM challenge with the pair.
"""

from __future__ import annotations

import httpx

from spconnect.auth.base import ClientContext, ConnectionStrategy
from spconnect.auth.host import HostUI
from spconnect.auth.negotiate import NegotiateAuth
from spconnect.auth.resolver import CredentialResolver
from spconnect.connection import ConnectionType, detect_connection_type
from spconnect.exceptions import AuthenticationError
from spconnect.models import ConnectionRequest, CredentialPair, DefaultRequest, StrategyKind
from spconnect.strategies.common import TOKEN_REQUEST_TIMEOUT, obtain_credentials, site_root
from spconnect.strategies.wstrust import (
    WSTRUST_2005,
    extract_binary_token,
    request_security_token,
)

ONLINE_STS_URL = "https://login.microsoftonline.com/extSTS.srf"
SIGN_IN_PATH = "/_forms/default.aspx?wa=wsignin1.0"
CURRENT_IDENTITY = "current_identity"


def sign_in_online(root: str, pair: CredentialPair) -> dict[str, str]:
    """Exchange *pair* for SharePoint Online session cookies.

    Returns:
        The ``FedAuth`` and ``rtFa`` cookies.

    Raises:
        AuthenticationError: If the token service or the site rejects the
            sign-in.
    """
    text = request_security_token(ONLINE_STS_URL, root, pair, WSTRUST_2005)
    token = extract_binary_token(text)
    try:
        response = httpx.post(
            f"{root}{SIGN_IN_PATH}",
            content=token.encode("utf-8"),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            follow_redirects=False,
            timeout=TOKEN_REQUEST_TIMEOUT,
        )
    except httpx.HTTPError as exc:
        raise AuthenticationError(f"Sign-in to {root} failed: {exc}") from exc

    cookies = {
        name: response.cookies[name]
        for name in ("FedAuth", "rtFa")
        if response.cookies.get(name)
    }
    if "FedAuth" not in cookies:
        raise AuthenticationError(
            f"Sign-in to {root} was rejected (status {response.status_code})"
        )
    return cookies


class DefaultStrategy(ConnectionStrategy):
    """Authenticate with credentials, or as the current operating-system user.

    Args:
        resolver: Stored-credential lookup used when no credentials were given.
        host: Interactive host used to prompt as a last resort.
    """

    def __init__(self, resolver: CredentialResolver, host: HostUI) -> None:
        self._resolver = resolver
        self._host = host

    @property
    def kind(self) -> StrategyKind:
        return StrategyKind.DEFAULT

    def connect(self, request: ConnectionRequest) -> ClientContext:
        strategy = request.strategy
        assert isinstance(strategy, DefaultRequest)

        if strategy.current_credentials:
            return ClientContext(request.url, auth_mode=CURRENT_IDENTITY, auth=NegotiateAuth())

        pair = obtain_credentials(strategy.credentials, request.url, self._resolver, self._host)

        if detect_connection_type(request.url) is ConnectionType.ONPREM:
            return ClientContext(
                request.url,
                auth_mode=self.kind.value,
                auth=NegotiateAuth(pair.username, pair.password.get_secret_value()),
            )

        return ClientContext(
            request.url,
            auth_mode=self.kind.value,
            cookies=sign_in_online(site_root(request.url), pair),
        )
