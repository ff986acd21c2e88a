"""ADFS strategy -- federated sign-in through an on-premises ADFS server.

Implements :class:`AdfsStrategy` for the ``adfs`` kind:

1. Obtain a credential pair: the explicit one, a stored label, the stored
   credential for the URL, or a prompt.
2. ``GET {root}/_trust/`` without following the redirect. Its ``Location``
   names the ADFS host, the relying party (``wtrealm``) and the context
   (``wctx``).
3. Request a SAML token from ADFS's ``usernamemixed`` endpoint.
4. POST the token response back to ``{root}/_trust/`` and keep the
   ``FedAuth`` cookie the site sets.
"""

from __future__ import annotations

import logging
from typing import NamedTuple
from urllib.parse import parse_qs, urlparse

import httpx

from spconnect.auth.base import ClientContext, ConnectionStrategy
from spconnect.auth.host import HostUI
from spconnect.auth.resolver import CredentialResolver
from spconnect.exceptions import AuthenticationError
from spconnect.models import AdfsRequest, ConnectionRequest, StrategyKind
from spconnect.strategies.common import TOKEN_REQUEST_TIMEOUT, obtain_credentials, site_root
from spconnect.strategies.wstrust import (
    WSTRUST_13,
    extract_token_response,
    request_security_token,
)

logger = logging.getLogger(__name__)

USERNAME_MIXED_PATH = "/adfs/services/trust/13/usernamemixed"


class FederationInfo(NamedTuple):
    """Where the site sends users to sign in."""

    adfs_host: str
    relying_party: str
    context: str


def discover_federation(root: str) -> FederationInfo:
    """Follow the site's ``/_trust/`` redirect one hop to find its ADFS server.

    Raises:
        AuthenticationError: If the site does not redirect to an ADFS
            sign-in page.
    """
    try:
        response = httpx.get(
            f"{root}/_trust/",
            follow_redirects=False,
            timeout=TOKEN_REQUEST_TIMEOUT,
        )
    except httpx.HTTPError as exc:
        raise AuthenticationError(f"ADFS discovery failed: {exc}") from exc

    location = response.headers.get("Location")
    if not response.is_redirect or not location:
        raise AuthenticationError(
            f"{root} is not configured for ADFS sign-in "
            f"(GET /_trust/ returned status {response.status_code})"
        )

    parsed = urlparse(location)
    params = parse_qs(parsed.query)
    relying_party = params.get("wtrealm", [""])[0]
    if not parsed.netloc or not relying_party:
        raise AuthenticationError(f"Unexpected ADFS redirect from {root}: {location}")

    info = FederationInfo(
        adfs_host=parsed.netloc,
        relying_party=relying_party,
        context=params.get("wctx", [""])[0],
    )
    logger.debug("ADFS host %s, relying party %s", info.adfs_host, info.relying_party)
    return info


class AdfsStrategy(ConnectionStrategy):
    """Authenticate against ADFS with a user name and password.

    Args:
        resolver: Stored-credential lookup used when no credentials were given.
        host: Interactive host used to prompt as a last resort.
    """

    def __init__(self, resolver: CredentialResolver, host: HostUI) -> None:
        self._resolver = resolver
        self._host = host

    @property
    def kind(self) -> StrategyKind:
        return StrategyKind.ADFS

    def connect(self, request: ConnectionRequest) -> ClientContext:
        strategy = request.strategy
        assert isinstance(strategy, AdfsRequest)

        pair = obtain_credentials(strategy.credentials, request.url, self._resolver, self._host)
        root = site_root(request.url)
        info = discover_federation(root)

        text = request_security_token(
            f"https://{info.adfs_host}{USERNAME_MIXED_PATH}",
            info.relying_party,
            pair,
            WSTRUST_13,
        )
        token_response = extract_token_response(text)

        form = {
            "wa": "wsignin1.0",
            "wresult": token_response,
            "wctx": info.context or f"{root}/_layouts/Authenticate.aspx?Source=%2F",
        }
        try:
            response = httpx.post(
                f"{root}/_trust/",
                data=form,
                follow_redirects=False,
                timeout=TOKEN_REQUEST_TIMEOUT,
            )
        except httpx.HTTPError as exc:
            raise AuthenticationError(f"ADFS sign-in failed: {exc}") from exc

        fed_auth = response.cookies.get("FedAuth")
        if not fed_auth:
            raise AuthenticationError(
                f"ADFS sign-in to {root} was rejected (status {response.status_code})"
            )
        return ClientContext(
            request.url,
            auth_mode=self.kind.value,
            cookies={"FedAuth": fed_auth},
        )
