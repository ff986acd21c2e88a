"""Windows integrated authentication (Negotiate and NTLM) for httpx.

On-premises SharePoint challenges with ``WWW-Authenticate: Negotiate`` and/or
``NTLM`` rather than basic authentication. :class:`NegotiateAuth` answers
that challenge through :mod:`spnego`:

- Without a user name it signs in as the current operating-system user
  (SSPI on Windows, the Kerberos ticket cache elsewhere).
- With a user name and password it performs the same handshake for that
  account.

The handshake spans several requests on one keep-alive connection, so every
response body is read before the next leg is sent.
"""

from __future__ import annotations

import base64
import logging
from typing import Generator, Optional

import httpx
import spnego
from spnego.exceptions import SpnegoError

from spconnect.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Preferred first.
_SCHEMES = {"negotiate": "Negotiate", "ntlm": "NTLM"}


def offered_scheme(response: httpx.Response) -> Optional[str]:
    """Return the protocol (``"negotiate"`` or ``"ntlm"``) the server offers, if any."""
    if response.status_code != 401:
        return None
    offered = {
        value.strip().split(" ", 1)[0].lower()
        for header in response.headers.get_list("www-authenticate")
        for value in header.split(",")
        if value.strip()
    }
    for protocol in _SCHEMES:
        if protocol in offered:
            return protocol
    return None


def _challenge_token(response: httpx.Response, scheme: str) -> Optional[bytes]:
    prefix = scheme.lower() + " "
    for header in response.headers.get_list("www-authenticate"):
        for value in header.split(","):
            value = value.strip()
            if value.lower().startswith(prefix):
                return base64.b64decode(value[len(prefix):])
    return None


class NegotiateAuth(httpx.Auth):
    """httpx auth that completes a Negotiate or NTLM handshake.

    Args:
        username: Account to sign in as; ``None`` uses the current
            operating-system identity.
        password: Password of *username*.
    """

    requires_response_body = True

    def __init__(self, username: Optional[str] = None, password: Optional[str] = None) -> None:
        self.username = username
        self._password = password

    @property
    def uses_current_identity(self) -> bool:
        return self.username is None

    def __repr__(self) -> str:
        who = "current identity" if self.uses_current_identity else self.username
        return f"NegotiateAuth({who})"

    def _step(self, context: spnego.ContextProxy, in_token: Optional[bytes]) -> Optional[bytes]:
        try:
            return context.step(in_token)
        except SpnegoError as exc:
            raise AuthenticationError(f"Integrated sign-in failed: {exc}") from exc

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        response = yield request

        protocol = offered_scheme(response)
        if protocol is None:
            return
        scheme = _SCHEMES[protocol]
        logger.debug("Server at %s offers %s", request.url.host, scheme)

        try:
            context = spnego.client(
                self.username,
                self._password,
                hostname=request.url.host,
                service="HTTP",
                protocol=protocol,
            )
        except SpnegoError as exc:
            raise AuthenticationError(f"Integrated sign-in failed: {exc}") from exc

        out_token = self._step(context, None)
        while out_token:
            request.headers["Authorization"] = f"{scheme} {base64.b64encode(out_token).decode('ascii')}"
            response = yield request
            if response.status_code != 401 or context.complete:
                return
            in_token = _challenge_token(response, scheme)
            if in_token is None:
                return
            out_token = self._step(context, in_token)
