"""Helpers shared by several connection strategies.

- :func:`post_token_request` -- POST a form to an OAuth token endpoint and
  return the parsed response, mapping every HTTP failure to
  :class:`~spconnect.exceptions.AuthenticationError`.
- :func:`token_expiry` -- turn an ``expires_in`` value into a timestamp.
- :func:`obtain_credentials` -- explicit pair, stored label, stored
  credential for the URL, or an interactive prompt, in that order.
- :func:`site_root` -- ``scheme://host[:port]`` of a site URL.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from urllib.parse import urlparse

import httpx

from spconnect.auth.host import HostUI
from spconnect.auth.resolver import CredentialResolver
from spconnect.exceptions import AuthenticationError
from spconnect.models import CredentialPair

TOKEN_REQUEST_TIMEOUT = 30.0


def site_root(url: str) -> str:
    """Return ``scheme://host[:port]`` for *url*."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def post_token_request(token_url: str, data: dict[str, str], what: str = "Token request") -> dict[str, Any]:
    """POST *data* to *token_url* and return the JSON token response.

    Args:
        token_url: The token endpoint.
        data: Form fields (``grant_type``, ``client_id``, ...).
        what: Label used in error messages.

    Returns:
        The parsed JSON response, guaranteed to contain ``access_token``.

    Raises:
        AuthenticationError: On HTTP errors or if ``access_token`` is
            missing from the response.
    """
    try:
        response = httpx.post(
            token_url,
            data=data,
            headers={"Accept": "application/json"},
            timeout=TOKEN_REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        token_data: dict[str, Any] = response.json()
    except httpx.HTTPStatusError as exc:
        raise AuthenticationError(
            f"{what} failed with status {exc.response.status_code}: "
            f"{exc.response.text}"
        ) from exc
    except httpx.HTTPError as exc:
        raise AuthenticationError(f"{what} failed: {exc}") from exc
    except ValueError as exc:
        raise AuthenticationError(f"{what} returned a response that is not JSON") from exc

    if "access_token" not in token_data:
        raise AuthenticationError(f"{what} response missing 'access_token' field")

    return token_data


def token_expiry(token_data: dict[str, Any]) -> Optional[datetime]:
    """Return when the token in *token_data* expires, or ``None`` if unknown.

    Azure AD v1 endpoints send ``expires_in`` as a string.
    """
    expires_in = token_data.get("expires_in")
    if expires_in is None:
        return None
    try:
        seconds = float(expires_in)
    except (TypeError, ValueError):
        return None
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


def obtain_credentials(
    credentials: Optional[Union[CredentialPair, str]],
    url: str,
    resolver: CredentialResolver,
    host: HostUI,
) -> CredentialPair:
    """Return the credential pair to sign in to *url* with.

    An explicit pair is used as is and a string is treated as the label of
    a stored credential. Otherwise the credential store is searched for
    *url*, and finally the user is prompted.

    Raises:
        NoCredentialsError: If a label is unknown, or nothing is stored and
            prompting is impossible.
        CancelledError: If the user dismisses the prompt.
    """
    if isinstance(credentials, CredentialPair):
        return credentials
    if isinstance(credentials, str):
        return resolver.resolve_label(credentials)

    pair = resolver.resolve(url)
    if pair is not None:
        return pair
    return host.prompt_for_credential(
        "Credentials required",
        f"No stored credentials were found for {url}",
    )
