"""Hierarchical lookup of stored credentials for a site URL.

A single stored credential for a whole site collection or host name should
satisfy requests to any page beneath it, so the lookup walks from the most
specific key to the least specific one and stops at the first hit:

1. The URL exactly as given.
2. ``scheme://host[:port]`` plus the path, dropping the last ``/`` segment
   each round (empty paths are skipped). The port appears only when it is
   not the scheme's default.
3. ``scheme://host`` (never with a port).
4. ``host`` alone.

For ``https://contoso.sharepoint.com:8443/sites/team/sub`` the keys are::

    https://contoso.sharepoint.com:8443/sites/team/sub
    https://contoso.sharepoint.com:8443/sites/team
    https://contoso.sharepoint.com:8443/sites
    https://contoso.sharepoint.com
    contoso.sharepoint.com
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

from spconnect.auth.credential_store import CredentialStore
from spconnect.exceptions import NoCredentialsError
from spconnect.models import CredentialPair

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def authority(url: str) -> str:
    """Return ``host[:port]`` for *url*, without user info or a default port."""
    parsed = urlparse(url)
    host = parsed.hostname or ""
    port = parsed.port
    if port is not None and port != _DEFAULT_PORTS.get(parsed.scheme.lower()):
        return f"{host}:{port}"
    return host


def candidate_keys(url: str) -> list[str]:
    """Return the credential-store keys to try for *url*, most specific first.

    Duplicates (e.g. ``scheme://host`` produced by both step 2 and step 3
    when the port is the default) are removed while keeping the first
    occurrence.

    Args:
        url: An absolute ``http``/``https`` URL.

    Returns:
        The ordered list of lookup keys.
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = parsed.hostname or ""
    base = f"{scheme}://{authority(url)}"

    keys = [url]
    path = parsed.path
    while "/" in path:
        path = path[: path.rindex("/")]
        if path:
            keys.append(f"{base}{path}")
    keys.append(f"{scheme}://{host}")
    keys.append(host)

    return list(dict.fromkeys(keys))


class CredentialResolver:
    """Find stored credentials for a site URL.

    Args:
        store: The credential store to query.

    Example::

        resolver = CredentialResolver(KeyringCredentialStore())
        pair = resolver.resolve("https://contoso.sharepoint.com/sites/team")
    """

    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    def resolve(self, url: str) -> Optional[CredentialPair]:
        """Return the most specific stored credential for *url*, or ``None``."""
        for key in candidate_keys(url):
            logger.debug("Looking up stored credential '%s'", key)
            pair = self._store.get_credential(key)
            if pair is not None:
                logger.debug("Using stored credential '%s' for %s", key, url)
                return pair
        return None

    def resolve_label(self, label: str) -> CredentialPair:
        """Return the credential stored under the exact *label*.

        Raises:
            NoCredentialsError: If nothing is stored under *label*.
        """
        pair = self._store.get_credential(label)
        if pair is None:
            raise NoCredentialsError(f"No stored credential found with label '{label}'")
        return pair
