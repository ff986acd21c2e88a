"""Persistent OAuth token cache for the Azure AD native application flow.

A single JSON file per application, ``tokencache.json`` under the data
directory (``~/.local/share/spconnect/`` on XDG platforms). It is written
atomically with ``0o600`` permissions so refresh tokens are never
world-readable, even momentarily.

The file maps a cache key (``"<client_id>|<resource>"``) to a
:class:`TokenEntry`. The only operation the connect command performs on it
directly is :meth:`TokenCache.clear`, requested with ``--clear-token-cache``.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from spconnect.config import atomic_write, get_token_cache_path


class TokenEntry(BaseModel):
    """A cached access token, with its refresh token when one was issued."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = Field(
        default=None, description="When the access token expires (None = unknown)"
    )

    def is_valid(self, margin_seconds: int = 30) -> bool:
        """Return True if the access token has not expired (with a safety margin)."""
        if self.expires_at is None:
            return False
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return (expires - datetime.now(timezone.utc)).total_seconds() > margin_seconds


def cache_key(client_id: str, resource: str) -> str:
    """Return the cache key for a client id and resource."""
    return f"{client_id}|{resource}"


class TokenCache:
    """Read/write the token cache file.

    Args:
        path: Cache file location. Defaults to
            :func:`~spconnect.config.get_token_cache_path`.

    Example::

        cache = TokenCache()
        cache.put(cache_key("client", "https://contoso.sharepoint.com"),
                  TokenEntry(access_token="tok"))
        cache.clear()
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path if path is not None else get_token_cache_path()

    @property
    def path(self) -> Path:
        """The filesystem path of the cache file."""
        return self._path

    def load(self) -> dict[str, TokenEntry]:
        """Load every cached entry.

        Returns:
            A mapping of cache key to entry. Empty when the file does not
            exist or cannot be parsed.
        """
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return {key: TokenEntry.model_validate(value) for key, value in data.items()}
        except (json.JSONDecodeError, ValueError, AttributeError, OSError):
            return {}

    def get(self, key: str) -> Optional[TokenEntry]:
        """Return the entry stored under *key*, or ``None``."""
        return self.load().get(key)

    def put(self, key: str, entry: TokenEntry) -> None:
        """Store *entry* under *key*, keeping the other entries."""
        entries = self.load()
        entries[key] = entry
        data = {k: v.model_dump(mode="json") for k, v in entries.items()}
        atomic_write(self._path, json.dumps(data, indent=2) + "\n", mode=0o600)

    def clear(self) -> None:
        """Delete the cache file if it exists.

        This is a no-op when the file has already been removed.
        """
        if self._path.is_file():
            self._path.unlink()
