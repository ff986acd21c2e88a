"""Authenticated context and the abstract base class for connection strategies.

This module defines the two foundational types of the connect path:

- :class:`ClientContext` -- the authenticated context a strategy produces:
  the headers, cookies and/or :class:`httpx.Auth` that later requests to
  the site must carry.
- :class:`ConnectionStrategy` -- the abstract base class every
  authentication mode extends.

To add a mode, subclass :class:`ConnectionStrategy`, set :attr:`kind`, and
implement :meth:`~ConnectionStrategy.connect`.

See Also:
    :mod:`spconnect.auth.factory` for strategy registration and dispatch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import httpx

from spconnect.models import ConnectionRequest, StrategyKind


class ClientContext:
    """The authenticated context for one site.

    Holds only derived authentication material (tokens, session cookies,
    an :class:`httpx.Auth`), never a raw credential pair.

    Args:
        url: The site URL the context was authenticated against.
        auth_mode: Which strategy produced it (``"token"``, ``"adfs"``, ...,
            or ``"current_identity"``).
        headers: HTTP headers to add (e.g. ``{"Authorization": "Bearer ..."}``).
        cookies: Session cookies to add (e.g. ``{"FedAuth": "..."}``).
        auth: Optional :class:`httpx.Auth` applied to each request.
        expires_at: When the token or session expires, if known.

    Example::

        context = ClientContext(
            "https://contoso.sharepoint.com",
            auth_mode="token",
            headers={"Authorization": "Bearer tok123"},
        )
    """

    def __init__(
        self,
        url: str,
        auth_mode: str,
        headers: dict[str, str] | None = None,
        cookies: dict[str, str] | None = None,
        auth: httpx.Auth | None = None,
        expires_at: Optional[datetime] = None,
    ):
        self.url = url
        self.auth_mode = auth_mode
        self.headers = headers or {}
        self.cookies = cookies or {}
        self.auth = auth
        self.expires_at = expires_at

    def __repr__(self) -> str:
        return f"ClientContext(url={self.url!r}, auth_mode={self.auth_mode!r})"


class ConnectionStrategy(ABC):
    """Abstract base class for authentication strategies.

    Every concrete mode (token, web login, ADFS, ...) must subclass this
    and provide:

    1. A :attr:`kind` property returning its
       :class:`~spconnect.models.StrategyKind`.
    2. A :meth:`connect` implementation that authenticates against the
       request's URL and returns a :class:`ClientContext`.

    Strategies are registered with
    :class:`~spconnect.auth.factory.ConnectionFactory` and looked up by
    ``kind`` at runtime.
    """

    @property
    @abstractmethod
    def kind(self) -> StrategyKind:
        """Return the strategy kind this class handles."""
        ...

    @abstractmethod
    def connect(self, request: ConnectionRequest) -> ClientContext:
        """Authenticate against ``request.url`` and return the context.

        ``request.strategy`` is guaranteed to be the request model matching
        :attr:`kind`.

        Raises:
            AuthenticationError: If the remote side rejects the attempt.
            NoCredentialsError: If credentials are needed and none exist.
            CancelledError: If the user aborts an interactive step.
        """
        ...
