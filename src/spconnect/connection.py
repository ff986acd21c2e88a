"""Connections and the process-wide current-connection registry.

A :class:`Connection` pairs the authenticated
:class:`~spconnect.auth.base.ClientContext` with the resiliency options
later requests must honour. Exactly one connection is *current* at a time;
:func:`connect` replaces it only when a new connection succeeds.

Example::

    from spconnect.auth.selector import build_request
    from spconnect.connection import connect, get_current_connection

    connect(build_request(params))
    with get_current_connection().create_client() as client:
        client.get("/_api/web")
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse

import httpx

from spconnect.models import ConnectionRequest, ResiliencyOptions

if TYPE_CHECKING:
    from spconnect.auth.base import ClientContext
    from spconnect.auth.factory import ConnectionFactory

logger = logging.getLogger(__name__)

_ONLINE_SUFFIX = ".sharepoint.com"
_ADMIN_SUFFIX = "-admin.sharepoint.com"


class ConnectionType(str, enum.Enum):
    """What kind of site a connection points at."""

    ONPREM = "onprem"
    O365 = "o365"
    TENANT_ADMIN = "tenant_admin"


def detect_connection_type(url: str, skip_tenant_admin_check: bool = False) -> ConnectionType:
    """Classify *url* by its host name.

    A tenant admin host (``contoso-admin.sharepoint.com``) counts as an
    ordinary online site when *skip_tenant_admin_check* is set.
    """
    host = (urlparse(url).hostname or "").lower()
    if host.endswith(_ADMIN_SUFFIX) and not skip_tenant_admin_check:
        return ConnectionType.TENANT_ADMIN
    if host.endswith(_ONLINE_SUFFIX):
        return ConnectionType.O365
    return ConnectionType.ONPREM


class Connection:
    """An authenticated connection to one site."""

    def __init__(
        self,
        context: ClientContext,
        resiliency: ResiliencyOptions,
        skip_tenant_admin_check: bool = False,
        connection_type: ConnectionType = ConnectionType.ONPREM,
    ):
        self.context = context
        self.resiliency = resiliency
        self.skip_tenant_admin_check = skip_tenant_admin_check
        self.connection_type = connection_type

    @property
    def url(self) -> str:
        return self.context.url

    def create_client(self) -> httpx.Client:
        """Return an :class:`httpx.Client` carrying this connection's auth material.

        The caller owns the client and should close it (use it as a
        context manager).
        """
        return httpx.Client(
            base_url=self.url,
            headers=self.context.headers,
            cookies=self.context.cookies,
            auth=self.context.auth,
            timeout=self.resiliency.request_timeout_seconds,
        )

    def __repr__(self) -> str:
        return (
            f"Connection(url={self.url!r}, auth_mode={self.context.auth_mode!r}, "
            f"connection_type={self.connection_type.value!r})"
        )


class ConnectionRegistry:
    """Holds the single current connection.

    ``set`` replaces the previous connection unconditionally; there is no
    history. The replace is guarded by a lock so concurrent callers see
    either the old or the new connection, never a torn state.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[Connection] = None

    def set(self, connection: Connection) -> None:
        with self._lock:
            self._current = connection

    def get(self) -> Optional[Connection]:
        with self._lock:
            return self._current

    def clear(self) -> None:
        with self._lock:
            self._current = None


_registry = ConnectionRegistry()


def get_registry() -> ConnectionRegistry:
    """Return the process-wide connection registry."""
    return _registry


def get_current_connection() -> Optional[Connection]:
    """Return the current connection, or ``None`` if nothing has connected yet."""
    return _registry.get()


def connect(
    request: ConnectionRequest,
    factory: Optional[ConnectionFactory] = None,
    registry: Optional[ConnectionRegistry] = None,
) -> Connection:
    """Authenticate *request* and make the result the current connection.

    Args:
        request: A validated connection request.
        factory: The factory to authenticate with. Defaults to
            :func:`~spconnect.auth.factory.create_default_factory`.
        registry: Where to store the result. Defaults to the process-wide
            registry.

    Returns:
        The new current connection.

    Raises:
        SpconnectError: If authentication fails. The registry keeps its
            previous value.
    """
    if factory is None:
        from spconnect.auth.factory import create_default_factory

        factory = create_default_factory()
    if registry is None:
        registry = _registry

    connection = factory.create(request)
    registry.set(connection)
    logger.info("Connected to %s", connection.url)
    return connection
