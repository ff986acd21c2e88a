"""Connection factory -- registry and dispatcher for connection strategies.

The :class:`ConnectionFactory` maps each
:class:`~spconnect.models.StrategyKind` to a concrete
:class:`~spconnect.auth.base.ConnectionStrategy` and exposes a single
:meth:`~ConnectionFactory.create` method that turns a validated
:class:`~spconnect.models.ConnectionRequest` into a
:class:`~spconnect.connection.Connection`.

For most use cases, call :func:`create_default_factory` to get a factory
pre-loaded with all six built-in strategies.

See Also:
    :class:`~spconnect.auth.base.ConnectionStrategy` -- the strategy interface.
    :func:`~spconnect.connection.connect` -- runs the factory and stores the
    result as the current connection.
"""

from __future__ import annotations

import logging
from typing import Optional

from spconnect.auth.base import ConnectionStrategy
from spconnect.auth.credential_store import CredentialStore, KeyringCredentialStore
from spconnect.auth.host import ConsoleHost, HostUI
from spconnect.auth.resolver import CredentialResolver
from spconnect.auth.token_cache import TokenCache
from spconnect.connection import Connection, detect_connection_type
from spconnect.exceptions import ConfigurationError
from spconnect.models import ConnectionRequest, StrategyKind

logger = logging.getLogger(__name__)


class ConnectionFactory:
    """Registry and dispatcher for connection strategies.

    Strategies are registered by their :attr:`~ConnectionStrategy.kind`.
    When :meth:`create` is called, the factory looks up the strategy
    matching ``request.strategy.kind`` and wraps the context it returns
    with the request's resiliency options.

    Example::

        factory = ConnectionFactory()
        factory.register(TokenStrategy())
        connection = factory.create(request)
    """

    def __init__(self) -> None:
        self._strategies: dict[StrategyKind, ConnectionStrategy] = {}

    def register(self, strategy: ConnectionStrategy) -> None:
        """Register a strategy, replacing any previous one of the same kind."""
        self._strategies[strategy.kind] = strategy

    def get_strategy(self, kind: StrategyKind | str) -> ConnectionStrategy:
        """Retrieve the strategy registered for *kind*.

        Raises:
            ConfigurationError: If no strategy is registered for *kind*.
        """
        try:
            strategy = self._strategies.get(StrategyKind(kind))
        except ValueError:
            strategy = None
        if strategy is None:
            available = ", ".join(sorted(k.value for k in self._strategies)) or "(none)"
            raise ConfigurationError(
                f"No connection strategy registered for '{kind}'. "
                f"Available strategies: {available}"
            )
        return strategy

    def create(self, request: ConnectionRequest) -> Connection:
        """Authenticate with the strategy *request* selects.

        Args:
            request: A validated connection request.

        Returns:
            A new :class:`~spconnect.connection.Connection`. The previous
            current connection is not touched here.

        Raises:
            SpconnectError: Whatever the strategy raises; nothing is retried.
        """
        strategy = self.get_strategy(request.strategy.kind)
        logger.debug("Connecting to %s with the %s strategy", request.url, strategy.kind.value)
        context = strategy.connect(request)
        return Connection(
            context=context,
            resiliency=request.resiliency,
            skip_tenant_admin_check=request.skip_tenant_admin_check,
            connection_type=detect_connection_type(
                request.url, request.skip_tenant_admin_check
            ),
        )

    def list_kinds(self) -> list[str]:
        """Return the identifiers of all registered strategies, sorted."""
        return sorted(k.value for k in self._strategies)


def create_default_factory(
    store: Optional[CredentialStore] = None,
    host: Optional[HostUI] = None,
    token_cache: Optional[TokenCache] = None,
    interactive: bool = True,
) -> ConnectionFactory:
    """Create a :class:`ConnectionFactory` pre-loaded with all built-in strategies.

    Args:
        store: Credential store for stored-credential lookup. Defaults to
            the system keyring.
        host: Interactive host for prompts and browser logins. Defaults to
            a :class:`~spconnect.auth.host.ConsoleHost`.
        token_cache: Token cache for the native application flow. Defaults
            to the per-user cache file.
        interactive: Passed to the default console host; ignored when
            *host* is given.

    Returns:
        A fully initialised :class:`ConnectionFactory`.
    """
    from spconnect.strategies.adfs import AdfsStrategy
    from spconnect.strategies.app_only_aad import AppOnlyAadStrategy
    from spconnect.strategies.default import DefaultStrategy
    from spconnect.strategies.native_aad import NativeAadStrategy
    from spconnect.strategies.token import TokenStrategy
    from spconnect.strategies.web_login import WebLoginStrategy

    resolver = CredentialResolver(store if store is not None else KeyringCredentialStore())
    host = host if host is not None else ConsoleHost(interactive=interactive)
    token_cache = token_cache if token_cache is not None else TokenCache()

    factory = ConnectionFactory()
    factory.register(TokenStrategy())
    factory.register(WebLoginStrategy(host))
    factory.register(AdfsStrategy(resolver, host))
    factory.register(NativeAadStrategy(host, token_cache))
    factory.register(AppOnlyAadStrategy())
    factory.register(DefaultStrategy(resolver, host))
    return factory
