"""Authentication core for spconnect.

This package turns flat connection parameters into an authenticated
connection. The main entry points are:

- :func:`build_request` -- validates parameters and selects exactly one
  strategy.
- :class:`CredentialResolver` -- hierarchical stored-credential lookup.
- :class:`ConnectionStrategy` -- abstract base class for authentication modes.
- :class:`ConnectionFactory` -- registry that maps strategy kinds to
  strategy instances and builds :class:`~spconnect.connection.Connection`
  objects.
- :func:`create_default_factory` -- factory pre-loaded with all built-in
  strategies.

Typical usage::

    from spconnect.auth import build_request, create_default_factory

    request = build_request(ConnectionParameters(url="https://contoso.sharepoint.com"))
    connection = create_default_factory().create(request)
"""

from spconnect.auth.base import ClientContext, ConnectionStrategy
from spconnect.auth.credential_store import CredentialStore, KeyringCredentialStore
from spconnect.auth.factory import ConnectionFactory, create_default_factory
from spconnect.auth.host import ConsoleHost, HostUI
from spconnect.auth.negotiate import NegotiateAuth
from spconnect.auth.resolver import CredentialResolver, candidate_keys
from spconnect.auth.selector import build_request, select_strategy
from spconnect.auth.token_cache import TokenCache, TokenEntry

__all__ = [
    "ClientContext",
    "ConnectionStrategy",
    "CredentialStore",
    "KeyringCredentialStore",
    "ConnectionFactory",
    "create_default_factory",
    "ConsoleHost",
    "HostUI",
    "NegotiateAuth",
    "CredentialResolver",
    "candidate_keys",
    "build_request",
    "select_strategy",
    "TokenCache",
    "TokenEntry",
]
