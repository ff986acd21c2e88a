"""App-only token strategy.

Implements the ``token`` kind: realm (discovered when omitted), app id and
app secret exchanged for a bearer token.

See Also:
    :class:`~spconnect.strategies.token.strategy.TokenStrategy`
"""

from spconnect.strategies.token.strategy import TokenStrategy

__all__ = ["TokenStrategy"]
