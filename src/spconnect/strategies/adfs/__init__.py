"""Federated sign-in through an on-premises ADFS server.

See Also:
    :class:`~spconnect.strategies.adfs.strategy.AdfsStrategy`
    :mod:`spconnect.strategies.wstrust` for the WS-Trust exchange.
"""

from spconnect.strategies.adfs.strategy import AdfsStrategy

__all__ = ["AdfsStrategy"]
