"""Interactive browser login strategy.

See Also:
    :class:`~spconnect.strategies.web_login.strategy.WebLoginStrategy`
"""

from spconnect.strategies.web_login.strategy import WebLoginStrategy

__all__ = ["WebLoginStrategy"]
