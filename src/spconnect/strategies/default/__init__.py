"""Default strategy: explicit, stored or prompted credentials, or the current identity.

See Also:
    :class:`~spconnect.strategies.default.strategy.DefaultStrategy`
"""

from spconnect.strategies.default.strategy import DefaultStrategy

__all__ = ["DefaultStrategy"]
