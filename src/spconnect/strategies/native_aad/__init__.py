"""Azure AD native application strategy (authorization code with PKCE).

See Also:
    :class:`~spconnect.strategies.native_aad.strategy.NativeAadStrategy`
    :class:`~spconnect.auth.token_cache.TokenCache` for token persistence.
"""

from spconnect.strategies.native_aad.strategy import NativeAadStrategy

__all__ = ["NativeAadStrategy"]
