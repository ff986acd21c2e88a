"""Azure AD app-only strategy authenticated with a client certificate.

See Also:
    :class:`~spconnect.strategies.app_only_aad.strategy.AppOnlyAadStrategy`
"""

from spconnect.strategies.app_only_aad.strategy import AppOnlyAadStrategy

__all__ = ["AppOnlyAadStrategy"]
