"""Web login strategy -- the user signs in through the system browser.

The site's sign-in page is opened with a local callback address attached
(``redirect_uri``). The value that arrives on the callback becomes the
``FedAuth`` session cookie. The wait has no timeout: it ends when the user
completes or abandons the sign-in.

Limitation: ``Authenticate.aspx`` itself never calls the callback. It sets
``FedAuth`` in the browser and redirects to ``Source``. Sign-in therefore
completes only when something in front of the site (a sign-in proxy, or
a browser extension the user runs) forwards the cookie to the callback as
``?token=<FedAuth>``. Without one, use ``--use-adfs``, Azure AD sign-in or
stored credentials instead.

TODO: read ``FedAuth`` from a controlled browser session (e.g. Playwright)
so no forwarder is needed.
"""

from __future__ import annotations

from urllib.parse import urlencode

from spconnect.auth.base import ClientContext, ConnectionStrategy
from spconnect.auth.host import HostUI
from spconnect.models import ConnectionRequest, StrategyKind

LOGIN_PATH = "/_layouts/15/Authenticate.aspx"


def login_url(url: str) -> str:
    """Return the sign-in page that redirects back to *url* when done."""
    return f"{url.rstrip('/')}{LOGIN_PATH}?{urlencode({'Source': url})}"


class WebLoginStrategy(ConnectionStrategy):
    """Authenticate by letting the user sign in interactively in a browser.

    Args:
        host: The interactive host that opens the browser.
    """

    def __init__(self, host: HostUI) -> None:
        self._host = host

    @property
    def kind(self) -> StrategyKind:
        return StrategyKind.WEB_LOGIN

    def connect(self, request: ConnectionRequest) -> ClientContext:
        token = self._host.open_browser_login(login_url(request.url))
        return ClientContext(
            request.url,
            auth_mode=self.kind.value,
            cookies={"FedAuth": token},
        )
