"""spconnect -- authenticated connections to SharePoint sites.

This package establishes a *connection context* against a SharePoint site
using one of six mutually exclusive authentication strategies (app-only
token, browser login, ADFS, Azure AD native application, Azure AD app-only
certificate, or plain credentials / current identity), and keeps the result
as the process-wide current connection for later operations.

Typical usage::

    from spconnect.auth.selector import build_request
    from spconnect.connection import connect
    from spconnect.models import ConnectionParameters

    request = build_request(ConnectionParameters(url="https://contoso.sharepoint.com"))
    connection = connect(request)

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    connection: Connection, current-connection registry and ``connect()``.
    config: XDG-aware configuration and resiliency defaults.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
