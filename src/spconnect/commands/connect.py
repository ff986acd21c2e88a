"""Connect command -- authenticate against a site and make it current.

Maps the command-line options one to one onto
:class:`~spconnect.models.ConnectionParameters`, lets the strategy
selector pick the authentication mode, and runs
:func:`~spconnect.connection.connect`. On success it prints the URL,
the strategy, and the connection type.
"""

from __future__ import annotations

import getpass
from pathlib import Path
from typing import Optional

import typer

from spconnect.exceptions import CancelledError, NoCredentialsError, SpconnectError
from spconnect.models import ConnectionParameters, CredentialPair
from spconnect.output import error, format_response, success, suggest


def _read_password(username: str, interactive: bool) -> CredentialPair:
    """Prompt for the password belonging to *username*."""
    if not interactive:
        raise NoCredentialsError(
            "--username needs a password prompt, but prompting is disabled"
        )
    try:
        password = getpass.getpass(f"Password for {username}: ")
    except (KeyboardInterrupt, EOFError) as exc:
        raise CancelledError("Password prompt cancelled") from exc
    return CredentialPair(username=username, password=password)


def connect_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Site URL, e.g. https://contoso.sharepoint.com/sites/team."),
    credentials: Optional[str] = typer.Option(
        None, "--credentials", help="Label of a stored credential to sign in with."
    ),
    username: Optional[str] = typer.Option(
        None, "--username", "-u", help="User name; the password is prompted for."
    ),
    current_credentials: bool = typer.Option(
        False, "--current-credentials", help="Sign in as the current operating-system user."
    ),
    use_adfs: bool = typer.Option(False, "--use-adfs", help="Sign in through ADFS."),
    use_web_login: bool = typer.Option(
        False, "--use-web-login", help="Sign in interactively in the browser."
    ),
    realm: Optional[str] = typer.Option(
        None, "--realm", help="Realm for app-only token sign-in (discovered when omitted)."
    ),
    app_id: Optional[str] = typer.Option(None, "--app-id", help="App id for app-only token sign-in."),
    app_secret: Optional[str] = typer.Option(
        None, "--app-secret", help="App secret for app-only token sign-in."
    ),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Azure AD application id."),
    redirect_uri: Optional[str] = typer.Option(
        None, "--redirect-uri", help="Redirect URI of the Azure AD native application."
    ),
    clear_token_cache: bool = typer.Option(
        False, "--clear-token-cache", help="Delete cached Azure AD tokens before signing in."
    ),
    tenant: Optional[str] = typer.Option(
        None, "--tenant", help="Azure AD tenant, e.g. contoso.onmicrosoft.com."
    ),
    certificate_path: Optional[Path] = typer.Option(
        None, "--certificate-path", help="PKCS#12 (.pfx) client certificate."
    ),
    certificate_password: Optional[str] = typer.Option(
        None, "--certificate-password", help="Password of the client certificate."
    ),
    skip_tenant_admin_check: bool = typer.Option(
        False, "--skip-tenant-admin-check", help="Treat a tenant admin site as an ordinary site."
    ),
    minimal_health_score: Optional[int] = typer.Option(
        None, "--minimal-health-score", help="Minimal server health score (-1 disables the check)."
    ),
    retry_count: Optional[int] = typer.Option(
        None, "--retry-count", help="Retries when the server is too busy."
    ),
    retry_wait: Optional[int] = typer.Option(
        None, "--retry-wait", help="Seconds to wait between retries."
    ),
    request_timeout: Optional[int] = typer.Option(
        None, "--request-timeout", help="Request timeout in milliseconds."
    ),
) -> None:
    """Connect to a site.

    The options supplied select the authentication mode; options from two
    different modes are rejected. With no mode options, stored credentials
    for the URL are used, and you are prompted when none exist.

    Example::

        spconnect connect https://contoso.sharepoint.com/sites/team
        spconnect connect https://contoso.sharepoint.com --use-web-login
        spconnect connect https://intranet.contoso.com --current-credentials
    """
    from spconnect.auth.factory import create_default_factory
    from spconnect.auth.selector import build_request
    from spconnect.config import load_global_config
    from spconnect.connection import connect

    no_input = ctx.obj.get("no_input", False) if ctx.obj else False

    try:
        config = load_global_config()
        interactive = config.interactive and not no_input

        supplied: Optional[CredentialPair | str] = credentials
        if username:
            if credentials:
                error("--username conflicts with --credentials")
                raise typer.Exit(code=2)
            supplied = _read_password(username, interactive)

        params = ConnectionParameters(
            url=url,
            credentials=supplied,
            current_credentials=current_credentials,
            use_adfs=use_adfs,
            use_web_login=use_web_login,
            realm=realm,
            app_id=app_id,
            app_secret=app_secret,
            client_id=client_id,
            redirect_uri=redirect_uri,
            clear_token_cache=clear_token_cache,
            tenant=tenant,
            certificate_path=certificate_path,
            certificate_password=certificate_password,
            skip_tenant_admin_check=skip_tenant_admin_check,
            minimal_health_score=minimal_health_score,
            retry_count=retry_count,
            retry_wait=retry_wait,
            request_timeout=request_timeout,
        )
        request = build_request(params, config)
        connection = connect(request, factory=create_default_factory(interactive=interactive))
    except SpconnectError as exc:
        error(str(exc))
        if isinstance(exc, NoCredentialsError):
            suggest(f"Run 'spconnect credential lookup {url}' to see which stored keys are tried")
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Connected to {connection.url}")
    format_response(
        {
            "url": connection.url,
            "strategy": request.strategy.kind,
            "auth_mode": connection.context.auth_mode,
            "connection_type": connection.connection_type.value,
        }
    )
