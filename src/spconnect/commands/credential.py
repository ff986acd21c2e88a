"""Credential commands -- inspect stored-credential lookup for a URL.

``spconnect credential lookup URL`` lists every key the resolver would try
for the URL, most specific first, and marks the one that would be used.
Only user names are shown, never secrets.
"""

from __future__ import annotations

import typer

from spconnect.exceptions import SpconnectError
from spconnect.output import error, info, print_table


credential_app = typer.Typer(no_args_is_help=True)


@credential_app.command("lookup")
def credential_lookup(
    url: str = typer.Argument(help="Site URL to resolve credentials for."),
) -> None:
    """Show which stored credential a URL resolves to.

    Example::

        spconnect credential lookup https://contoso.sharepoint.com/sites/team
        spconnect --json credential lookup https://contoso.sharepoint.com
    """
    from spconnect.auth.credential_store import KeyringCredentialStore
    from spconnect.auth.resolver import candidate_keys
    from spconnect.models import validate_site_url

    try:
        validate_site_url(url)
    except ValueError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None

    store = KeyringCredentialStore()
    rows: list[list[str]] = []
    found = False
    try:
        for key in candidate_keys(url):
            pair = store.get_credential(key)
            if pair is None:
                rows.append([key, "", "no"])
            elif not found:
                rows.append([key, pair.username, "yes"])
                found = True
            else:
                rows.append([key, pair.username, "shadowed"])
    except SpconnectError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    print_table(["Key", "User", "Used"], rows, title=f"Credential lookup for {url}")
    if not found:
        info("No stored credential matches; connect will prompt for one.")
