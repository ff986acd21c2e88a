"""Token cache commands -- locate or clear the Azure AD token cache."""

from __future__ import annotations

import typer

from spconnect.output import info, print_data, success


token_cache_app = typer.Typer(no_args_is_help=True)


@token_cache_app.command("path")
def token_cache_path() -> None:
    """Print the location of the token cache file."""
    from spconnect.auth.token_cache import TokenCache

    print_data(str(TokenCache().path))


@token_cache_app.command("clear")
def token_cache_clear() -> None:
    """Delete the token cache so the next native sign-in starts fresh.

    Clearing an absent cache is not an error.

    Example::

        spconnect token-cache clear
    """
    from spconnect.auth.token_cache import TokenCache

    cache = TokenCache()
    if not cache.path.is_file():
        info("Token cache is already empty.")
        return
    cache.clear()
    success(f"Removed {cache.path}")
