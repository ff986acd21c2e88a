"""Built-in CLI sub-commands for spconnect.

This package groups all Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~spconnect.commands.connect` -- connect to a site and report the
  selected strategy.
* :mod:`~spconnect.commands.credential` -- show which stored credential a
  URL resolves to.
* :mod:`~spconnect.commands.token_cache` -- locate or clear the Azure AD
  token cache.
* :mod:`~spconnect.commands.config` -- view and modify global settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``config``) or a plain callback function
registered directly on the root app (for single commands like ``connect``).
"""
