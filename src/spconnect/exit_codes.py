"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~spconnect.exceptions.SpconnectError` subclass.
Shell wrappers can inspect the exit code to tell a rejected password from a
missing one without parsing stderr.

Example::

    $ spconnect connect https://contoso.sharepoint.com --no-input
    $ echo $?
    4   # EXIT_NO_CREDENTIALS -- nothing stored and prompting is disabled
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIGURATION_ERROR = 2
"""Conflicting, missing or invalid connection parameters or configuration."""

EXIT_AUTH_FAILURE = 3
"""The remote endpoint rejected the credentials, token or certificate."""

EXIT_NO_CREDENTIALS = 4
"""No explicit, stored or prompted credentials were available."""

EXIT_CERTIFICATE_ERROR = 5
"""The client certificate could not be read or its password is wrong."""

EXIT_CANCELLED = 130
"""The user aborted an interactive login or prompt (same as Ctrl-C)."""
