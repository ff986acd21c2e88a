"""Exception hierarchy for spconnect.

All exceptions inherit from :class:`SpconnectError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`spconnect.exit_codes`.
The top-level error handler in :func:`spconnect.app.main` catches
``SpconnectError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

No error is retried by the connect path: every one aborts the current
attempt and leaves the current connection untouched.

Subclass hierarchy::

    SpconnectError (exit 1)
    +-- ConfigurationError      (exit 2)
    |   +-- CredentialStoreError (exit 2)
    +-- AuthenticationError     (exit 3)
    +-- NoCredentialsError      (exit 4)
    +-- CertificateError        (exit 5)
    +-- CancelledError          (exit 130)
"""

from spconnect.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_CERTIFICATE_ERROR,
    EXIT_CONFIGURATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_NO_CREDENTIALS,
)


class SpconnectError(Exception):
    """Base exception for all spconnect errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`spconnect.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(SpconnectError):
    """Raised for ambiguous or missing strategy parameters and invalid configuration."""

    exit_code = EXIT_CONFIGURATION_ERROR


class CredentialStoreError(ConfigurationError):
    """Raised when the OS credential store is installed but cannot be read."""


class AuthenticationError(SpconnectError):
    """Raised when the remote endpoint rejects the credentials, token or certificate."""

    exit_code = EXIT_AUTH_FAILURE


class NoCredentialsError(SpconnectError):
    """Raised when no explicit, stored or prompted credentials are available."""

    exit_code = EXIT_NO_CREDENTIALS


class CertificateError(SpconnectError):
    """Raised when a client certificate cannot be loaded (bad path or password)."""

    exit_code = EXIT_CERTIFICATE_ERROR


class CancelledError(SpconnectError):
    """Raised when the user aborts an interactive login or credential prompt.

    Not fatal to the process: callers may catch it and carry on with the
    previous connection.
    """

    exit_code = EXIT_CANCELLED
