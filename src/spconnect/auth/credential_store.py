"""Read-only access to the operating system's credential store.

The connect path only ever *reads* stored credentials, by exact string key.
On Windows the default :mod:`keyring` backend is Credential Manager, so a
generic credential whose target name is ``https://contoso.sharepoint.com``
is found under that exact key. Other platforms use whatever keyring backend
is installed (Secret Service, macOS Keychain, ...).

:class:`CredentialStore` is the abstract capability the resolver depends on;
tests substitute an in-memory implementation.

See Also:
    :class:`~spconnect.auth.resolver.CredentialResolver` -- the
    hierarchical lookup built on top of this store.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import keyring
from keyring.errors import KeyringError, NoKeyringError

from spconnect.exceptions import CredentialStoreError
from spconnect.models import CredentialPair

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """A read-only key to credential lookup."""

    @abstractmethod
    def get_credential(self, key: str) -> Optional[CredentialPair]:
        """Return the credential stored under exactly *key*, or ``None``.

        Args:
            key: The lookup key (a URL, ``scheme://host``, a bare host name,
                or a user-chosen label).

        Raises:
            CredentialStoreError: If the store exists but cannot be read.
        """
        ...


class KeyringCredentialStore(CredentialStore):
    """Credential store backed by the system keyring.

    Uses ``keyring.get_credential(key, None)``, which returns the first
    credential stored for service *key* regardless of user name.

    A machine with no usable keyring backend behaves as an empty store, so
    callers fall back to prompting instead of failing outright.
    """

    def get_credential(self, key: str) -> Optional[CredentialPair]:
        try:
            credential = keyring.get_credential(key, None)
        except NoKeyringError:
            logger.debug("No keyring backend available; treating '%s' as not stored", key)
            return None
        except KeyringError as exc:
            raise CredentialStoreError(
                f"Failed to read credential '{key}' from the system keyring: {exc}"
            ) from exc

        if credential is None or not credential.username or credential.password is None:
            return None
        return CredentialPair(username=credential.username, password=credential.password)
