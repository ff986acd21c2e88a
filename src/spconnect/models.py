"""Canonical Pydantic models shared across all spconnect modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Credentials and resiliency** -- :class:`CredentialPair` and
:class:`ResiliencyOptions`.

**Connection input** -- :class:`ConnectionParameters` is the flat, CLI-shaped
set of optional parameters a caller supplies. The strategy selector turns it
into a :class:`ConnectionRequest` whose ``strategy`` field is exactly one of
the six strategy request models (:class:`TokenRequest`,
:class:`WebLoginRequest`, :class:`AdfsRequest`, :class:`NativeAadRequest`,
:class:`AppOnlyAadRequest`, :class:`DefaultRequest`), discriminated on
``kind``.

**Configuration** -- :class:`GlobalConfig`, serialised as JSON in the user's
config directory.

All models use Pydantic v2. Secrets are :class:`~pydantic.SecretStr` so they
never show up in ``repr()`` or log output.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


# --- Credentials ---


class CredentialPair(BaseModel):
    """A username and secret used for one connection attempt.

    Immutable once created. The core never persists it: strategies consume
    it to build an authenticated context and then drop it.

    Example::

        pair = CredentialPair(username="alice@contoso.com", password="s3cret")
        pair.password.get_secret_value()  # "s3cret"
    """

    model_config = ConfigDict(frozen=True)

    username: str = Field(min_length=1)
    password: SecretStr


# --- Resiliency ---


class ResiliencyOptions(BaseModel):
    """Request-execution settings carried unchanged into a connection.

    These govern later requests against the site, not the connect
    handshake itself.
    """

    minimal_health_score: int = Field(
        default=-1,
        ge=-1,
        le=10,
        description="Minimal server health score before requests run (-1 = no check)",
    )
    retry_count: int = Field(
        default=10, ge=0, description="Retries when the health score is insufficient"
    )
    retry_wait: int = Field(
        default=1, ge=0, description="Seconds to wait before each retry"
    )
    request_timeout: int = Field(
        default=1800000, gt=0, description="Request timeout in milliseconds"
    )

    @property
    def request_timeout_seconds(self) -> float:
        """The request timeout converted to seconds."""
        return self.request_timeout / 1000.0


# --- Strategy requests ---


class StrategyKind(str, enum.Enum):
    """Identifiers of the six authentication strategies, in selection precedence order."""

    TOKEN = "token"
    WEB_LOGIN = "web_login"
    ADFS = "adfs"
    NATIVE_AAD = "native_aad"
    APP_ONLY_AAD = "app_only_aad"
    DEFAULT = "default"


class TokenRequest(BaseModel):
    """App-only token via realm, app id and app secret.

    When ``realm`` is ``None`` it is discovered from the target URL.
    """

    kind: Literal["token"] = "token"
    realm: Optional[str] = None
    app_id: str = Field(min_length=1)
    app_secret: SecretStr

    @field_validator("app_secret")
    @classmethod
    def _check_secret(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("app_secret must not be empty")
        return value


class WebLoginRequest(BaseModel):
    """Interactive browser-based login."""

    kind: Literal["web_login"] = "web_login"


class AdfsRequest(BaseModel):
    """Federated sign-in through an on-premises ADFS server.

    ``credentials`` is either an explicit pair, the label of a stored
    credential, or ``None`` to resolve from the credential store.
    """

    kind: Literal["adfs"] = "adfs"
    credentials: Optional[Union[CredentialPair, str]] = None


class NativeAadRequest(BaseModel):
    """Azure AD native application (authorization code) flow."""

    kind: Literal["native_aad"] = "native_aad"
    client_id: str = Field(min_length=1)
    redirect_uri: str = Field(min_length=1)
    clear_token_cache: bool = False


class AppOnlyAadRequest(BaseModel):
    """Azure AD app-only flow authenticated with a client certificate (PKCS#12)."""

    kind: Literal["app_only_aad"] = "app_only_aad"
    client_id: str = Field(min_length=1)
    tenant: str = Field(min_length=1, description="e.g. contoso.onmicrosoft.com")
    certificate_path: Path
    certificate_password: SecretStr


class DefaultRequest(BaseModel):
    """Explicit, stored or prompted credentials, or the current OS identity."""

    kind: Literal["default"] = "default"
    credentials: Optional[Union[CredentialPair, str]] = None
    current_credentials: bool = False


StrategyRequest = Annotated[
    Union[
        TokenRequest,
        WebLoginRequest,
        AdfsRequest,
        NativeAadRequest,
        AppOnlyAadRequest,
        DefaultRequest,
    ],
    Field(discriminator="kind"),
]


def validate_site_url(url: str) -> str:
    """Return *url* if it is an absolute ``http``/``https`` URL with a host.

    Raises:
        ValueError: If the URL is relative, has another scheme, no host or an
            invalid port.
    """
    parsed = urlparse(url)
    try:
        port = parsed.port
    except ValueError:
        port = -1
    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname or port == -1:
        raise ValueError(f"'{url}' is not an absolute http(s) URL")
    return url


class ConnectionParameters(BaseModel):
    """Flat connection input as supplied by a caller or the CLI.

    Every strategy-specific field is optional; the strategy selector works
    out which parameter group was supplied. Resiliency fields left at
    ``None`` fall back to the configured defaults.
    """

    url: str
    # Default / ADFS
    credentials: Optional[Union[CredentialPair, str]] = None
    current_credentials: bool = False
    use_adfs: bool = False
    # Web login
    use_web_login: bool = False
    # Token
    realm: Optional[str] = None
    app_id: Optional[str] = None
    app_secret: Optional[SecretStr] = None
    # Azure AD
    client_id: Optional[str] = None
    redirect_uri: Optional[str] = None
    clear_token_cache: bool = False
    tenant: Optional[str] = None
    certificate_path: Optional[Path] = None
    certificate_password: Optional[SecretStr] = None
    # All strategies
    skip_tenant_admin_check: bool = False
    minimal_health_score: Optional[int] = None
    retry_count: Optional[int] = None
    retry_wait: Optional[int] = None
    request_timeout: Optional[int] = None


class ConnectionRequest(BaseModel):
    """A fully validated connection request carrying exactly one strategy."""

    url: str
    strategy: StrategyRequest
    resiliency: ResiliencyOptions = Field(default_factory=ResiliencyOptions)
    skip_tenant_admin_check: bool = False

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        return validate_site_url(value)


# --- Configuration ---


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/spconnect/config.json``.

    Loaded and saved by :func:`~spconnect.config.load_global_config` and
    :func:`~spconnect.config.save_global_config`. Resiliency values here
    have the lowest precedence and can be overridden by environment
    variables or CLI flags; see :func:`~spconnect.config.resolve_resiliency`.
    """

    resiliency: ResiliencyOptions = Field(default_factory=ResiliencyOptions)
    interactive: bool = Field(
        default=True, description="Allow credential prompts and browser logins"
    )
