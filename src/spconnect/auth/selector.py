"""Strategy selection -- turn flat connection parameters into one strategy.

:class:`~spconnect.models.ConnectionParameters` mirrors the command line: a
URL plus every optional parameter of every authentication mode. Each mode
owns a *parameter group*; supplying parameters from two groups is a
configuration error rather than a silent guess.

Groups, in precedence order::

    token         realm, app_id, app_secret
    web_login     use_web_login
    adfs          use_adfs
    native_aad    redirect_uri, clear_token_cache      (+ shared client_id)
    app_only_aad  tenant, certificate_path, certificate_password (+ client_id)
    default       current_credentials                  (+ shared credentials)

``client_id`` is shared by both Azure AD modes and ``credentials`` by ADFS
and default. A shared parameter joins the first group (by precedence) that
was otherwise selected and accepts it.

The selector is pure: no I/O, no prompting.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import SecretStr, ValidationError

from spconnect.config import resolve_resiliency
from spconnect.exceptions import ConfigurationError
from spconnect.models import (
    AdfsRequest,
    AppOnlyAadRequest,
    ConnectionParameters,
    ConnectionRequest,
    DefaultRequest,
    GlobalConfig,
    NativeAadRequest,
    StrategyKind,
    StrategyRequest,
    TokenRequest,
    WebLoginRequest,
    validate_site_url,
)

logger = logging.getLogger(__name__)

_EXCLUSIVE_GROUPS: dict[StrategyKind, tuple[str, ...]] = {
    StrategyKind.TOKEN: ("realm", "app_id", "app_secret"),
    StrategyKind.WEB_LOGIN: ("use_web_login",),
    StrategyKind.ADFS: ("use_adfs",),
    StrategyKind.NATIVE_AAD: ("redirect_uri", "clear_token_cache"),
    StrategyKind.APP_ONLY_AAD: ("tenant", "certificate_path", "certificate_password"),
    StrategyKind.DEFAULT: ("current_credentials",),
}

_SHARED_PARAMETERS: dict[str, tuple[StrategyKind, ...]] = {
    "client_id": (StrategyKind.NATIVE_AAD, StrategyKind.APP_ONLY_AAD),
    "credentials": (StrategyKind.ADFS, StrategyKind.DEFAULT),
}

_REQUIRED: dict[StrategyKind, tuple[str, ...]] = {
    StrategyKind.TOKEN: ("app_id", "app_secret"),
    StrategyKind.NATIVE_AAD: ("client_id", "redirect_uri"),
    StrategyKind.APP_ONLY_AAD: (
        "client_id",
        "tenant",
        "certificate_path",
        "certificate_password",
    ),
}

_RESILIENCY_FIELDS = ("minimal_health_score", "retry_count", "retry_wait", "request_timeout")


def _option(name: str) -> str:
    """Render a parameter name the way the CLI spells it."""
    return "--" + name.replace("_", "-")


def _is_set(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str) and value == "":
        return False
    if isinstance(value, SecretStr) and value.get_secret_value() == "":
        return False
    return True


def _supplied(params: ConnectionParameters, names: tuple[str, ...]) -> list[str]:
    return [name for name in names if _is_set(getattr(params, name))]


def select_kind(params: ConnectionParameters) -> StrategyKind:
    """Decide which strategy the supplied parameters ask for.

    Raises:
        ConfigurationError: If parameters from more than one group are
            present, or a shared parameter cannot belong to the chosen group.
    """
    present: dict[StrategyKind, list[str]] = {}
    for kind, names in _EXCLUSIVE_GROUPS.items():
        supplied = _supplied(params, names)
        if supplied:
            present[kind] = supplied

    if len(present) > 1:
        described = [", ".join(_option(n) for n in names) for names in present.values()]
        raise ConfigurationError(
            "Parameters from more than one authentication mode were supplied: "
            + " conflicts with ".join(described)
        )

    shared = _supplied(params, tuple(_SHARED_PARAMETERS))

    if present:
        kind = next(iter(present))
    elif "credentials" in shared:
        kind = StrategyKind.DEFAULT
    elif "client_id" in shared:
        raise ConfigurationError(
            "--client-id requires either --redirect-uri (native application) or "
            "--tenant, --certificate-path and --certificate-password (app-only)"
        )
    else:
        kind = StrategyKind.DEFAULT

    for name in shared:
        if kind not in _SHARED_PARAMETERS[name]:
            raise ConfigurationError(
                f"{_option(name)} cannot be combined with the {kind.value} "
                "authentication mode"
            )

    if kind is StrategyKind.DEFAULT and params.current_credentials and _is_set(params.credentials):
        raise ConfigurationError(
            "--credentials conflicts with --current-credentials"
        )

    missing = [name for name in _REQUIRED.get(kind, ()) if not _is_set(getattr(params, name))]
    if missing:
        raise ConfigurationError(
            f"The {kind.value} authentication mode requires "
            + ", ".join(_option(n) for n in missing)
        )

    return kind


def select_strategy(params: ConnectionParameters) -> StrategyRequest:
    """Return the strategy request matching the supplied parameter group.

    Args:
        params: The flat connection parameters.

    Returns:
        Exactly one of the six strategy request models.

    Raises:
        ConfigurationError: If the parameters do not select exactly one
            complete strategy.
    """
    kind = select_kind(params)
    logger.debug("Selected %s authentication for %s", kind.value, params.url)

    try:
        if kind is StrategyKind.TOKEN:
            return TokenRequest(
                realm=params.realm or None,
                app_id=params.app_id,
                app_secret=params.app_secret,
            )
        if kind is StrategyKind.WEB_LOGIN:
            return WebLoginRequest()
        if kind is StrategyKind.ADFS:
            return AdfsRequest(credentials=params.credentials)
        if kind is StrategyKind.NATIVE_AAD:
            return NativeAadRequest(
                client_id=params.client_id,
                redirect_uri=params.redirect_uri,
                clear_token_cache=params.clear_token_cache,
            )
        if kind is StrategyKind.APP_ONLY_AAD:
            return AppOnlyAadRequest(
                client_id=params.client_id,
                tenant=params.tenant,
                certificate_path=params.certificate_path,
                certificate_password=params.certificate_password,
            )
        return DefaultRequest(
            credentials=params.credentials,
            current_credentials=params.current_credentials,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid {kind.value} parameters: {exc}") from exc


def build_request(
    params: ConnectionParameters,
    config: Optional[GlobalConfig] = None,
) -> ConnectionRequest:
    """Validate *params* and build a :class:`~spconnect.models.ConnectionRequest`.

    Resiliency fields left unset in *params* are filled from the environment
    and the global configuration (see
    :func:`~spconnect.config.resolve_resiliency`).

    Args:
        params: The flat connection parameters.
        config: Global config to take defaults from; loaded from disk when
            omitted.

    Raises:
        ConfigurationError: On an invalid URL, conflicting or incomplete
            strategy parameters, or invalid resiliency values.
    """
    try:
        validate_site_url(params.url)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    strategy = select_strategy(params)
    resiliency = resolve_resiliency(
        {name: getattr(params, name) for name in _RESILIENCY_FIELDS},
        config,
    )
    return ConnectionRequest(
        url=params.url,
        strategy=strategy,
        resiliency=resiliency,
        skip_tenant_admin_check=params.skip_tenant_admin_check,
    )
