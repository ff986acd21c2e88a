"""Config commands -- view and modify global configuration.

Provides the ``spconnect config`` sub-command group for reading,
updating, and resetting the user's global configuration file
(:class:`~spconnect.models.GlobalConfig`): the resiliency defaults applied
to every connection and whether interactive sign-in is allowed.
"""

from __future__ import annotations

import os

import typer
from pydantic import ValidationError

from spconnect.exceptions import ConfigurationError
from spconnect.output import error, format_response, info, success, warning


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Prints the config directory, the stored configuration, and the
    resiliency values that will actually apply once environment
    overrides are taken into account.

    Example::

        spconnect config show
        spconnect --json config show
    """
    from spconnect.config import get_config_dir, load_global_config, resolve_resiliency

    try:
        config = load_global_config()
        effective = resolve_resiliency(config=config)
    except ConfigurationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config directory: {get_config_dir()}")
    data = config.model_dump(mode="json")
    data["effective_resiliency"] = effective.model_dump(mode="json")
    format_response(data)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'resiliency.retry_count')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to the type of
    the existing field (bool or int) and the result is validated before
    saving.

    Example::

        spconnect config set resiliency.retry_count 3
        spconnect config set resiliency.request_timeout 60000
        spconnect config set interactive false
    """
    from spconnect.config import load_global_config, save_global_config
    from spconnect.models import GlobalConfig

    try:
        config = load_global_config()
    except ConfigurationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    if isinstance(current, bool):
        coerced: bool | int | str = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")

    env_var = _env_override(key)
    if env_var:
        warning(f"{env_var} is set and takes precedence over this value.")


def _env_override(key: str) -> str | None:
    """Return the environment variable currently overriding *key*, if any."""
    from spconnect.config import RESILIENCY_ENV_VARS

    prefix = "resiliency."
    if not key.startswith(prefix):
        return None
    env_var = RESILIENCY_ENV_VARS.get(key[len(prefix):])
    if env_var and os.environ.get(env_var):
        return env_var
    return None


@config_app.command("reset")
def config_reset(
    ctx: typer.Context,
) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        spconnect config reset
        spconnect --force config reset
    """
    from spconnect.config import save_global_config
    from spconnect.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
