"""Config commands -- view settings and manage profiles.

Provides the ``authgate config`` sub-command group for reading the global
configuration (:class:`~authgate.models.GlobalConfig`), listing profiles,
choosing the default one, and removing profiles together with their
stored sessions.
"""

from __future__ import annotations

import typer

from authgate.exceptions import ConfigError
from authgate.output import error, format_response, get_output, info, success, suggest


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the global configuration and the active profile.

    Example::

        authgate config show
        authgate config show --json
    """
    from authgate.config import get_config_dir, resolve_config

    obj = ctx.obj or {}
    try:
        config, profile = resolve_config(
            cli_profile=obj.get("profile"), cli_timeout=obj.get("timeout")
        )
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config directory: {get_config_dir()}")
    format_response(
        {
            "global": config.model_dump(mode="json"),
            "active_profile": profile.model_dump(mode="json") if profile else None,
        }
    )


@config_app.command("list")
def config_list() -> None:
    """List configured profiles, marking the default.

    Profiles that fail to load are shown with an ``error`` status.
    """
    from authgate.config import list_profiles, load_global_config, load_profile

    profiles = list_profiles()
    if not profiles:
        info("No profiles configured.")
        suggest("Create one: authgate init --name <name> --idp-url <url>")
        return

    default = load_global_config().default_profile
    headers = ["Profile", "IdP URL", "Default"]
    rows: list[list[str]] = []
    for name in profiles:
        try:
            profile = load_profile(name)
        except ConfigError:
            rows.append([name, "error", ""])
            continue
        rows.append([name, profile.idp_url, "*" if name == default else ""])

    get_output().print_table(headers, rows, title="Configured Profiles")


@config_app.command("use")
def config_use(
    name: str = typer.Argument(help="Profile to make the default."),
) -> None:
    """Set the default profile in the global configuration.

    Raises:
        typer.Exit: With code 1 if the profile does not exist.
    """
    from authgate.config import load_global_config, profile_exists, save_global_config

    if not profile_exists(name):
        error(f'Profile "{name}" does not exist.')
        raise typer.Exit(code=ConfigError.exit_code)

    config = load_global_config()
    config.default_profile = name
    save_global_config(config)
    success(f'Default profile set to "{name}".')


@config_app.command("remove")
def config_remove(
    name: str = typer.Argument(help="Profile to remove."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Remove a profile and its stored session.

    Asks for confirmation unless ``--yes`` is given. If the profile was the
    global default, the default is cleared.
    """
    from authgate.config import delete_profile, load_global_config, save_global_config
    from authgate.session.store import SessionStore

    if not yes:
        confirmed = typer.confirm(f'Remove profile "{name}" and its stored session?')
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    try:
        delete_profile(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    SessionStore(name).clear()

    config = load_global_config()
    if config.default_profile == name:
        config.default_profile = None
        save_global_config(config)
    success(f'Profile "{name}" removed.')
