"""Built-in CLI sub-commands for authgate.

This package groups all Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~authgate.commands.init` -- create a profile for an identity provider.
* :mod:`~authgate.commands.login` -- sign in with a password, OTP, or OAuth.
* :mod:`~authgate.commands.session` -- show, print, or clear the stored session.
* :mod:`~authgate.commands.health` -- probe the identity provider.
* :mod:`~authgate.commands.config` -- view settings and manage profiles.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands export a plain callback registered on the root app. The helpers
below are shared by all of them.
"""

from __future__ import annotations

from typing import NoReturn, Optional

import typer

from authgate.exceptions import AuthGateError, ConfigError
from authgate.idp.http import HttpIdentityProvider
from authgate.models import Profile


def active_profile(ctx: typer.Context) -> Profile:
    """Resolve the profile for this invocation from ``--profile``, env, and config.

    Raises:
        ConfigError: If no profile can be resolved.
    """
    from authgate.config import resolve_config

    obj = ctx.obj or {}
    _, profile = resolve_config(
        cli_profile=obj.get("profile"),
        cli_timeout=obj.get("timeout"),
    )
    if profile is None:
        raise ConfigError(
            "No profile selected. Create one with 'authgate init' or set AUTHGATE_IDP_URL."
        )
    return profile


def open_provider(profile: Profile) -> HttpIdentityProvider:
    """Build the identity provider client for *profile*."""
    return HttpIdentityProvider(profile)


def fail(exc: AuthGateError, hint: Optional[str] = None) -> NoReturn:
    """Report *exc* on stderr and exit with its exit code."""
    from authgate.output import error, suggest

    error(str(exc))
    if hint:
        suggest(hint)
    raise typer.Exit(code=exc.exit_code)
