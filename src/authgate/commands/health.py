"""Health command -- probe the identity provider.

``authgate health`` calls the IdP's ``GET /health`` endpoint and prints
the reported status. An unreachable or unhealthy IdP exits with the
upstream exit code (6) so scripts can wait on it.
"""

from __future__ import annotations

import typer

from authgate.exceptions import AuthGateError
from authgate.output import debug, format_response, success


def health_command(ctx: typer.Context) -> None:
    """Check that the identity provider is reachable.

    Example::

        authgate health
        authgate --json --profile corp health
    """
    from authgate.commands import active_profile, fail, open_provider

    try:
        profile = active_profile(ctx)
        debug(f"Probing {profile.idp_url} (timeout {profile.request.timeout}s)")
        with open_provider(profile) as provider:
            status = provider.health()
    except AuthGateError as exc:
        fail(exc, "Check the profile's IdP URL with 'authgate config show'.")

    success(f"Identity provider at {profile.idp_url} is reachable.")
    format_response({"profile": profile.name, "idp_url": profile.idp_url, **status})
