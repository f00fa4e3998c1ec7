"""Init command -- create a profile for an identity provider.

Implements the ``authgate init`` top-level command. This is the typical
entry point for first-time setup: it records the IdP base URL, request
timeout, and where the session signing secret comes from in a
:class:`~authgate.models.Profile`, and writes a project-local
``authgate.json`` pinning that profile as the default.
"""

from __future__ import annotations

import re
from typing import Optional

import typer

from authgate.output import debug, error, info, success, suggest


def init_command(
    name: str = typer.Option(
        ...,
        "--name",
        "-n",
        help="Profile name.",
    ),
    idp_url: str = typer.Option(
        ..., "--idp-url", help="Base URL of the identity provider."
    ),
    secret_source: str = typer.Option(
        "env:AUTHGATE_SESSION_SECRET",
        "--secret-source",
        help="Session signing secret source: env:VAR, file:/path, or prompt.",
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds."
    ),
    oauth_provider: str = typer.Option(
        "google", "--oauth-provider", help="Default OAuth provider name."
    ),
) -> None:
    """Create a profile for an identity provider.

    Raises:
        typer.Exit: With code 2 if the name or URL is unusable.

    Example::

        authgate init --name corp --idp-url https://idp.example.com
        authgate init --name corp --idp-url http://localhost:5000 --secret-source file:~/.authgate-secret
    """
    from authgate.config import profile_exists, save_profile, write_project_config
    from authgate.models import Profile, RequestConfig, SessionConfig

    profile_name = _slugify(name)
    if profile_name != name:
        debug(f"Normalised profile name: {name} -> {profile_name}")

    if not re.match(r"^https?://", idp_url):
        error(f"IdP URL must start with http:// or https://: {idp_url}")
        raise typer.Exit(code=2)

    if profile_exists(profile_name):
        info(f'Profile "{profile_name}" already exists and will be overwritten.')

    request = RequestConfig() if timeout is None else RequestConfig(timeout=timeout)
    profile = Profile(
        name=profile_name,
        idp_url=idp_url.rstrip("/"),
        oauth_provider=oauth_provider,
        request=request,
        session=SessionConfig(secret_source=secret_source),
    )
    save_profile(profile)
    write_project_config(profile_name)

    success(f'Profile "{profile_name}" created.')
    if secret_source.startswith("env:"):
        suggest(f"Export the signing secret: export {secret_source[4:]}=...")
    suggest(f"Check the IdP: authgate --profile {profile_name} health")
    suggest(f"Sign in: authgate --profile {profile_name} login password --username <user>")


def _slugify(text: str) -> str:
    """Convert text to a file-name-safe slug."""
    slug = text.lower().strip()
    slug = re.sub(r"[^a-z0-9_]+", "-", slug)
    slug = slug.strip("-")
    return slug or "default"
