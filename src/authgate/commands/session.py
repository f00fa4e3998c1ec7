"""Session commands -- inspect, print, or clear the stored session.

Provides the ``authgate session`` sub-command group. The stored value is
verified with :class:`~authgate.session.codec.SessionCodec` on every read,
so a tampered or expired file is reported as "not signed in" rather than
trusted.

Typical workflow::

    authgate session show
    TOKEN=$(authgate session token)
    authgate session clear
"""

from __future__ import annotations

import typer

from authgate.exceptions import AuthGateError, ConfigError
from authgate.exit_codes import EXIT_GENERIC_FAILURE
from authgate.models import Profile, Session
from authgate.output import error, format_response, info, print_data, redact, success, suggest, warning
from authgate.session.codec import SessionCodec
from authgate.session.store import SessionStore, StoredSession

session_app = typer.Typer(no_args_is_help=True)


@session_app.command("show")
def session_show(ctx: typer.Context) -> None:
    """Show who is signed in for the active profile.

    The backend token is shown redacted; use ``authgate session token`` to
    print it in full.

    Raises:
        typer.Exit: With code 1 if there is no valid stored session.
    """
    profile = _profile(ctx)
    entry, session = _load_session(profile)
    format_response(
        {
            "profile": profile.name,
            "subject_id": session.subject_id,
            "display_name": session.display_name,
            "method": entry.method.value,
            "saved_at": entry.saved_at.isoformat(),
            "token": redact(session.backend_token),
        }
    )


@session_app.command("token")
def session_token(
    ctx: typer.Context,
    signed: bool = typer.Option(
        False, "--signed", help="Print the signed session value instead of the IdP token."
    ),
) -> None:
    """Print the session's bearer token to stdout.

    Example::

        curl -H "Authorization: Bearer $(authgate session token)" https://api.example.com/me
    """
    profile = _profile(ctx)
    entry, session = _load_session(profile)
    print_data(entry.value if signed else session.backend_token)


@session_app.command("clear")
def session_clear(ctx: typer.Context) -> None:
    """Sign out: delete the stored session for the active profile."""
    profile = _profile(ctx)
    if SessionStore(profile.name).clear():
        success(f'Signed out of "{profile.name}".')
    else:
        info(f'No stored session for "{profile.name}".')


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _profile(ctx: typer.Context) -> Profile:
    from authgate.commands import active_profile, fail

    try:
        return active_profile(ctx)
    except AuthGateError as exc:
        fail(exc)


def _load_session(profile: Profile) -> tuple[StoredSession, Session]:
    """Return the stored entry and its verified session, or exit 1."""
    from authgate.commands import fail

    store = SessionStore(profile.name)
    entry = store.load()
    if entry is None:
        error(f'Not signed in to "{profile.name}".')
        suggest("Sign in: authgate login password --username <user>")
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)

    try:
        codec = SessionCodec.from_profile(profile)
    except ConfigError as exc:
        fail(exc)

    session = codec.decode(entry.value)
    if session is None:
        warning(f"Stored session for \"{profile.name}\" is expired or was not signed with the current secret.")
        suggest("Sign in again, or run 'authgate session clear'.")
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)
    return entry, session
