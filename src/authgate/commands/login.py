"""Login commands -- sign in and store the resulting session.

Provides the ``authgate login`` sub-command group. Every command runs one
:class:`~authgate.gateway.LoginAttempt` against the active profile's
identity provider. On success the session is signed with
:class:`~authgate.session.codec.SessionCodec` and saved to the profile's
:class:`~authgate.session.store.SessionStore`; on failure the error's exit
code distinguishes "credentials rejected" (3) from "IdP unreachable, retry"
(6).

Typical workflow::

    authgate login password --username alice
    authgate login otp --email alice@example.com      # prompts for the code
    authgate login oauth --email alice@example.com --access-token ya29...
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

import typer

from authgate.exceptions import AuthGateError, ConfigError, UpstreamError
from authgate.gateway import AuthGateway, LoginAttempt, LoginOutcome
from authgate.models import (
    LoginMethod,
    OAuthAssertion,
    OtpRequest,
    OtpVerify,
    PasswordCredential,
    Profile,
)
from authgate.output import format_response, info, success
from authgate.session.codec import SessionCodec

login_app = typer.Typer(no_args_is_help=True)


@login_app.command("password")
def login_password(
    ctx: typer.Context,
    username: str = typer.Option(..., "--username", "-u", help="Login name."),
    password: Optional[str] = typer.Option(
        None, "--password", help="Password (prompted without echo when omitted)."
    ),
) -> None:
    """Sign in with a username and password.

    Example::

        authgate login password --username alice
        authgate --json login password -u alice --password "$PW"
    """
    profile, codec = _prepare(ctx)
    if password is None:
        password = typer.prompt("Password", hide_input=True, default="", show_default=False)

    with _open_attempt(profile) as attempt:
        outcome = attempt.submit(PasswordCredential(username=username, password=password))
    _finish(profile, codec, outcome, LoginMethod.PASSWORD)


@login_app.command("otp")
def login_otp(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", help="Email address to send the code to."),
    code: Optional[str] = typer.Option(
        None,
        "--code",
        help="Code to submit after the request (prompted when omitted).",
    ),
) -> None:
    """Sign in with a one-time code sent by email.

    Requests a code, then verifies it in the same attempt. The code is
    read from ``--code`` or prompted for once the IdP has sent it.

    Example::

        authgate login otp --email alice@example.com
    """
    profile, codec = _prepare(ctx)

    with _open_attempt(profile) as attempt:
        outcome = attempt.submit(OtpRequest(email=email))
        if outcome.pending:
            info(f"A one-time code was sent to {email}.")
            if code is None:
                code = typer.prompt("Code", hide_input=True, default="", show_default=False)
            outcome = attempt.submit(OtpVerify(email=email, code=code))
    _finish(profile, codec, outcome, LoginMethod.OTP)


@login_app.command("oauth")
def login_oauth(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", help="Email the OAuth provider asserted."),
    name: Optional[str] = typer.Option(None, "--name", help="Display name (defaults to the email)."),
    provider: Optional[str] = typer.Option(
        None, "--provider", help="OAuth provider (defaults to the profile's)."
    ),
    access_token: Optional[str] = typer.Option(None, "--access-token", help="Provider access token."),
    refresh_token: Optional[str] = typer.Option(None, "--refresh-token", help="Provider refresh token."),
    expires_at: Optional[int] = typer.Option(
        None, "--expires-at", help="Access token expiry, epoch seconds."
    ),
) -> None:
    """Exchange an OAuth identity assertion for a session.

    The provider consent flow must already have happened; this forwards its
    result to the IdP's ``/oauth-login``.

    Example::

        authgate login oauth --email alice@example.com --name "Alice" --access-token ya29...
    """
    profile, codec = _prepare(ctx)
    assertion = OAuthAssertion(
        provider=provider or profile.oauth_provider,
        subject_email=email,
        display_name=name,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=expires_at,
    )

    with _open_attempt(profile) as attempt:
        outcome = attempt.submit(assertion)
    _finish(profile, codec, outcome, LoginMethod.OAUTH)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _open_attempt(profile: Profile) -> Iterator[LoginAttempt]:
    """Open the IdP client and begin an attempt; abandon and close on exit."""
    from authgate.commands import open_provider

    provider = open_provider(profile)
    attempt = AuthGateway.from_profile(profile, provider).begin()
    try:
        yield attempt
    finally:
        if not attempt.completed:
            attempt.abandon()
        provider.close()


def _prepare(ctx: typer.Context) -> tuple[Profile, SessionCodec]:
    """Resolve the profile and signing secret before any credential is sent."""
    from authgate.commands import active_profile, fail

    try:
        profile = active_profile(ctx)
        codec = SessionCodec.from_profile(profile)
    except ConfigError as exc:
        fail(exc, "Run 'authgate config show' to check the active profile.")
    return profile, codec


def _finish(
    profile: Profile,
    codec: SessionCodec,
    outcome: LoginOutcome,
    method: LoginMethod,
) -> None:
    from authgate.commands import fail
    from authgate.session.store import SessionStore, StoredSession

    if outcome.error is not None:
        fail(outcome.error, _hint_for(outcome.error))
    if outcome.session is None:
        fail(AuthGateError("Login did not complete"))

    session = outcome.session
    store = SessionStore(profile.name)
    store.save(
        StoredSession(
            value=codec.encode(session),
            subject_id=session.subject_id,
            method=method,
        )
    )
    success(f"Signed in as {session.display_name} ({method.value}).")
    format_response(
        {
            "profile": profile.name,
            "subject_id": session.subject_id,
            "display_name": session.display_name,
            "method": method.value,
            "expires_in": codec.ttl_seconds,
        }
    )


def _hint_for(exc: AuthGateError) -> Optional[str]:
    if isinstance(exc, UpstreamError):
        return "The identity provider could not be reached; try again or run 'authgate health'."
    if exc.code == "rejected":
        return "Check the credentials and try again."
    if exc.code == "challenge_expired":
        return "Run the login command again to get a fresh code."
    return None
