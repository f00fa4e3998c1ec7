"""Shared test fixtures for authgate.

Provides reusable fixtures for isolated config environments, managing
output state, building profiles, faking the identity provider with
:class:`httpx.MockTransport`, and running CLI commands. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from authgate.idp.base import IdentityProvider, IdpReply
from authgate.idp.http import HttpIdentityProvider
from authgate.models import Profile, RequestConfig, SessionConfig
from authgate.output import OutputFormat, OutputManager, reset_output, set_output

IDP_URL = "http://idp.test"
SESSION_SECRET = "test-session-secret"


# ---------------------------------------------------------------------------
# Auto-reset global output and logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``authgate`` logger after every test.

    The OutputManager and the CLI's log handler cache references to
    sys.stdout/sys.stderr at creation time. When Typer's CliRunner
    redirects those streams and the test finishes, the cached references
    become stale ("I/O operation on closed file").
    """
    yield
    reset_output()
    logger = logging.getLogger("authgate")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Fake identity provider
# ---------------------------------------------------------------------------


class RecordingIdp(IdentityProvider):
    """In-memory identity provider that records every exchange.

    ``replies`` maps a path to either an :class:`IdpReply` or an exception
    instance to raise.
    """

    def __init__(self, replies: Optional[dict[str, Any]] = None) -> None:
        self.replies: dict[str, Any] = dict(replies or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def exchange(self, path: str, payload: dict[str, Any]) -> IdpReply:
        self.calls.append((path, dict(payload)))
        reply = self.replies.get(path, IdpReply(404, {"error": "not found"}))
        if isinstance(reply, Exception):
            raise reply
        return reply

    def paths(self) -> list[str]:
        return [path for path, _ in self.calls]


@pytest.fixture
def fake_idp() -> RecordingIdp:
    """A :class:`RecordingIdp` with no configured replies."""
    return RecordingIdp()


def json_handler(
    routes: dict[tuple[str, str], tuple[int, Any]],
    seen: Optional[list[httpx.Request]] = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Build an httpx.MockTransport handler from ``{(METHOD, path): (status, body)}``.

    Unknown routes answer 404. Every request is appended to *seen* when given.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        status, body = routes.get((request.method, request.url.path), (404, {"error": "no route"}))
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    return handler


def request_json(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content.decode("utf-8"))


# ---------------------------------------------------------------------------
# Profile fixtures
# ---------------------------------------------------------------------------


def make_profile(name: str = "test-idp", idp_url: str = IDP_URL, **overrides: Any) -> Profile:
    return Profile(
        name=name,
        idp_url=idp_url,
        request=RequestConfig(timeout=5),
        session=SessionConfig(secret_source="env:AUTHGATE_SESSION_SECRET", ttl_seconds=3600),
        **overrides,
    )


@pytest.fixture
def sample_profile() -> Profile:
    """A profile pointing at the fake IdP URL with a 5 s timeout."""
    return make_profile()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    forces the XDG layout, clears AUTHGATE_* variables, provides a session
    secret, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("authgate.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["AUTHGATE_PROFILE", "AUTHGATE_IDP_URL"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("AUTHGATE_SESSION_SECRET", SESSION_SECRET)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for tests that ignore output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def mock_idp(monkeypatch: pytest.MonkeyPatch) -> Callable[..., list[httpx.Request]]:
    """Route the CLI's identity provider through an httpx.MockTransport.

    Call the returned function with a routes mapping (see :func:`json_handler`);
    it returns the list that collects every request the CLI sends.
    """

    def install(routes: dict[tuple[str, str], tuple[int, Any]]) -> list[httpx.Request]:
        seen: list[httpx.Request] = []
        transport = httpx.MockTransport(json_handler(routes, seen))
        monkeypatch.setattr(
            "authgate.commands.open_provider",
            lambda profile: HttpIdentityProvider(profile, transport=transport),
        )
        return seen

    return install
