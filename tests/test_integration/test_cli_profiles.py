"""Integration tests for init, health, config, and root options."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from authgate import __version__
from authgate.app import app
from authgate.config import load_global_config, load_profile, profile_exists, save_profile
from authgate.models import LoginMethod, Profile
from authgate.session.store import SessionStore, StoredSession


class TestRootOptions:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"authgate {__version__}" in result.output

    def test_no_args_shows_help(self, cli_runner) -> None:
        result = cli_runner.invoke(app, [])
        assert "login" in result.output
        assert "session" in result.output


class TestInit:
    def test_creates_profile_and_project_config(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app,
            ["init", "--name", "Corp IdP", "--idp-url", "https://idp.example.com/", "--timeout", "3"],
        )

        assert result.exit_code == 0, result.output
        profile = load_profile("corp-idp")
        assert profile.idp_url == "https://idp.example.com"
        assert profile.request.timeout == 3.0
        assert profile.session.secret_source == "env:AUTHGATE_SESSION_SECRET"
        project = json.loads((isolated_config / "authgate.json").read_text())
        assert project == {"default_profile": "corp-idp"}

    def test_custom_secret_source(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app,
            ["init", "--name", "corp", "--idp-url", "http://localhost:5000", "--secret-source", "file:/etc/authgate"],
        )
        assert result.exit_code == 0, result.output
        assert load_profile("corp").session.secret_source == "file:/etc/authgate"

    def test_rejects_non_http_url(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["init", "--name", "corp", "--idp-url", "idp.example.com"])
        assert result.exit_code == 2
        assert not profile_exists("corp")

    def test_overwrite_is_reported(self, cli_runner, isolated_config: Path) -> None:
        args = ["init", "--name", "corp", "--idp-url", "http://a"]
        cli_runner.invoke(app, args)
        result = cli_runner.invoke(app, ["init", "--name", "corp", "--idp-url", "http://b"])
        assert result.exit_code == 0
        assert "already exists" in result.output
        assert load_profile("corp").idp_url == "http://b"


class TestHealth:
    def test_healthy(self, cli_runner, isolated_config, mock_idp) -> None:
        save_profile(Profile(name="corp", idp_url="http://idp.test"))
        seen = mock_idp({("GET", "/health"): (200, {"status": "healthy"})})

        result = cli_runner.invoke(app, ["--quiet", "--json", "health"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {
            "profile": "corp",
            "idp_url": "http://idp.test",
            "status": "healthy",
        }
        assert [r.url.path for r in seen] == ["/health"]

    def test_unhealthy(self, cli_runner, isolated_config, mock_idp) -> None:
        save_profile(Profile(name="corp", idp_url="http://idp.test"))
        mock_idp({("GET", "/health"): (503, None)})

        result = cli_runner.invoke(app, ["health"])

        assert result.exit_code == 6

    def test_timeout(self, cli_runner, isolated_config, monkeypatch) -> None:
        from authgate.idp.http import HttpIdentityProvider

        save_profile(Profile(name="corp", idp_url="http://idp.test"))

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        transport = httpx.MockTransport(handler)
        monkeypatch.setattr(
            "authgate.commands.open_provider",
            lambda p: HttpIdentityProvider(p, transport=transport),
        )

        result = cli_runner.invoke(app, ["--timeout", "0.5", "health"])

        assert result.exit_code == 6
        assert "0.5" in result.output


class TestConfigCommands:
    @pytest.fixture
    def two_profiles(self, isolated_config: Path) -> None:
        save_profile(Profile(name="alpha", idp_url="http://alpha"))
        save_profile(Profile(name="beta", idp_url="http://beta"))

    def test_list(self, cli_runner, two_profiles) -> None:
        result = cli_runner.invoke(app, ["--json", "config", "list"])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [row["Profile"] for row in rows] == ["alpha", "beta"]
        assert rows[1]["IdP URL"] == "http://beta"

    def test_list_empty(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "list"])
        assert result.exit_code == 0
        assert "No profiles configured" in result.output

    def test_use(self, cli_runner, two_profiles) -> None:
        result = cli_runner.invoke(app, ["config", "use", "beta"])
        assert result.exit_code == 0, result.output
        assert load_global_config().default_profile == "beta"

    def test_use_unknown(self, cli_runner, two_profiles) -> None:
        result = cli_runner.invoke(app, ["config", "use", "gamma"])
        assert result.exit_code == 1
        assert load_global_config().default_profile is None

    def test_show(self, cli_runner, two_profiles) -> None:
        cli_runner.invoke(app, ["config", "use", "alpha"])

        result = cli_runner.invoke(app, ["--quiet", "--json", "config", "show"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["global"]["default_profile"] == "alpha"
        assert data["active_profile"]["idp_url"] == "http://alpha"

    def test_show_respects_profile_flag(self, cli_runner, two_profiles) -> None:
        result = cli_runner.invoke(app, ["--quiet", "--json", "--profile", "beta", "config", "show"])
        assert json.loads(result.stdout)["active_profile"]["name"] == "beta"

    def test_remove_deletes_profile_and_session(self, cli_runner, two_profiles) -> None:
        cli_runner.invoke(app, ["config", "use", "alpha"])
        SessionStore("alpha").save(
            StoredSession(value="signed", subject_id="alice", method=LoginMethod.PASSWORD)
        )

        result = cli_runner.invoke(app, ["config", "remove", "alpha", "--yes"])

        assert result.exit_code == 0, result.output
        assert not profile_exists("alpha")
        assert SessionStore("alpha").load() is None
        assert load_global_config().default_profile is None

    def test_remove_asks_for_confirmation(self, cli_runner, two_profiles) -> None:
        result = cli_runner.invoke(app, ["config", "remove", "alpha"], input="n\n")
        assert result.exit_code == 0
        assert profile_exists("alpha")

    def test_remove_unknown(self, cli_runner, two_profiles) -> None:
        result = cli_runner.invoke(app, ["config", "remove", "gamma", "--yes"])
        assert result.exit_code == 1
