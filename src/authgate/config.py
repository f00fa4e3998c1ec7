"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for authgate:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.authgate/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- a single :class:`~authgate.models.GlobalConfig`
  JSON file holding the default profile and output preferences.
* **Profiles** -- one JSON file per identity provider, each deserialised
  into a :class:`~authgate.models.Profile`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config.
* **Secret resolution** -- :func:`resolve_credential` reads the session
  signing secret (or any other secret) from env vars, files, or a prompt.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from authgate.exceptions import ConfigError
from authgate.models import GlobalConfig, Profile

_APP_NAME = "authgate"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "authgate.json"

ENV_PROFILE = "AUTHGATE_PROFILE"
ENV_IDP_URL = "AUTHGATE_IDP_URL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on platforms that use the XDG Base Directory layout."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/authgate/`` (default ``~/.config/authgate/``).
    Elsewhere: ``~/.authgate/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (stored sessions, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/authgate/`` (default ``~/.local/share/authgate/``).
    Elsewhere: ``~/.authgate/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    """Return ``<config_dir>/profiles/``, creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write *data* to *path* atomically using a temp file and ``os.replace``.

    The temporary file lives in the same directory as *path* so the rename
    is atomic on POSIX. When *mode* is given it is applied to the temp file
    before any content is written, so secrets are never briefly readable.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration, or defaults when the file is absent.

    Raises:
        ConfigError: If the file exists but is not valid JSON or fails
            validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return all profile names, sorted alphabetically."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def load_profile(name: str) -> Profile:
    """Load and validate a profile from disk.

    Raises:
        ConfigError: If the profile does not exist, is not valid JSON, or
            fails validation.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Profile.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    data = profile.model_dump(mode="json")
    atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a profile file.

    Raises:
        ConfigError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./authgate.json`` if present.

    Project config sits between global config and environment variables in
    the precedence chain and usually pins ``default_profile``.

    Raises:
        ConfigError: If the file exists but is not valid JSON.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc


def write_project_config(profile_name: str) -> Path:
    """Pin *profile_name* as the default for the current directory."""
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    atomic_write(path, json.dumps({"default_profile": profile_name}, indent=2) + "\n")
    return path


# --- Precedence resolution ---


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_idp_url: Optional[str] = None,
    cli_timeout: Optional[float] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_profile``, ``cli_idp_url``, ``cli_timeout``)
        2. Environment variables (``AUTHGATE_PROFILE``, ``AUTHGATE_IDP_URL``)
        3. Project config (``./authgate.json``)
        4. User config (``~/.config/authgate/config.json``)
        5. Defaults

    When no profile is selected but an IdP URL is supplied through a flag
    or the environment, an unsaved profile named ``default`` is built so
    one-off logins work without ``authgate init``.

    Returns:
        A tuple of ``(global_config, active_profile_or_None)``.
    """
    global_cfg = load_global_config()

    resolved_name: Optional[str] = global_cfg.default_profile
    project = load_project_config()
    if project is not None and project.get("default_profile"):
        resolved_name = project["default_profile"]
    env_profile = os.environ.get(ENV_PROFILE)
    if env_profile:
        resolved_name = env_profile
    if cli_profile is not None:
        resolved_name = cli_profile

    if resolved_name is None and global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            resolved_name = profiles[0]

    idp_url = cli_idp_url or os.environ.get(ENV_IDP_URL) or None

    profile: Optional[Profile] = None
    if resolved_name is not None:
        profile = load_profile(resolved_name)
        if idp_url:
            profile.idp_url = idp_url
    elif idp_url:
        profile = Profile(name="default", idp_url=idp_url)

    if profile is not None and cli_timeout is not None:
        profile.request.timeout = cli_timeout

    return global_cfg, profile


# --- Secret source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a secret from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts interactively (requires a TTY)

    Raises:
        ConfigError: If the source cannot be resolved or resolves to an
            empty value.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Secret file not found: {path} (source: {source})")
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read secret file {path}: {exc}") from exc
        if not value:
            raise ConfigError(f"Secret file {path} is empty (source: {source})")
        return value

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for secret: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter session secret: ")

    raise ConfigError(f"Unknown secret source format: {source}")
