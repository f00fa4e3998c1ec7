"""Persistent session store scoped per profile.

Stores the signed session value in
``~/.local/share/authgate/sessions/<profile>.json`` (XDG) or the
platform-equivalent directory. Files are written through
:func:`authgate.config.atomic_write` with ``0o600`` permissions so the
value is never world-readable, even momentarily.

Only the *encoded* session is kept; reading it back goes through
:class:`~authgate.session.codec.SessionCodec`, which enforces the signature
and maximum age. The plain ``subject_id`` and ``method`` fields are for
display only.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from authgate.config import atomic_write, get_data_dir
from authgate.models import LoginMethod

logger = logging.getLogger(__name__)


class StoredSession(BaseModel):
    """A single stored session for one profile.

    Attributes:
        value: The signed session string produced by ``SessionCodec.encode``.
        subject_id: Who the session belongs to.
        method: The login method that produced it.
        saved_at: UTC time the entry was written.
    """

    value: str = Field(min_length=1, description="Signed session value")
    subject_id: str = Field(description="Session subject")
    method: LoginMethod = Field(description="Login method that issued the session")
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _sessions_dir() -> Path:
    path = get_data_dir() / "sessions"
    path.mkdir(parents=True, exist_ok=True)
    return path


class SessionStore:
    """Read/write the stored session for a single profile.

    Args:
        profile_name: The profile identifier used to derive the file name.

    Example::

        store = SessionStore("corp")
        store.save(StoredSession(value=codec.encode(session),
                                 subject_id=session.subject_id,
                                 method=LoginMethod.PASSWORD))
        entry = store.load()
    """

    def __init__(self, profile_name: str) -> None:
        self._profile_name = profile_name
        self._path = _sessions_dir() / f"{profile_name}.json"

    @property
    def path(self) -> Path:
        """The filesystem path to this profile's session file."""
        return self._path

    def save(self, entry: StoredSession) -> None:
        """Persist *entry* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        text = json.dumps(entry.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)
        logger.debug("Saved session for profile %s to %s", self._profile_name, self._path)

    def load(self) -> Optional[StoredSession]:
        """Load the stored entry, or ``None`` if absent or unreadable."""
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return StoredSession.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError):
            logger.debug("Ignoring unreadable session file %s", self._path)
            return None

    def clear(self) -> bool:
        """Delete the stored session. Returns ``True`` if a file was removed."""
        if self._path.is_file():
            self._path.unlink()
            return True
        return False
