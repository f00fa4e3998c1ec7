"""Signed, transportable session encoding.

:class:`SessionCodec` turns a :class:`~authgate.models.Session` into a
URL-safe string signed with :class:`itsdangerous.URLSafeTimedSerializer`
and back. The signed claim is::

    {"id": <subject_id>, "token": <backend_token>, "name": <display_name>}

``id`` and ``token`` round-trip unchanged. The backend token is still the
IdP's opaque credential; the signature only proves *this* gateway issued
the claim. Decoding enforces the configured maximum age and answers
``None`` for anything tampered, expired, or malformed.

The same string can travel as a bearer value or as a cookie;
:meth:`SessionCookie.set_kwargs` and :meth:`SessionCookie.clear_kwargs`
produce keyword arguments for ``Response.set_cookie``-style APIs.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from authgate.config import resolve_credential
from authgate.exceptions import ConfigError
from authgate.models import Profile, Session

logger = logging.getLogger(__name__)

SESSION_SALT = "authgate-session-v1"


class SessionCodec:
    """Sign and verify session claims.

    Args:
        secret: Signing secret; must be non-empty.
        ttl_seconds: Maximum accepted age of an encoded session.
        salt: Namespace for the signature, so other signed values made with
            the same secret are never accepted as sessions.

    Raises:
        ConfigError: If *secret* is empty.
    """

    def __init__(self, secret: str, ttl_seconds: int = 43200, salt: str = SESSION_SALT) -> None:
        if not secret:
            raise ConfigError("A session signing secret is required")
        self._ttl = ttl_seconds
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=salt)

    @classmethod
    def from_profile(cls, profile: Profile) -> SessionCodec:
        """Build a codec from ``profile.session``, resolving its secret source.

        Raises:
            ConfigError: If the secret source cannot be resolved.
        """
        secret = resolve_credential(profile.session.secret_source)
        return cls(secret, ttl_seconds=profile.session.ttl_seconds)

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def encode(self, session: Session) -> str:
        claim = {
            "id": session.subject_id,
            "token": session.backend_token,
            "name": session.display_name,
        }
        return self._serializer.dumps(claim)

    def decode(self, value: Optional[str]) -> Optional[Session]:
        """Verify *value* and rebuild the session, or return ``None``."""
        if not value:
            return None
        try:
            claim = self._serializer.loads(value, max_age=self._ttl)
        except BadSignature as exc:
            logger.debug("Rejected session value: %s", type(exc).__name__)
            return None
        if not isinstance(claim, dict):
            return None
        subject_id = claim.get("id")
        token = claim.get("token")
        if not isinstance(subject_id, str) or not isinstance(token, str) or not token:
            return None
        name = claim.get("name")
        return Session(
            subject_id=subject_id,
            backend_token=token,
            display_name=name if isinstance(name, str) and name else subject_id,
        )


class SessionCookie:
    """Cookie attributes for carrying an encoded session in a browser.

    The ``__Host-`` prefix is only used with ``secure=True``; browsers
    reject it on plain HTTP.
    """

    def __init__(self, max_age: int, secure: bool = False, name: str = "authgate_session") -> None:
        self.max_age = max_age
        self.secure = secure
        self.name = f"__Host-{name}" if secure else name

    @classmethod
    def from_profile(cls, profile: Profile) -> SessionCookie:
        return cls(max_age=profile.session.ttl_seconds, secure=profile.session.cookie_secure)

    def set_kwargs(self, value: str) -> dict[str, Any]:
        return self._kwargs(value, self.max_age)

    def clear_kwargs(self) -> dict[str, Any]:
        return self._kwargs("", 0)

    def _kwargs(self, value: str, max_age: int) -> dict[str, Any]:
        return {
            "key": self.name,
            "value": value,
            "max_age": max_age,
            "httponly": True,
            "secure": self.secure,
            "samesite": "lax",
            "path": "/",
        }
