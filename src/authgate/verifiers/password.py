"""Username/password verification against the identity provider.

:class:`PasswordVerifier` posts the pair to the IdP's ``/login`` endpoint
and, on success, returns an identity whose subject and display name are
the username. It keeps no state between calls.
"""

from __future__ import annotations

import logging

from authgate.idp.base import LOGIN_PATH
from authgate.models import LoginMethod, VerifiedIdentity
from authgate.verifiers.base import Verifier, identity_from_reply, require

logger = logging.getLogger(__name__)


class PasswordVerifier(Verifier):
    """Exchange a username/password pair for an IdP token."""

    @property
    def method(self) -> LoginMethod:
        return LoginMethod.PASSWORD

    def verify_password(self, username: str, password: str) -> VerifiedIdentity:
        """Verify *username* and *password* with a single IdP call.

        Args:
            username: Non-empty login name; becomes the session subject.
            password: Non-empty password, sent only to the IdP.

        Returns:
            ``VerifiedIdentity(subject_id=username, display_name=username, token=...)``.

        Raises:
            InvalidInputError: If either field is empty (no call is made).
            RejectedError: If the IdP answers non-2xx or without a token.
            UpstreamError: If the IdP cannot be reached or times out.
        """
        require(username=username, password=password)
        reply = self._provider.exchange(
            LOGIN_PATH, {"username": username, "password": password}
        )
        identity = identity_from_reply(
            reply,
            subject_id=username,
            display_name=username,
            method=self.method,
        )
        logger.info("Password login accepted for %s", username)
        return identity
