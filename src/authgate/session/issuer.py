"""Session construction.

:class:`SessionIssuer` is deliberately trivial: every failure has already
been raised by a verifier, and a :class:`~authgate.models.VerifiedIdentity`
cannot exist without a non-empty token. Issuing is pure, so two calls with
the same identity produce equal sessions.
"""

from __future__ import annotations

from authgate.models import Session, VerifiedIdentity


class SessionIssuer:
    """Mint a :class:`~authgate.models.Session` from a verified identity."""

    def issue(self, identity: VerifiedIdentity) -> Session:
        return Session(
            subject_id=identity.subject_id,
            backend_token=identity.token,
            display_name=identity.display_name,
        )
