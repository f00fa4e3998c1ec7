"""OAuth assertion exchange.

The browser-side redirect and consent dance with the OAuth provider (Google)
happens elsewhere. By the time :class:`OAuthTokenExchanger` runs, the caller
holds an :class:`~authgate.models.OAuthAssertion`: the subject's email and
name plus whatever access token, refresh token, and expiry the provider
handed out. The exchanger forwards that assertion to the IdP's
``/oauth-login`` endpoint and trusts the returned token as-is.

A declined exchange is a failed sign-in. There is no fallback to a
local-only session.
"""

from __future__ import annotations

import logging
from typing import Any

from authgate.idp.base import OAUTH_LOGIN_PATH
from authgate.models import LoginMethod, OAuthAssertion, VerifiedIdentity
from authgate.output import redact
from authgate.verifiers.base import Verifier, identity_from_reply, require

logger = logging.getLogger(__name__)


class OAuthTokenExchanger(Verifier):
    """Trade an OAuth identity assertion for an IdP token in one call."""

    @property
    def method(self) -> LoginMethod:
        return LoginMethod.OAUTH

    def exchange(self, assertion: OAuthAssertion) -> VerifiedIdentity:
        """Forward *assertion* to the IdP.

        Returns:
            ``VerifiedIdentity(subject_id=email, display_name=name, token=...)``.
            The name falls back to the email when the provider gave none.

        Raises:
            InvalidInputError: If the subject email or provider is empty.
            RejectedError: If the IdP answers non-2xx or without a token.
            UpstreamError: If the IdP cannot be reached or times out.
        """
        require(subject_email=assertion.subject_email, provider=assertion.provider)
        payload = build_payload(assertion)
        logger.debug(
            "Exchanging %s assertion for %s (access_token=%s, refresh_token=%s, expires_at=%s)",
            assertion.provider,
            assertion.subject_email,
            redact(assertion.access_token),
            redact(assertion.refresh_token),
            assertion.expires_at,
        )
        reply = self._provider.exchange(OAUTH_LOGIN_PATH, payload)
        identity = identity_from_reply(
            reply,
            subject_id=assertion.subject_email,
            display_name=payload["name"],
            method=self.method,
        )
        logger.info("%s sign-in accepted for %s", assertion.provider, assertion.subject_email)
        return identity


def build_payload(assertion: OAuthAssertion) -> dict[str, Any]:
    """Build the ``/oauth-login`` body, omitting absent token fields.

    Example::

        >>> build_payload(OAuthAssertion(subject_email="a@b.c", access_token="x"))
        {'email': 'a@b.c', 'name': 'a@b.c', 'provider': 'google', 'access_token': 'x'}
    """
    payload: dict[str, Any] = {
        "email": assertion.subject_email,
        "name": assertion.display_name or assertion.subject_email,
        "provider": assertion.provider,
    }
    if assertion.access_token:
        payload["access_token"] = assertion.access_token
    if assertion.refresh_token:
        payload["refresh_token"] = assertion.refresh_token
    if assertion.expires_at is not None:
        payload["expires_at"] = assertion.expires_at
    return payload
