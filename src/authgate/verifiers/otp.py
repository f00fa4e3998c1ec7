"""One-time-passcode login as a two-phase state machine.

An :class:`OtpChallengeManager` belongs to exactly one login attempt and
moves through :class:`~authgate.models.OtpState`::

    IDLE --request_otp--> AWAITING_VERIFICATION --verify_otp--> VERIFIED
                                   |
                                   +--------(rejected/expired)--> FAILED

The IdP generates, stores, and expires the code; this side only records
that a request happened and for which email, so a verify is accepted only
after a matching request. Terminal states are never left: a new attempt
gets a new manager.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from authgate.exceptions import (
    ChallengeExpiredError,
    EmailMismatchError,
    RejectedError,
    SequenceViolationError,
    UpstreamError,
)
from authgate.idp.base import SEND_OTP_PATH, VERIFY_OTP_PATH, IdentityProvider
from authgate.models import LoginMethod, OtpChallenge, OtpState, VerifiedIdentity
from authgate.verifiers.base import Verifier, identity_from_reply, require

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OtpChallengeManager(Verifier):
    """Per-attempt OTP state: request a code, then verify it once.

    Args:
        provider: The identity provider that sends and checks codes.
        ttl_seconds: Local lifetime of a challenge, in positive seconds.
            ``None`` leaves expiry entirely to the IdP.
        now: Clock returning an aware UTC datetime; injectable for tests.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        ttl_seconds: Optional[float] = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(provider)
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds is not None else None
        self._now = now
        self._state = OtpState.IDLE
        self._challenge: Optional[OtpChallenge] = None

    @property
    def method(self) -> LoginMethod:
        return LoginMethod.OTP

    @property
    def state(self) -> OtpState:
        return self._state

    @property
    def challenge(self) -> Optional[OtpChallenge]:
        """The outstanding challenge, if a request has succeeded."""
        return self._challenge

    def request_otp(self, email: str) -> OtpChallenge:
        """Ask the IdP to send a code to *email*.

        Calling again while awaiting verification re-sends and replaces the
        challenge. A failed send leaves the state untouched.

        Returns:
            The recorded :class:`~authgate.models.OtpChallenge`.

        Raises:
            InvalidInputError: If *email* is empty.
            SequenceViolationError: If this attempt already finished.
            UpstreamError: If the IdP refuses or cannot be reached.
        """
        require(email=email)
        self._ensure_not_terminal()

        reply = self._provider.exchange(SEND_OTP_PATH, {"email": email})
        if not reply.ok:
            raise UpstreamError(f"Identity provider could not send a code: {reply.error_detail}")

        self._challenge = OtpChallenge(email=email, issued_at=self._now())
        self._state = OtpState.AWAITING_VERIFICATION
        logger.info("OTP sent to %s", email)
        return self._challenge

    def verify_otp(self, email: str, code: str) -> VerifiedIdentity:
        """Check *code* for *email* with the IdP.

        Returns:
            ``VerifiedIdentity(subject_id=email, display_name=email, token=...)``.

        Raises:
            InvalidInputError: If either field is empty.
            SequenceViolationError: If no code was requested, or the
                attempt already finished.
            ChallengeExpiredError: If the challenge outlived its local TTL
                (the state becomes ``FAILED``).
            EmailMismatchError: If *email* differs from the requested one
                (state unchanged, nothing sent).
            RejectedError: If the IdP declines the code (state becomes
                ``FAILED``).
            UpstreamError: If the IdP cannot be reached (state unchanged, so
                the caller may retry).
        """
        require(email=email, code=code)
        self._ensure_not_terminal()
        if self._state is OtpState.IDLE or self._challenge is None:
            raise SequenceViolationError("Request a one-time code before verifying it")
        if email != self._challenge.email:
            raise EmailMismatchError(
                f"Code was requested for {self._challenge.email}, not {email}"
            )
        if self._ttl is not None and self._now() - self._challenge.issued_at > self._ttl:
            self._state = OtpState.FAILED
            raise ChallengeExpiredError("One-time code expired; start a new login")

        reply = self._provider.exchange(VERIFY_OTP_PATH, {"email": email, "otp": code})
        try:
            identity = identity_from_reply(
                reply,
                subject_id=email,
                display_name=email,
                method=self.method,
            )
        except RejectedError:
            self._state = OtpState.FAILED
            logger.info("OTP rejected for %s", email)
            raise

        self._state = OtpState.VERIFIED
        logger.info("OTP accepted for %s", email)
        return identity

    def _ensure_not_terminal(self) -> None:
        if self._state.is_terminal:
            raise SequenceViolationError(
                f"OTP login already {self._state.value}; start a new attempt"
            )
