"""Login attempts and the gateway that starts them.

:class:`AuthGateway` holds the long-lived pieces (the identity provider and
the stateless verifiers) and hands out one :class:`LoginAttempt` per
sign-in. An attempt owns everything that must not leak between sign-ins:
the OTP challenge, the active login method, and whether a session has
already been issued.

:meth:`LoginAttempt.submit` is the single entry point. It routes a
credential to its verifier, turns every :class:`~authgate.exceptions.AuthGateError`
into a :class:`LoginOutcome`, and issues the session on success. Results
that come back after :meth:`LoginAttempt.abandon` or after a method switch
are dropped so they cannot overwrite newer state.

Example::

    gateway = AuthGateway(HttpIdentityProvider(profile))
    attempt = gateway.begin()
    outcome = attempt.submit(OtpRequest(email="a@example.com"))
    assert outcome.pending
    outcome = attempt.submit(OtpVerify(email="a@example.com", code="123456"))
    if outcome.ok:
        use(outcome.session)
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from authgate.exceptions import AttemptClosedError, AuthGateError
from authgate.idp.base import IdentityProvider
from authgate.models import (
    Credential,
    LoginMethod,
    OAuthAssertion,
    OtpChallenge,
    OtpRequest,
    OtpVerify,
    PasswordCredential,
    Profile,
    Session,
    VerifiedIdentity,
)
from authgate.session.issuer import SessionIssuer
from authgate.verifiers.oauth import OAuthTokenExchanger
from authgate.verifiers.otp import OtpChallengeManager
from authgate.verifiers.password import PasswordVerifier

logger = logging.getLogger(__name__)

DEFAULT_OTP_TTL_SECONDS = 300


class LoginOutcome:
    """Typed result of one :meth:`LoginAttempt.submit` call.

    Exactly one of three shapes:

    * ``session`` set -- sign-in finished.
    * ``error`` set -- the step failed; check :attr:`retryable`.
    * neither set -- an OTP code was sent (:attr:`pending`); ``challenge``
      describes it.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        error: Optional[AuthGateError] = None,
        challenge: Optional[OtpChallenge] = None,
    ):
        if session is not None and error is not None:
            raise ValueError("An outcome carries a session or an error, not both")
        self.session = session
        self.error = error
        self.challenge = challenge

    @property
    def ok(self) -> bool:
        return self.session is not None

    @property
    def pending(self) -> bool:
        return self.session is None and self.error is None

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable

    def __repr__(self) -> str:
        if self.session is not None:
            return f"LoginOutcome(session={self.session.subject_id!r})"
        if self.error is not None:
            return f"LoginOutcome(error={self.error.code!r})"
        return "LoginOutcome(pending)"


class LoginAttempt:
    """One sign-in, from the first credential to an issued session.

    Not created directly; use :meth:`AuthGateway.begin`.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        password: PasswordVerifier,
        oauth: OAuthTokenExchanger,
        issuer: SessionIssuer,
        otp_ttl_seconds: Optional[float],
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._provider = provider
        self._password = password
        self._oauth = oauth
        self._issuer = issuer
        self._otp_ttl = otp_ttl_seconds
        self._clock = clock

        self._lock = threading.Lock()
        self._generation = 0
        self._method: Optional[LoginMethod] = None
        self._otp: Optional[OtpChallengeManager] = None
        self._completed = False
        self._abandoned = False

    @property
    def method(self) -> Optional[LoginMethod]:
        """The login method currently in use, or ``None`` before the first submit."""
        return self._method

    @property
    def otp(self) -> Optional[OtpChallengeManager]:
        """This attempt's OTP state, if the OTP method is active."""
        return self._otp

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def closed(self) -> bool:
        return self._completed or self._abandoned

    def switch_to(self, method: LoginMethod) -> None:
        """Make *method* the active path, discarding any OTP challenge.

        Switching to the method already in use is a no-op. Any call still
        in flight for the previous path will have its result dropped.
        """
        with self._lock:
            self._switch(method)

    def abandon(self) -> None:
        """Close the attempt. Later and in-flight results are discarded."""
        with self._lock:
            self._abandoned = True
            self._generation += 1
            self._otp = None
        logger.debug("Login attempt abandoned")

    def submit(self, credential: Credential) -> LoginOutcome:
        """Run *credential* through its verifier and report the outcome.

        Never raises :class:`~authgate.exceptions.AuthGateError`; every
        failure is returned as ``LoginOutcome(error=...)``.
        """
        with self._lock:
            if self.closed:
                return LoginOutcome(error=self._closed_error())
            self._switch(credential.method)
            generation = self._generation
            otp = self._otp

        try:
            identity, challenge = self._dispatch(credential, otp)
        except AuthGateError as exc:
            with self._lock:
                if self._is_stale(generation):
                    return self._discarded(credential)
            logger.debug("%s step failed: %s (%s)", credential.method.value, exc, exc.code)
            return LoginOutcome(error=exc)

        with self._lock:
            if self._is_stale(generation):
                return self._discarded(credential)
            if identity is None:
                return LoginOutcome(challenge=challenge)
            session = self._issuer.issue(identity)
            self._completed = True
        logger.info("Session issued for %s via %s", session.subject_id, identity.method.value)
        return LoginOutcome(session=session)

    # -- internals, called with the lock held unless noted --

    def _switch(self, method: LoginMethod) -> None:
        if method is self._method:
            return
        if self._method is not None:
            logger.debug("Switching login method %s -> %s", self._method.value, method.value)
        self._method = method
        self._generation += 1
        self._otp = self._new_otp_manager() if method is LoginMethod.OTP else None

    def _new_otp_manager(self) -> OtpChallengeManager:
        if self._clock is None:
            return OtpChallengeManager(self._provider, ttl_seconds=self._otp_ttl)
        return OtpChallengeManager(self._provider, ttl_seconds=self._otp_ttl, now=self._clock)

    def _is_stale(self, generation: int) -> bool:
        return self._abandoned or generation != self._generation

    def _closed_error(self) -> AttemptClosedError:
        if self._completed:
            return AttemptClosedError("This login attempt already issued a session")
        return AttemptClosedError("This login attempt was abandoned")

    def _discarded(self, credential: Credential) -> LoginOutcome:
        logger.debug("Discarding stale %s result", credential.method.value)
        return LoginOutcome(
            error=AttemptClosedError(
                f"The {credential.method.value} result arrived after the attempt moved on"
            )
        )

    def _dispatch(
        self, credential: Credential, otp: Optional[OtpChallengeManager]
    ) -> tuple[Optional[VerifiedIdentity], Optional[OtpChallenge]]:
        # Runs without the lock so abandon() is never blocked by a slow IdP.
        if isinstance(credential, PasswordCredential):
            return self._password.verify_password(credential.username, credential.password), None
        if isinstance(credential, OAuthAssertion):
            return self._oauth.exchange(credential), None
        if otp is None:
            raise AttemptClosedError("No OTP state for this attempt")
        if isinstance(credential, OtpRequest):
            return None, otp.request_otp(credential.email)
        if isinstance(credential, OtpVerify):
            return otp.verify_otp(credential.email, credential.code), None
        raise TypeError(f"Unsupported credential: {type(credential).__name__}")


class AuthGateway:
    """Factory for isolated :class:`LoginAttempt` objects.

    Args:
        provider: Identity provider every verifier delegates to.
        issuer: Session issuer; a default :class:`SessionIssuer` if omitted.
        otp_ttl_seconds: Local OTP challenge lifetime. ``None`` disables the
            local check and leaves expiry to the IdP.
        clock: UTC clock handed to each attempt's OTP manager; the system
            clock when omitted.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        issuer: Optional[SessionIssuer] = None,
        otp_ttl_seconds: Optional[float] = DEFAULT_OTP_TTL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._provider = provider
        self._issuer = issuer or SessionIssuer()
        self._otp_ttl = otp_ttl_seconds
        self._clock = clock
        self._password = PasswordVerifier(provider)
        self._oauth = OAuthTokenExchanger(provider)

    @classmethod
    def from_profile(
        cls,
        profile: Profile,
        provider: IdentityProvider,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> AuthGateway:
        """Build a gateway using the OTP lifetime configured on *profile*."""
        return cls(provider, otp_ttl_seconds=profile.otp_ttl_seconds, clock=clock)

    @property
    def provider(self) -> IdentityProvider:
        return self._provider

    def begin(self) -> LoginAttempt:
        """Start a fresh attempt with no shared state."""
        return LoginAttempt(
            self._provider,
            password=self._password,
            oauth=self._oauth,
            issuer=self._issuer,
            otp_ttl_seconds=self._otp_ttl,
            clock=self._clock,
        )
