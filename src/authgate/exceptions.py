"""Error taxonomy for authgate.

All exceptions inherit from :class:`AuthGateError`, which carries a stable
``code`` string, an ``exit_code`` mapped to a constant from
:mod:`authgate.exit_codes`, and a ``retryable`` flag. Verifier components
raise these; :meth:`authgate.gateway.LoginAttempt.submit` turns them into
typed :class:`~authgate.gateway.LoginOutcome` values so callers never see an
uncaught fault.

Subclass hierarchy::

    AuthGateError (exit 1)
    +-- InvalidInputError        (exit 2)
    +-- RejectedError            (exit 3)
    +-- SequenceViolationError   (exit 4)
    |   +-- ChallengeExpiredError
    +-- EmailMismatchError       (exit 4)
    +-- AttemptClosedError       (exit 4)
    +-- UpstreamError            (exit 6, retryable)
    +-- ConfigError              (exit 1)

Only :class:`UpstreamError` is retryable: its outcome is unknown rather than
negative, so a caller may offer "try again" instead of "invalid
credentials".
"""

from authgate.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_INPUT,
    EXIT_REJECTED,
    EXIT_SEQUENCE_VIOLATION,
    EXIT_UPSTREAM,
)


class AuthGateError(Exception):
    """Base exception for all authgate errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    code: str = "error"
    exit_code: int = EXIT_GENERIC_FAILURE
    retryable: bool = False

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidInputError(AuthGateError):
    """Raised before any network call when a required field is missing or empty."""

    code = "invalid_input"
    exit_code = EXIT_INVALID_INPUT


class RejectedError(AuthGateError):
    """Raised when the IdP declines the credentials, code, or OAuth assertion.

    Also raised when a 2xx reply lacks a token: the gateway never builds a
    session without one.
    """

    code = "rejected"
    exit_code = EXIT_REJECTED


class SequenceViolationError(AuthGateError):
    """Raised when an OTP step runs out of order (verify before request, or after a terminal state)."""

    code = "sequence_violation"
    exit_code = EXIT_SEQUENCE_VIOLATION


class ChallengeExpiredError(SequenceViolationError):
    """Raised when an OTP challenge outlived its local time-to-live."""

    code = "challenge_expired"


class EmailMismatchError(AuthGateError):
    """Raised when OTP verification names a different email than the request did."""

    code = "email_mismatch"
    exit_code = EXIT_SEQUENCE_VIOLATION


class AttemptClosedError(AuthGateError):
    """Raised for work on an attempt that completed, was abandoned, or switched paths."""

    code = "attempt_closed"
    exit_code = EXIT_SEQUENCE_VIOLATION


class UpstreamError(AuthGateError):
    """Raised on transport failures, timeouts, and unexpected IdP replies.

    Distinct from :class:`RejectedError` because the outcome is unknown, not
    negative.
    """

    code = "upstream"
    exit_code = EXIT_UPSTREAM
    retryable = True


class ConfigError(AuthGateError):
    """Raised for configuration problems (missing profiles, invalid JSON, unresolved secrets)."""

    code = "config"
    exit_code = EXIT_GENERIC_FAILURE
