"""Tests for login attempts and the gateway."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from authgate.exceptions import (
    AttemptClosedError,
    ChallengeExpiredError,
    EmailMismatchError,
    InvalidInputError,
    RejectedError,
    SequenceViolationError,
    UpstreamError,
)
from authgate.gateway import AuthGateway, LoginOutcome
from authgate.idp.base import IdentityProvider, IdpReply
from authgate.models import (
    LoginMethod,
    OAuthAssertion,
    OtpRequest,
    OtpState,
    OtpVerify,
    PasswordCredential,
    Profile,
    Session,
)

EMAIL = "alice@example.com"


class _Clock:
    """Manually advanced UTC clock."""

    def __init__(self) -> None:
        self.now = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def idp(fake_idp):
    fake_idp.replies.update(
        {
            "/login": IdpReply(200, {"token": "pw-token"}),
            "/send-otp": IdpReply(200, {}),
            "/verify-otp": IdpReply(200, {"token": "otp-token"}),
            "/oauth-login": IdpReply(200, {"token": "oauth-token"}),
        }
    )
    return fake_idp


@pytest.fixture
def gateway(idp) -> AuthGateway:
    return AuthGateway(idp)


# ---------------------------------------------------------------------------
# LoginOutcome
# ---------------------------------------------------------------------------


class TestLoginOutcome:
    def test_success(self) -> None:
        outcome = LoginOutcome(session=Session(subject_id="a", backend_token="t", display_name="a"))
        assert outcome.ok
        assert not outcome.pending
        assert not outcome.retryable

    def test_error(self) -> None:
        outcome = LoginOutcome(error=RejectedError("no"))
        assert not outcome.ok
        assert not outcome.pending
        assert not outcome.retryable

    def test_upstream_error_is_retryable(self) -> None:
        assert LoginOutcome(error=UpstreamError("down")).retryable

    def test_pending(self) -> None:
        assert LoginOutcome().pending

    def test_session_and_error_are_exclusive(self) -> None:
        with pytest.raises(ValueError):
            LoginOutcome(
                session=Session(subject_id="a", backend_token="t", display_name="a"),
                error=RejectedError("no"),
            )


# ---------------------------------------------------------------------------
# Single-method flows
# ---------------------------------------------------------------------------


class TestPasswordFlow:
    def test_success_issues_session(self, gateway) -> None:
        outcome = gateway.begin().submit(PasswordCredential(username="alice", password="pw"))

        assert outcome.ok
        assert outcome.session == Session(
            subject_id="alice", backend_token="pw-token", display_name="alice"
        )

    def test_rejected(self, gateway, idp) -> None:
        idp.replies["/login"] = IdpReply(401, {"error": "Invalid credentials"})

        outcome = gateway.begin().submit(PasswordCredential(username="alice", password="bad"))

        assert isinstance(outcome.error, RejectedError)
        assert not outcome.retryable
        assert outcome.session is None

    def test_empty_input(self, gateway, idp) -> None:
        outcome = gateway.begin().submit(PasswordCredential(username="", password="pw"))
        assert isinstance(outcome.error, InvalidInputError)
        assert idp.calls == []

    def test_upstream_is_retryable_outcome(self, gateway, idp) -> None:
        idp.replies["/login"] = UpstreamError("timed out")
        attempt = gateway.begin()

        outcome = attempt.submit(PasswordCredential(username="alice", password="pw"))
        assert outcome.retryable

        idp.replies["/login"] = IdpReply(200, {"token": "pw-token"})
        assert attempt.submit(PasswordCredential(username="alice", password="pw")).ok

    def test_rejected_attempt_can_try_again(self, gateway, idp) -> None:
        attempt = gateway.begin()
        idp.replies["/login"] = IdpReply(401)
        assert not attempt.submit(PasswordCredential(username="alice", password="bad")).ok

        idp.replies["/login"] = IdpReply(200, {"token": "pw-token"})
        assert attempt.submit(PasswordCredential(username="alice", password="good")).ok


class TestOtpFlow:
    def test_request_then_verify(self, gateway, idp) -> None:
        attempt = gateway.begin()

        pending = attempt.submit(OtpRequest(email=EMAIL))
        assert pending.pending
        assert pending.challenge is not None
        assert pending.challenge.email == EMAIL
        assert attempt.otp.state is OtpState.AWAITING_VERIFICATION

        outcome = attempt.submit(OtpVerify(email=EMAIL, code="123456"))
        assert outcome.ok
        assert outcome.session.subject_id == EMAIL
        assert outcome.session.backend_token == "otp-token"
        assert idp.paths() == ["/send-otp", "/verify-otp"]

    def test_verify_without_request(self, gateway, idp) -> None:
        outcome = gateway.begin().submit(OtpVerify(email=EMAIL, code="123456"))
        assert isinstance(outcome.error, SequenceViolationError)
        assert idp.calls == []

    def test_mismatched_email(self, gateway, idp) -> None:
        attempt = gateway.begin()
        attempt.submit(OtpRequest(email=EMAIL))

        outcome = attempt.submit(OtpVerify(email="bob@example.com", code="123456"))

        assert isinstance(outcome.error, EmailMismatchError)
        assert idp.paths() == ["/send-otp"]
        assert attempt.otp.state is OtpState.AWAITING_VERIFICATION

    def test_rejected_code_needs_new_attempt(self, gateway, idp) -> None:
        idp.replies["/verify-otp"] = IdpReply(400, {"error": "Invalid OTP"})
        attempt = gateway.begin()
        attempt.submit(OtpRequest(email=EMAIL))

        assert isinstance(attempt.submit(OtpVerify(email=EMAIL, code="0")).error, RejectedError)
        assert isinstance(
            attempt.submit(OtpVerify(email=EMAIL, code="1")).error, SequenceViolationError
        )

        idp.replies["/verify-otp"] = IdpReply(200, {"token": "otp-token"})
        fresh = gateway.begin()
        fresh.submit(OtpRequest(email=EMAIL))
        assert fresh.submit(OtpVerify(email=EMAIL, code="1")).ok

    def test_default_ttl_expires_challenge(self, idp) -> None:
        clock = _Clock()
        attempt = AuthGateway(idp, clock=clock).begin()
        attempt.submit(OtpRequest(email=EMAIL))
        clock.advance(301)

        outcome = attempt.submit(OtpVerify(email=EMAIL, code="123456"))

        assert isinstance(outcome.error, ChallengeExpiredError)
        assert attempt.otp.state is OtpState.FAILED
        assert idp.paths() == ["/send-otp"]

    def test_disabled_ttl_leaves_expiry_to_idp(self, idp) -> None:
        clock = _Clock()
        attempt = AuthGateway(idp, otp_ttl_seconds=None, clock=clock).begin()
        attempt.submit(OtpRequest(email=EMAIL))
        clock.advance(86400)

        assert attempt.submit(OtpVerify(email=EMAIL, code="123456")).ok


class TestOAuthFlow:
    def test_exchange_issues_session(self, gateway, idp) -> None:
        outcome = gateway.begin().submit(
            OAuthAssertion(subject_email=EMAIL, display_name="Alice", access_token="ya29")
        )
        assert outcome.ok
        assert outcome.session == Session(
            subject_id=EMAIL, backend_token="oauth-token", display_name="Alice"
        )
        assert idp.calls[0][1]["access_token"] == "ya29"

    def test_declined_is_rejected(self, gateway, idp) -> None:
        idp.replies["/oauth-login"] = IdpReply(403)
        outcome = gateway.begin().submit(OAuthAssertion(subject_email=EMAIL))
        assert isinstance(outcome.error, RejectedError)


# ---------------------------------------------------------------------------
# Attempt lifecycle
# ---------------------------------------------------------------------------


class TestAttemptLifecycle:
    def test_attempts_are_isolated(self, gateway) -> None:
        first = gateway.begin()
        second = gateway.begin()
        first.submit(OtpRequest(email=EMAIL))

        outcome = second.submit(OtpVerify(email=EMAIL, code="123456"))
        assert isinstance(outcome.error, SequenceViolationError)

    def test_completed_attempt_is_closed(self, gateway, idp) -> None:
        attempt = gateway.begin()
        assert attempt.submit(PasswordCredential(username="alice", password="pw")).ok
        assert attempt.completed
        assert attempt.closed

        outcome = attempt.submit(PasswordCredential(username="alice", password="pw"))
        assert isinstance(outcome.error, AttemptClosedError)
        assert idp.paths() == ["/login"]

    def test_abandon_closes(self, gateway, idp) -> None:
        attempt = gateway.begin()
        attempt.submit(OtpRequest(email=EMAIL))
        attempt.abandon()

        outcome = attempt.submit(OtpVerify(email=EMAIL, code="123456"))
        assert isinstance(outcome.error, AttemptClosedError)
        assert attempt.otp is None
        assert idp.paths() == ["/send-otp"]

    def test_switching_method_discards_otp_state(self, gateway, idp) -> None:
        attempt = gateway.begin()
        attempt.submit(OtpRequest(email=EMAIL))

        attempt.switch_to(LoginMethod.PASSWORD)
        assert attempt.otp is None
        attempt.switch_to(LoginMethod.OTP)

        outcome = attempt.submit(OtpVerify(email=EMAIL, code="123456"))
        assert isinstance(outcome.error, SequenceViolationError)
        assert idp.paths() == ["/send-otp"]

    def test_submitting_other_kind_switches_implicitly(self, gateway, idp) -> None:
        attempt = gateway.begin()
        attempt.submit(OtpRequest(email=EMAIL))

        idp.replies["/login"] = IdpReply(401)
        attempt.submit(PasswordCredential(username="alice", password="bad"))
        assert attempt.method is LoginMethod.PASSWORD

        outcome = attempt.submit(OtpVerify(email=EMAIL, code="123456"))
        assert isinstance(outcome.error, SequenceViolationError)

    def test_switch_to_same_method_keeps_state(self, gateway) -> None:
        attempt = gateway.begin()
        attempt.submit(OtpRequest(email=EMAIL))
        manager = attempt.otp

        attempt.switch_to(LoginMethod.OTP)

        assert attempt.otp is manager
        assert attempt.submit(OtpVerify(email=EMAIL, code="123456")).ok

    @pytest.mark.parametrize(("elapsed", "expired"), [(60, False), (61, True)])
    def test_from_profile_uses_profile_ttl(self, idp, elapsed: int, expired: bool) -> None:
        clock = _Clock()
        profile = Profile(name="p", idp_url="http://idp.test", otp_ttl_seconds=60)
        attempt = AuthGateway.from_profile(profile, idp, clock=clock).begin()
        attempt.submit(OtpRequest(email=EMAIL))
        clock.advance(elapsed)

        outcome = attempt.submit(OtpVerify(email=EMAIL, code="123456"))

        assert isinstance(outcome.error, ChallengeExpiredError) is expired
        assert outcome.ok is not expired


class _BlockingIdp(IdentityProvider):
    """Holds every exchange until released, so a test can act mid-flight."""

    def __init__(self, reply: Any) -> None:
        self.reply = reply
        self.entered = threading.Event()
        self.release = threading.Event()

    def exchange(self, path: str, payload: dict[str, Any]) -> IdpReply:
        self.entered.set()
        assert self.release.wait(timeout=5)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def _submit_in_thread(attempt, credential) -> tuple[threading.Thread, list[LoginOutcome]]:
    results: list[LoginOutcome] = []
    thread = threading.Thread(target=lambda: results.append(attempt.submit(credential)))
    thread.start()
    return thread, results


class TestStaleResults:
    def test_success_after_abandon_is_discarded(self) -> None:
        idp = _BlockingIdp(IdpReply(200, {"token": "late-token"}))
        attempt = AuthGateway(idp).begin()

        thread, results = _submit_in_thread(
            attempt, PasswordCredential(username="alice", password="pw")
        )
        assert idp.entered.wait(timeout=5)
        attempt.abandon()
        idp.release.set()
        thread.join(timeout=5)

        assert isinstance(results[0].error, AttemptClosedError)
        assert results[0].session is None
        assert not attempt.completed

    def test_failure_after_abandon_is_discarded(self) -> None:
        idp = _BlockingIdp(IdpReply(401))
        attempt = AuthGateway(idp).begin()

        thread, results = _submit_in_thread(
            attempt, PasswordCredential(username="alice", password="pw")
        )
        assert idp.entered.wait(timeout=5)
        attempt.abandon()
        idp.release.set()
        thread.join(timeout=5)

        assert isinstance(results[0].error, AttemptClosedError)

    def test_result_after_method_switch_is_discarded(self) -> None:
        idp = _BlockingIdp(IdpReply(200, {"token": "late-token"}))
        attempt = AuthGateway(idp).begin()

        thread, results = _submit_in_thread(
            attempt, PasswordCredential(username="alice", password="pw")
        )
        assert idp.entered.wait(timeout=5)
        attempt.switch_to(LoginMethod.OTP)
        idp.release.set()
        thread.join(timeout=5)

        assert isinstance(results[0].error, AttemptClosedError)
        assert not attempt.completed
        assert attempt.method is LoginMethod.OTP
        assert attempt.otp.state is OtpState.IDLE
