"""Credential verifiers, one per login method.

- :class:`PasswordVerifier` -- username/password via ``/login``.
- :class:`OtpChallengeManager` -- two-phase OTP via ``/send-otp`` and
  ``/verify-otp``; one instance per login attempt.
- :class:`OAuthTokenExchanger` -- OAuth assertion via ``/oauth-login``.

All of them raise the typed errors from :mod:`authgate.exceptions`;
:class:`~authgate.gateway.LoginAttempt` turns those into outcomes.
"""

from authgate.verifiers.base import Verifier
from authgate.verifiers.oauth import OAuthTokenExchanger
from authgate.verifiers.otp import OtpChallengeManager
from authgate.verifiers.password import PasswordVerifier

__all__ = [
    "OAuthTokenExchanger",
    "OtpChallengeManager",
    "PasswordVerifier",
    "Verifier",
]
