"""Canonical Pydantic models shared across all authgate modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`SessionConfig`, :class:`OutputConfig`,
    :class:`GlobalConfig`, and :class:`Profile`.

**Login models** -- short-lived values that flow through one login attempt:
    :class:`LoginMethod`, the :data:`Credential` union
    (:class:`PasswordCredential`, :class:`OtpRequest`, :class:`OtpVerify`,
    :class:`OAuthAssertion`), :class:`OtpState`, :class:`OtpChallenge`,
    :class:`VerifiedIdentity`, and :class:`Session`.

Login models are frozen: once a credential or session is built it cannot be
mutated, and two instances with the same fields compare equal.
"""

from __future__ import annotations

import enum
from abc import abstractmethod
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every call made to the identity provider."""

    timeout: float = Field(default=10.0, description="Per-request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class SessionConfig(BaseModel):
    """How issued sessions are signed and how long they stay valid."""

    secret_source: str = Field(
        default="env:AUTHGATE_SESSION_SECRET",
        description="Signing secret source: env:VAR, file:/path, prompt",
    )
    ttl_seconds: int = Field(
        default=43200, ge=60, description="Maximum session age in seconds"
    )
    cookie_secure: bool = Field(
        default=False, description="Mark session cookies Secure (HTTPS only)"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/authgate/config.json``.

    Fields here have the lowest precedence and can be overridden by project
    config, environment variables, or CLI flags. See
    :func:`~authgate.config.resolve_config` for the full precedence chain.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """One identity-provider target, stored as JSON under ``profiles/``.

    Extra fields are preserved in ``model_extra`` so older or newer
    versions of the tool can share profile files.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    idp_url: str = Field(description="Base URL of the external identity provider")
    oauth_provider: str = Field(
        default="google", description="Provider tag sent with OAuth assertions"
    )
    otp_ttl_seconds: Optional[int] = Field(
        default=300,
        ge=1,
        description="Local lifetime of an OTP challenge; None defers entirely to the IdP",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)


# --- Credentials ---


class LoginMethod(str, enum.Enum):
    """The verification path a credential belongs to.

    Both OTP steps share :attr:`OTP`; switching between methods inside one
    attempt discards any in-progress OTP challenge.
    """

    PASSWORD = "password"
    OTP = "otp"
    OAUTH = "oauth"


class _Credential(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    @abstractmethod
    def method(self) -> LoginMethod:
        """The verification path this credential belongs to."""
        ...


class PasswordCredential(_Credential):
    """A username/password pair."""

    kind: Literal["password"] = "password"
    username: str
    password: str = Field(repr=False)

    @property
    def method(self) -> LoginMethod:
        return LoginMethod.PASSWORD


class OtpRequest(_Credential):
    """Step one of an OTP login: ask the IdP to send a code to *email*."""

    kind: Literal["otp_request"] = "otp_request"
    email: str

    @property
    def method(self) -> LoginMethod:
        return LoginMethod.OTP


class OtpVerify(_Credential):
    """Step two of an OTP login: the code the user received."""

    kind: Literal["otp_verify"] = "otp_verify"
    email: str
    code: str = Field(repr=False)

    @property
    def method(self) -> LoginMethod:
        return LoginMethod.OTP


class OAuthAssertion(_Credential):
    """Identity asserted by a third-party OAuth provider (e.g. Google).

    The token fields are independently optional. Absent ones are omitted
    from the IdP request body rather than sent as ``null``.
    """

    kind: Literal["oauth"] = "oauth"
    provider: str = "google"
    subject_email: str
    display_name: Optional[str] = None
    access_token: Optional[str] = Field(default=None, repr=False)
    refresh_token: Optional[str] = Field(default=None, repr=False)
    expires_at: Optional[int] = Field(
        default=None, description="Access token expiry as epoch seconds"
    )

    @property
    def method(self) -> LoginMethod:
        return LoginMethod.OAUTH


Credential = Annotated[
    Union[PasswordCredential, OtpRequest, OtpVerify, OAuthAssertion],
    Field(discriminator="kind"),
]
"""Tagged union of every credential kind, discriminated on ``kind``."""


# --- OTP state ---


class OtpState(str, enum.Enum):
    """States of the per-attempt OTP state machine."""

    IDLE = "idle"
    AWAITING_VERIFICATION = "awaiting_verification"
    VERIFIED = "verified"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OtpState.VERIFIED, OtpState.FAILED)


class OtpChallenge(BaseModel):
    """An outstanding OTP request. The code itself lives only at the IdP."""

    model_config = ConfigDict(frozen=True)

    email: str
    issued_at: datetime


# --- Results ---


class VerifiedIdentity(BaseModel):
    """The result of a successful credential check.

    ``token`` is the IdP's opaque bearer credential. It is never parsed or
    validated locally, but it must be non-empty.
    """

    model_config = ConfigDict(frozen=True)

    subject_id: str
    display_name: str
    token: str = Field(min_length=1, repr=False)
    method: LoginMethod


class Session(BaseModel):
    """A local session handed to, and owned by, the caller."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    backend_token: str = Field(min_length=1, repr=False)
    display_name: str
