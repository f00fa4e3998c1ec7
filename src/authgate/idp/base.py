"""Abstract boundary to the external identity provider.

This module defines the two types every verifier talks to:

- :class:`IdpReply` -- the status code and decoded JSON body of one IdP
  call, with helpers for the "2xx and a token" success test.
- :class:`IdentityProvider` -- the abstract base class for anything that can
  exchange a credential payload for a reply.

The IdP is the trust boundary. Tokens it returns are opaque: nothing here
parses, decodes, or validates them. Implementations must map transport
failures and timeouts to :class:`~authgate.exceptions.UpstreamError` and
otherwise return a reply, leaving the accept/reject decision to the
verifier.

See Also:
    :class:`~authgate.idp.http.HttpIdentityProvider` for the httpx adapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

LOGIN_PATH = "/login"
SEND_OTP_PATH = "/send-otp"
VERIFY_OTP_PATH = "/verify-otp"
OAUTH_LOGIN_PATH = "/oauth-login"
HEALTH_PATH = "/health"


class IdpReply:
    """Outcome of a single call to the identity provider.

    Args:
        status_code: HTTP status returned by the IdP.
        body: Decoded JSON body, or an empty dict when the body was empty
            or not a JSON object.

    Example::

        reply = IdpReply(200, {"token": "abc"})
        assert reply.ok and reply.token == "abc"
    """

    def __init__(self, status_code: int, body: Optional[dict[str, Any]] = None):
        self.status_code = status_code
        self.body = body or {}

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def token(self) -> Optional[str]:
        """The ``token`` field when it is a non-empty string, else ``None``."""
        value = self.body.get("token")
        if isinstance(value, str) and value:
            return value
        return None

    @property
    def error_detail(self) -> str:
        """Best-effort human-readable reason from a failure body."""
        detail = self.body.get("error") or self.body.get("message") or self.body.get("detail")
        return str(detail) if detail else f"HTTP {self.status_code}"

    def __repr__(self) -> str:
        return f"IdpReply(status_code={self.status_code}, keys={sorted(self.body)})"


class IdentityProvider(ABC):
    """Exchange a credential payload for an IdP reply.

    Concrete providers own their transport. Verifiers only ever call
    :meth:`exchange`, which keeps them independent of the wire format and
    easy to fake in tests.
    """

    @abstractmethod
    def exchange(self, path: str, payload: dict[str, Any]) -> IdpReply:
        """POST *payload* to the IdP endpoint at *path* and return its reply.

        Exactly one outbound call is made; no retries.

        Args:
            path: Endpoint path such as :data:`LOGIN_PATH`.
            payload: JSON-serialisable request body.

        Returns:
            The :class:`IdpReply`, whatever its status code.

        Raises:
            UpstreamError: On connection failures, timeouts, or any other
                transport-level error.
        """
        ...

    def health(self) -> dict[str, Any]:
        """Probe the IdP's health endpoint.

        The default implementation reports that health checks are not
        supported; HTTP providers override it.

        Raises:
            UpstreamError: When the IdP is unreachable or unhealthy.
        """
        return {"status": "unknown"}
