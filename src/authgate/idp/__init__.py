"""Identity-provider boundary for authgate.

Everything the gateway knows about the external IdP goes through
:class:`IdentityProvider`, a single-capability interface: exchange a
credential payload for a reply. :class:`HttpIdentityProvider` implements it
over httpx; tests swap in an :class:`httpx.MockTransport`.

Typical usage::

    from authgate.idp import HttpIdentityProvider

    with HttpIdentityProvider(profile) as idp:
        reply = idp.exchange(LOGIN_PATH, {"username": "u", "password": "p"})
"""

from authgate.idp.base import (
    HEALTH_PATH,
    LOGIN_PATH,
    OAUTH_LOGIN_PATH,
    SEND_OTP_PATH,
    VERIFY_OTP_PATH,
    IdentityProvider,
    IdpReply,
)
from authgate.idp.http import HttpIdentityProvider

__all__ = [
    "HEALTH_PATH",
    "LOGIN_PATH",
    "OAUTH_LOGIN_PATH",
    "SEND_OTP_PATH",
    "VERIFY_OTP_PATH",
    "HttpIdentityProvider",
    "IdentityProvider",
    "IdpReply",
]
