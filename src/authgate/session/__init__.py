"""Session issuing, signing, and local persistence."""

from authgate.session.codec import SessionCodec, SessionCookie
from authgate.session.issuer import SessionIssuer
from authgate.session.store import SessionStore, StoredSession

__all__ = [
    "SessionCodec",
    "SessionCookie",
    "SessionIssuer",
    "SessionStore",
    "StoredSession",
]
