"""Abstract base class and shared checks for credential verifiers.

A verifier turns one kind of credential into a
:class:`~authgate.models.VerifiedIdentity` by delegating to an
:class:`~authgate.idp.base.IdentityProvider`. Every verifier follows the
same three rules:

1. Empty input is rejected locally with
   :class:`~authgate.exceptions.InvalidInputError`; nothing is sent.
2. A non-2xx reply, or a 2xx reply without a token, is a
   :class:`~authgate.exceptions.RejectedError`.
3. Transport failures surface as
   :class:`~authgate.exceptions.UpstreamError` straight from the provider.

:func:`require` and :func:`identity_from_reply` implement rules 1 and 2 so
concrete verifiers stay short.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from authgate.exceptions import InvalidInputError, RejectedError
from authgate.idp.base import IdentityProvider, IdpReply
from authgate.models import LoginMethod, VerifiedIdentity


class Verifier(ABC):
    """Base class for the password, OTP, and OAuth verifiers.

    Args:
        provider: The identity provider every check is delegated to.
    """

    def __init__(self, provider: IdentityProvider) -> None:
        self._provider = provider

    @property
    @abstractmethod
    def method(self) -> LoginMethod:
        """The login method this verifier handles."""
        ...


def require(**fields: str | None) -> None:
    """Raise :class:`InvalidInputError` naming every empty or blank field.

    Example::

        require(username="alice", password="")
        # InvalidInputError: Missing required field(s): password
    """
    missing = [name for name, value in fields.items() if not value or not value.strip()]
    if missing:
        raise InvalidInputError(f"Missing required field(s): {', '.join(missing)}")


def identity_from_reply(
    reply: IdpReply,
    *,
    subject_id: str,
    display_name: str,
    method: LoginMethod,
) -> VerifiedIdentity:
    """Build a :class:`VerifiedIdentity` from a successful reply.

    Raises:
        RejectedError: If the reply is not 2xx or carries no token.
    """
    if not reply.ok:
        raise RejectedError(f"Identity provider declined the {method.value} login: {reply.error_detail}")
    token = reply.token
    if token is None:
        raise RejectedError(f"Identity provider returned no token for the {method.value} login")
    return VerifiedIdentity(
        subject_id=subject_id,
        display_name=display_name,
        token=token,
        method=method,
    )
