"""httpx-backed identity provider adapter.

This module provides :class:`HttpIdentityProvider`, the production
implementation of :class:`~authgate.idp.base.IdentityProvider`. It wraps
:class:`httpx.Client` and layers on:

- **Base URL and timeout** from the active
  :class:`~authgate.models.Profile`; every call is bounded by
  ``profile.request.timeout``.
- **Error mapping** -- connection errors, timeouts, and other transport
  failures become :class:`~authgate.exceptions.UpstreamError`. HTTP error
  statuses are *not* raised; they are returned as
  :class:`~authgate.idp.base.IdpReply` so each verifier decides between
  "rejected" and "upstream".
- **Redacted debug logging** -- request bodies are logged with secrets
  masked.

Unlike a general API client there is no retry loop: the gateway never
retries, callers do.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from authgate.exceptions import UpstreamError
from authgate.idp.base import HEALTH_PATH, IdentityProvider, IdpReply
from authgate.models import Profile
from authgate.output import redact

logger = logging.getLogger(__name__)

_SECRET_FIELDS = frozenset({"password", "otp", "access_token", "refresh_token"})


class HttpIdentityProvider(IdentityProvider):
    """Talks to the external IdP over HTTP with JSON bodies.

    Can be used as a context manager, or closed explicitly with
    :meth:`close`. The underlying client is created lazily on first use.

    Args:
        profile: Supplies ``idp_url`` and request settings (timeout, SSL
            verification).
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        with HttpIdentityProvider(profile) as idp:
            reply = idp.exchange("/login", {"username": "u", "password": "p"})
    """

    def __init__(
        self,
        profile: Profile,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._profile = profile
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def __enter__(self) -> HttpIdentityProvider:
        self._ensure_client()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _ensure_client(self) -> httpx.Client:
        if self._client is None:
            config = self._profile.request
            self._client = httpx.Client(
                base_url=self._profile.idp_url.rstrip("/"),
                timeout=config.timeout,
                verify=config.verify_ssl,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    # ------------------------------------------------------------------ #
    # IdentityProvider
    # ------------------------------------------------------------------ #

    def exchange(self, path: str, payload: dict[str, Any]) -> IdpReply:
        """POST *payload* as JSON to *path* and return the reply.

        Raises:
            UpstreamError: On timeouts and transport failures.
        """
        logger.debug("POST %s %s", path, _mask(payload))
        response = self._send("POST", path, json=payload)
        reply = IdpReply(response.status_code, _json_object(response))
        logger.debug("POST %s -> %s", path, response.status_code)
        return reply

    def health(self) -> dict[str, Any]:
        """GET the IdP's ``/health`` endpoint.

        Returns:
            The decoded health body, e.g. ``{"status": "healthy"}``.

        Raises:
            UpstreamError: When the IdP is unreachable or answers non-2xx.
        """
        response = self._send("GET", HEALTH_PATH)
        if response.status_code >= 300:
            raise UpstreamError(
                f"IdP health check failed with HTTP {response.status_code}"
            )
        return _json_object(response) or {"status": "ok"}

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = self._ensure_client()
        try:
            return client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamError(
                f"IdP did not answer {method} {path} within "
                f"{self._profile.request.timeout}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Cannot reach IdP for {method} {path}: {exc}") from exc


def _json_object(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body; anything else becomes an empty dict."""
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _mask(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        key: redact(str(value)) if key in _SECRET_FIELDS else value
        for key, value in payload.items()
    }
