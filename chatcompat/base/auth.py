"""Authentication strategies applied to outgoing request headers.

Each strategy implements the :class:`Authenticator` protocol: it receives the
mutable header mapping of a request about to be sent and inserts its
credential. Replacing a header that is already present is allowed but logged
as ``auth.overwrite`` at WARNING level, since it usually means two layers are
fighting over the same credential.
"""
from __future__ import annotations

import logging
from typing import Dict, MutableMapping, Optional, Protocol, runtime_checkable

from ..config.defaults import AUTH_BEARER, AUTH_HEADER_KEY, AUTH_NONE
from .errors import InvalidValue, MissingField
from .logging import get_logger, log_event

_logger = get_logger("auth")


@runtime_checkable
class Authenticator(Protocol):
    """Inserts credentials into the headers of an outgoing request."""

    def authorize(self, headers: MutableMapping[str, str]) -> None:
        """Mutate ``headers`` in place to carry the credential."""
        ...


def _set_header(headers: MutableMapping[str, str], name: str, value: str, scheme: str) -> None:
    existing = next((k for k in headers if k.lower() == name.lower()), None)
    if existing is not None:
        log_event(_logger, "auth.overwrite", level=logging.WARNING, header=existing, scheme=scheme)
        del headers[existing]
    headers[name] = value


class BearerAuth:
    """``Authorization: Bearer <key>`` as used by most compatible services."""

    scheme = AUTH_BEARER

    def __init__(self, key: str) -> None:
        if not key:
            raise MissingField("api_key")
        self._key = key

    def authorize(self, headers: MutableMapping[str, str]) -> None:
        _set_header(headers, "Authorization", f"Bearer {self._key}", self.scheme)

    def __repr__(self) -> str:
        return "BearerAuth(key=***)"


class HeaderKeyAuth:
    """Raw key in a dedicated header (``api-key: <key>`` by default)."""

    scheme = AUTH_HEADER_KEY

    def __init__(self, key: str, header: str = "api-key") -> None:
        if not key:
            raise MissingField("api_key")
        if not header or any(c.isspace() for c in header):
            raise InvalidValue("header", "header name must be a non-empty token")
        self._key = key
        self.header = header

    def authorize(self, headers: MutableMapping[str, str]) -> None:
        _set_header(headers, self.header, self._key, self.scheme)

    def __repr__(self) -> str:
        return f"HeaderKeyAuth(header={self.header!r}, key=***)"


class NoAuth:
    """No credential; for local daemons exposing a compatible endpoint."""

    scheme = AUTH_NONE

    def authorize(self, headers: MutableMapping[str, str]) -> None:
        return None

    def __repr__(self) -> str:
        return "NoAuth()"


def authenticator_for(scheme: Optional[str], key: Optional[str], header: Optional[str] = None) -> Authenticator:
    """Return the strategy named by a configuration ``auth`` value.

    Raises:
        InvalidValue: for an unknown scheme name.
        MissingField: when the scheme needs a key and none is configured.
    """
    name = (scheme or AUTH_BEARER).strip().lower()
    if name == AUTH_NONE:
        return NoAuth()
    if name == AUTH_BEARER:
        return BearerAuth(key or "")
    if name == AUTH_HEADER_KEY:
        return HeaderKeyAuth(key or "", header or "api-key")
    raise InvalidValue("auth", f"unknown auth scheme {scheme!r}")


def apply_auth(authenticator: Authenticator, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Return a copy of ``headers`` with the authenticator applied."""
    out: Dict[str, str] = dict(headers or {})
    authenticator.authorize(out)
    return out


__all__ = [
    "Authenticator",
    "BearerAuth",
    "HeaderKeyAuth",
    "NoAuth",
    "authenticator_for",
    "apply_auth",
]
