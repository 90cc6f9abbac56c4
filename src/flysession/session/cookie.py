# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Session cookie attributes and the ``Cookie`` / ``Set-Cookie`` codec.

Signed session cookies carry the ``s:`` marker in front of the signed
identifier so they can be told apart from arbitrary cookies sharing the
name.  Values are percent-encoded on the way out and decoded on the way in.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime
from typing import Any
from urllib.parse import quote, unquote

from starlette.datastructures import MutableHeaders
from starlette.requests import cookie_parser

SIGNED_PREFIX = "s:"

_SAME_SITE_VALUES = frozenset({"lax", "strict", "none"})

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class CookieAttributes:
    """Transport metadata of a session cookie.

    ``max_age`` is the configured lifetime in seconds and survives a
    store round-trip unchanged, so the expiry can be rolled forward after
    a session is loaded.  ``expires`` is the absolute instant the cookie
    (and the stored record) lapses; it is derived from ``max_age`` when not
    given explicitly.

    Attributes:
        path: Cookie ``Path`` scope.
        max_age: Lifetime in seconds, or ``None`` for a browser-session cookie.
        expires: Absolute expiry instant (timezone-aware, UTC).
        secure: Emit the ``Secure`` flag.
        http_only: Emit the ``HttpOnly`` flag.
        domain: Optional ``Domain`` attribute.
        same_site: Optional ``SameSite`` policy (``lax``, ``strict``, ``none``).
    """

    path: str = "/"
    max_age: int | None = None
    expires: datetime | None = None
    secure: bool = False
    http_only: bool = True
    domain: str | None = None
    same_site: str | None = None

    def __post_init__(self) -> None:
        if self.same_site is not None:
            self.same_site = self.same_site.lower()
            if self.same_site not in _SAME_SITE_VALUES:
                raise ValueError(f"Invalid SameSite value '{self.same_site}'")
        if self.expires is None and self.max_age is not None:
            self.reset_expiry()

    @property
    def remaining_max_age(self) -> int | None:
        """Seconds until ``expires``, never negative; ``max_age`` if no expiry."""
        if self.expires is None:
            return self.max_age
        return max(0, round((self.expires - _now()).total_seconds()))

    @property
    def expired(self) -> bool:
        return self.expires is not None and self.expires <= _now()

    def reset_expiry(self) -> None:
        """Move ``expires`` to ``max_age`` seconds from now."""
        if self.max_age is not None:
            self.expires = _now() + timedelta(seconds=self.max_age)

    def copy(self) -> CookieAttributes:
        return dataclasses.replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for storage; ``expires`` becomes an ISO-8601 string."""
        return {
            "path": self.path,
            "max_age": self.max_age,
            "expires": self.expires.isoformat() if self.expires is not None else None,
            "secure": self.secure,
            "http_only": self.http_only,
            "domain": self.domain,
            "same_site": self.same_site,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CookieAttributes:
        """Rebuild attributes from a stored record.

        A string ``expires`` is parsed back into an aware datetime; naive
        timestamps are taken as UTC.  An unreadable ``expires`` is dropped and
        recomputed from ``max_age``.
        """
        expires = data.get("expires")
        if isinstance(expires, str):
            try:
                expires = datetime.fromisoformat(expires)
            except ValueError:
                expires = None
        if not isinstance(expires, datetime):
            expires = None
        elif expires.tzinfo is None:
            expires = expires.replace(tzinfo=UTC)

        max_age = data.get("max_age")
        return cls(
            path=str(data.get("path") or "/"),
            max_age=int(max_age) if max_age is not None else None,
            expires=expires,
            secure=bool(data.get("secure", False)),
            http_only=bool(data.get("http_only", True)),
            domain=data.get("domain"),
            same_site=data.get("same_site"),
        )


def _attribute_segments(attributes: CookieAttributes, max_age: int | None, expires: datetime | None) -> list[str]:
    segments: list[str] = []
    if max_age is not None:
        segments.append(f"Max-Age={max_age}")
    if attributes.domain:
        segments.append(f"Domain={attributes.domain}")
    if attributes.path:
        segments.append(f"Path={attributes.path}")
    if expires is not None:
        segments.append(f"Expires={format_datetime(expires.astimezone(UTC), usegmt=True)}")
    if attributes.http_only:
        segments.append("HttpOnly")
    if attributes.secure:
        segments.append("Secure")
    if attributes.same_site:
        segments.append(f"SameSite={attributes.same_site.capitalize()}")
    return segments


def encode(name: str, signed: str, attributes: CookieAttributes) -> str:
    """Build a ``Set-Cookie`` header value for a signed session identifier.

    Args:
        name: Cookie name.
        signed: Output of the signer (``<id>.<mac>``).
        attributes: Cookie attributes to serialize.

    Returns:
        ``name=s%3A<id>.<mac>; Max-Age=..; Path=..; Expires=..; HttpOnly; ...``
    """
    value = quote(SIGNED_PREFIX + signed, safe="!*'()")
    segments = _attribute_segments(attributes, attributes.remaining_max_age, attributes.expires)
    return "; ".join([f"{name}={value}", *segments])


def encode_cleared(name: str, attributes: CookieAttributes) -> str:
    """Build a ``Set-Cookie`` header value that makes the browser drop the cookie."""
    segments = _attribute_segments(attributes, 0, _EPOCH)
    return "; ".join([f"{name}=", *segments])


def decode(cookie_header: str | None, name: str) -> str | None:
    """Extract the value of cookie *name* from a ``Cookie`` request header.

    Returns ``None`` when the header or the key is absent.  Values may
    contain ``=``; only the first one separates key from value.  When the
    name repeats, the first occurrence wins: browsers list the cookie with
    the most specific ``Path`` first.
    """
    if not cookie_header:
        return None
    for chunk in cookie_header.split(";"):
        raw = cookie_parser(chunk).get(name)
        if raw is not None:
            return unquote(raw)
    return None


def strip_prefix(raw: str | None) -> str | None:
    """Return the signed payload if *raw* carries the ``s:`` marker, else ``None``."""
    if not raw or not raw.startswith(SIGNED_PREFIX):
        return None
    return raw[len(SIGNED_PREFIX):]


def append_set_cookie(message: dict[str, Any], value: str) -> None:
    """Append a ``Set-Cookie`` header to an ASGI ``http.response.start`` message.

    Existing ``Set-Cookie`` headers queued by the application are kept.
    """
    message.setdefault("headers", [])
    headers = MutableHeaders(scope=message)
    headers.append("set-cookie", value)
