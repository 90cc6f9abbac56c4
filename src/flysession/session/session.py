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
"""HttpSession — request-scoped session entity and its eligibility policies."""

from __future__ import annotations

import dataclasses
import json
import zlib
from collections.abc import Iterator, Mapping
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from flysession.session.cookie import CookieAttributes

if TYPE_CHECKING:
    from flysession.session.manager import SessionManager

logger = structlog.get_logger("flysession.session")

COOKIE_KEY = "cookie"
"""Record key holding the serialized cookie attributes; reserved in session data."""


class SessionPolicy(StrEnum):
    """Rules deciding when a session is saved and its cookie emitted.

    ``PERSISTENT`` sessions become active only through ``generate()`` or
    ``inflate()``.  ``TRANSACTIONAL`` sessions exist as soon as they hold an
    identifier and always use ``Secure`` cookies.
    """

    PERSISTENT = "persistent"
    TRANSACTIONAL = "transactional"


def is_eligible(policy: SessionPolicy, session_id: str | None, generated_or_loaded: bool) -> bool:
    """Return ``True`` if a session in this state must be saved and its cookie set."""
    if policy is SessionPolicy.TRANSACTIONAL:
        return session_id is not None
    return isinstance(session_id, str) and generated_or_loaded


def apply_cookie_policy(policy: SessionPolicy, attributes: CookieAttributes) -> CookieAttributes:
    """Return *attributes* adjusted to what *policy* requires."""
    if policy is SessionPolicy.TRANSACTIONAL and not attributes.secure:
        return dataclasses.replace(attributes, secure=True)
    return attributes


class HttpSession:
    """Wraps a plain session payload with lifecycle behaviour.

    The payload (``get_data()``) holds only JSON-compatible application
    values; identifier, cookie attributes and lifecycle flags live on the
    wrapper and never leak into what is stored or hashed.

    Attributes:
        id: The session identifier, ``None`` until generated or loaded.
        is_new: ``True`` if the session was generated during the current request.
    """

    def __init__(
        self,
        manager: SessionManager,
        data: Mapping[str, Any] | None = None,
        *,
        session_id: str | None = None,
        cookie: CookieAttributes | None = None,
        generated_or_loaded: bool = False,
    ) -> None:
        self._manager = manager
        self._data: dict[str, Any] = dict(data) if data is not None else {}
        self._data.pop(COOKIE_KEY, None)
        self._id = session_id
        self._cookie = apply_cookie_policy(manager.policy, cookie if cookie is not None else manager.new_cookie())
        self._generated_or_loaded = generated_or_loaded
        self._is_new = False
        self._destroyed = False
        self._original_hash = self.hash()

    @property
    def id(self) -> str | None:
        return self._id

    @property
    def cookie(self) -> CookieAttributes:
        return self._cookie

    @property
    def policy(self) -> SessionPolicy:
        return self._manager.policy

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def generated_or_loaded(self) -> bool:
        return self._generated_or_loaded

    @property
    def original_hash(self) -> int:
        """Checksum of the payload as it was when this entity was built."""
        return self._original_hash

    @property
    def active(self) -> bool:
        """Whether the session exists for this request under its policy."""
        return is_eligible(self.policy, self._id, self._generated_or_loaded)

    def __getitem__(self, name: str) -> Any:
        return self._data[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.set_attribute(name, value)

    def __delitem__(self, name: str) -> None:
        del self._data[name]

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def get_attribute(self, name: str) -> Any | None:
        """Return the session attribute value, or ``None`` if absent."""
        return self._data.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        """Set a session attribute.

        Raises:
            KeyError: If *name* is the reserved ``cookie`` key.
        """
        if name == COOKIE_KEY:
            raise KeyError(f"'{COOKIE_KEY}' is reserved for cookie attributes")
        self._data[name] = value

    def remove_attribute(self, name: str) -> None:
        """Remove a session attribute if it exists."""
        self._data.pop(name, None)

    def get_attribute_names(self) -> list[str]:
        return list(self._data)

    def get_data(self) -> dict[str, Any]:
        """Return the raw session payload dictionary."""
        return self._data

    def should_save(self) -> bool:
        return self.active

    def should_set_cookie(self) -> bool:
        return self.active

    def should_clear_cookie(self) -> bool:
        """``True`` if an existing session was destroyed and not replaced."""
        return self._destroyed and not self.active

    def hash(self) -> int:
        """CRC-32 of the JSON payload; identifier and cookie are excluded."""
        serialized = json.dumps(self._data, sort_keys=True, separators=(",", ":"), default=str)
        return zlib.crc32(serialized.encode("utf-8"))

    def is_modified(self) -> bool:
        return self.hash() != self._original_hash

    async def generate(self) -> HttpSession:
        """Start a fresh session, destroying the currently active one first.

        The payload is emptied and the cookie attributes reset to the
        configured defaults.  Returns ``self`` for chaining.
        """
        if self.active:
            await self.destroy()

        self._id = self._manager.generate_id()
        self._data.clear()
        self._cookie = apply_cookie_policy(self.policy, self._manager.new_cookie())
        self._generated_or_loaded = True
        self._is_new = True
        self._destroyed = False
        self._original_hash = self.hash()
        logger.debug("session_generated", session_id=self._id)
        return self

    def inflate(self, record: Mapping[str, Any], *, session_id: str) -> HttpSession:
        """Build the active session for *session_id* from a stored record.

        The stored cookie attributes are restored (a string ``expires`` is
        parsed back into a datetime, ``max_age`` is kept).  The returned
        entity replaces this one for the rest of the request.
        """
        payload = dict(record)
        stored_cookie = payload.pop(COOKIE_KEY, None)
        cookie = (
            CookieAttributes.from_dict(stored_cookie)
            if isinstance(stored_cookie, Mapping)
            else self._manager.new_cookie()
        )
        return HttpSession(
            self._manager,
            payload,
            session_id=session_id,
            cookie=cookie,
            generated_or_loaded=True,
        )

    async def destroy(self) -> None:
        """Remove the session from the store and make this entity inactive.

        Does nothing when the session is not active.
        """
        if not self.active:
            return

        session_id = self._id
        await self._manager.store.destroy(session_id)  # type: ignore[arg-type]
        self._id = None
        self._generated_or_loaded = False
        self._is_new = False
        self._destroyed = True
        self._data.clear()
        logger.debug("session_destroyed", session_id=session_id)

    def to_record(self) -> dict[str, Any]:
        """Return the record persisted to the store: payload plus cookie attributes."""
        return {**self._data, COOKIE_KEY: self._cookie.to_dict()}

    def __repr__(self) -> str:
        return f"HttpSession(id={self._id!r}, policy={self.policy.value!r}, active={self.active})"
