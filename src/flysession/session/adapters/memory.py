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
"""In-memory session store with cookie-driven expiry."""

from __future__ import annotations

import asyncio
import copy
from datetime import UTC, datetime
from typing import Any

from flysession.kernel.exceptions import SessionNotFoundException
from flysession.session.cookie import CookieAttributes


def _expires_at(record: dict[str, Any]) -> datetime | None:
    cookie = record.get("cookie")
    if not isinstance(cookie, dict):
        return None
    return CookieAttributes.from_dict(cookie).expires


class InMemorySessionStore:
    """In-memory session store with an asyncio.Lock for safety.

    A record lives until its cookie ``expires`` instant; records without an
    expiry live until destroyed.  Records are deep-copied on the way in and
    out so callers never share state with the store.

    Suitable for development, testing, and single-process applications.
    """

    def __init__(self) -> None:
        self._store: dict[str, tuple[dict[str, Any], datetime | None]] = {}
        self._lock = asyncio.Lock()

    def _live(self, session_id: str, now: datetime) -> dict[str, Any] | None:
        entry = self._store.get(session_id)
        if entry is None:
            return None

        record, expires_at = entry
        if expires_at is not None and now >= expires_at:
            del self._store[session_id]
            return None
        return record

    async def get(self, session_id: str) -> dict[str, Any]:
        """Retrieve a session record.

        Raises:
            SessionNotFoundException: If missing or expired.
        """
        async with self._lock:
            record = self._live(session_id, datetime.now(UTC))
            if record is None:
                raise SessionNotFoundException(session_id)
            return copy.deepcopy(record)

    async def set(self, session_id: str, record: dict[str, Any]) -> None:
        """Store a session record until its cookie expiry."""
        async with self._lock:
            self._store[session_id] = (copy.deepcopy(record), _expires_at(record))

    async def touch(self, session_id: str, record: dict[str, Any]) -> None:
        """Move the expiry of an existing record; unknown ids are ignored."""
        async with self._lock:
            current = self._live(session_id, datetime.now(UTC))
            if current is None:
                return
            if isinstance(record.get("cookie"), dict):
                current["cookie"] = copy.deepcopy(record["cookie"])
            self._store[session_id] = (current, _expires_at(record))

    async def destroy(self, session_id: str) -> None:
        """Remove a session."""
        async with self._lock:
            self._store.pop(session_id, None)

    async def all(self) -> dict[str, dict[str, Any]]:
        """Return every live record keyed by identifier, evicting expired ones."""
        async with self._lock:
            now = datetime.now(UTC)
            return {
                session_id: copy.deepcopy(record)
                for session_id in list(self._store)
                if (record := self._live(session_id, now)) is not None
            }

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()
