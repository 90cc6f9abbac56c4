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
"""Redis-backed session store."""

from __future__ import annotations

import json
import logging
import math
from datetime import UTC, datetime
from typing import Any, cast

from flysession.kernel.exceptions import SessionNotFoundException, SessionStoreException
from flysession.session.cookie import CookieAttributes

_logger = logging.getLogger(__name__)

_KEY_PREFIX = "flysession:session:"

_DEFAULT_TTL = 86400  # one day, for records without a cookie expiry


class RedisSessionStore:
    """Session store backed by ``redis.asyncio``.

    Values are JSON-serialized before storage.
    Keys are prefixed with ``flysession:session:`` for namespace isolation.
    The key TTL follows the record's cookie expiry so Redis evicts expired
    sessions on its own.
    """

    def __init__(self, client: Any, default_ttl: int = _DEFAULT_TTL) -> None:
        self._client = client
        self._default_ttl = default_ttl

    def _key(self, session_id: str) -> str:
        return f"{_KEY_PREFIX}{session_id}"

    def _ttl(self, record: dict[str, Any]) -> int:
        cookie = record.get("cookie")
        if not isinstance(cookie, dict):
            return self._default_ttl
        expires = CookieAttributes.from_dict(cookie).expires
        if expires is None:
            return self._default_ttl
        return max(1, math.ceil((expires - datetime.now(UTC)).total_seconds()))

    async def get(self, session_id: str) -> dict[str, Any]:
        """Retrieve and deserialize a session record.

        Raises:
            SessionNotFoundException: If the key is missing or unreadable.
        """
        raw = await self._client.get(self._key(session_id))
        if raw is None:
            raise SessionNotFoundException(session_id)
        try:
            return cast(dict[str, Any], json.loads(raw))
        except (json.JSONDecodeError, TypeError):
            _logger.warning("Failed to deserialize session '%s'", session_id)
            raise SessionNotFoundException(session_id) from None

    async def set(self, session_id: str, record: dict[str, Any]) -> None:
        """Serialize and store a session record with a TTL in seconds."""
        try:
            raw = json.dumps(record)
        except (TypeError, ValueError) as exc:
            raise SessionStoreException(
                f"Session '{session_id}' is not JSON-serializable",
                code="SESSION_SERIALIZE",
                context={"session_id": session_id},
            ) from exc
        await self._client.set(self._key(session_id), raw.encode(), ex=self._ttl(record))

    async def touch(self, session_id: str, record: dict[str, Any]) -> None:
        """Move the expiry of an existing record; unknown ids are ignored.

        The stored cookie attributes are replaced by those of *record* and the
        key TTL reset; the rest of the stored payload is kept.  ``XX`` never
        recreates a key that expired in the meantime.
        """
        try:
            current = await self.get(session_id)
        except SessionNotFoundException:
            return
        if isinstance(record.get("cookie"), dict):
            current["cookie"] = record["cookie"]
        await self._client.set(self._key(session_id), json.dumps(current).encode(), ex=self._ttl(record), xx=True)

    async def destroy(self, session_id: str) -> None:
        """Remove a session."""
        await self._client.delete(self._key(session_id))

    async def all(self) -> dict[str, dict[str, Any]]:
        """Return every stored record keyed by identifier."""
        sessions: dict[str, dict[str, Any]] = {}
        async for key in self._client.scan_iter(match=f"{_KEY_PREFIX}*"):
            name = key.decode() if isinstance(key, bytes) else str(key)
            session_id = name.removeprefix(_KEY_PREFIX)
            try:
                sessions[session_id] = await self.get(session_id)
            except SessionNotFoundException:
                continue
        return sessions
