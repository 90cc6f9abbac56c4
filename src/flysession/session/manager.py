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
"""SessionManager — binds a store, an id generator and cookie defaults."""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Callable

import structlog

from flysession.session.cookie import CookieAttributes
from flysession.session.ports.outbound import SessionStore
from flysession.session.session import HttpSession, SessionPolicy

logger = structlog.get_logger("flysession.session")

IdGenerator = Callable[[], str]


def default_generate_id() -> str:
    """Return a random UUID-4 string."""
    return str(uuid.uuid4())


class SessionManager:
    """Collaborators shared by every session entity of one middleware.

    Holds no per-request state: entities reach the store, the identifier
    generator and the cookie defaults through it.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        generate_id: IdGenerator | None = None,
        cookie: CookieAttributes | None = None,
        policy: SessionPolicy = SessionPolicy.PERSISTENT,
    ) -> None:
        self._store = store
        self._generate_id = generate_id or default_generate_id
        self._cookie = cookie or CookieAttributes()
        self._policy = SessionPolicy(policy)

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def policy(self) -> SessionPolicy:
        return self._policy

    @property
    def cookie_defaults(self) -> CookieAttributes:
        return self._cookie.copy()

    def generate_id(self) -> str:
        return self._generate_id()

    def new_cookie(self) -> CookieAttributes:
        """Fresh cookie attributes with the expiry counted from now."""
        return dataclasses.replace(self._cookie, expires=None)

    def create_session(self) -> HttpSession:
        """Return an empty, inactive session."""
        return HttpSession(self)

    async def load(self, session: HttpSession, session_id: str) -> HttpSession:
        """Fetch *session_id* from the store and inflate it.

        Raises:
            SessionNotFoundException: No live record exists for *session_id*.
        """
        record = await self._store.get(session_id)
        return session.inflate(record, session_id=session_id)

    async def save(self, session: HttpSession) -> None:
        """Write the full session record to the store."""
        await self._store.set(session.id, session.to_record())  # type: ignore[arg-type]
        logger.debug("session_saved", session_id=session.id)

    async def touch(self, session: HttpSession) -> None:
        """Refresh the stored expiry without rewriting the payload."""
        await self._store.touch(session.id, session.to_record())  # type: ignore[arg-type]
        logger.debug("session_touched", session_id=session.id)
