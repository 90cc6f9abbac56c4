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
"""SessionMiddleware — per-request session lifecycle, pure ASGI.

For every HTTP request the middleware:

1. passes through when a session is already attached (nested middleware);
2. rejects the request when no secret is configured, or when a ``Secure``
   cookie is configured but the connection is not secure;
3. skips requests outside the cookie path (persistent policy only);
4. recovers the session identifier from the signed cookie, attaches an
   inactive :class:`HttpSession` as ``request.state.session`` and, when an
   identifier was recovered, replaces it with the session loaded from the
   store;
5. hooks the ASGI ``send`` channel twice: *before headers* appends the
   ``Set-Cookie`` header, *before body finalized* awaits the store write
   before the last body chunk is forwarded.

Invalid, unsigned or unknown cookies downgrade the request to anonymous.
Any other store failure on load propagates and the application is not
called.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import structlog
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from flysession.kernel.exceptions import SessionConfigurationException, SessionNotFoundException
from flysession.session.adapters.memory import InMemorySessionStore
from flysession.session.cookie import (
    CookieAttributes,
    append_set_cookie,
    decode,
    encode,
    encode_cleared,
    strip_prefix,
)
from flysession.session.manager import SessionManager
from flysession.session.ports.outbound import SessionStore
from flysession.session.session import HttpSession, SessionPolicy
from flysession.session.signer import Signer

logger = structlog.get_logger("flysession.session")

_DEFAULT_COOKIE_NAME = "session"

_STATE_KEY = "session"


def is_secure(scope: Scope, trust_proxy: bool) -> bool:
    """Return ``True`` if the request arrived over a secure connection.

    A direct TLS connection is always secure.  ``X-Forwarded-Proto`` is
    only consulted when *trust_proxy* is enabled; its first entry must
    start with ``https``.
    """
    if scope.get("scheme") in ("https", "wss"):
        return True
    if not trust_proxy:
        return False
    proto = Headers(scope=scope).get("x-forwarded-proto", "")
    return proto.split(",")[0].strip().lower().startswith("https")


def _is_final_body(message: Message) -> bool:
    if message["type"] == "http.response.body":
        return not message.get("more_body", False)
    return message["type"] == "http.response.pathsend"


class SessionMiddleware:
    """Attaches a signed-cookie server-side session to every HTTP request.

    Uses raw ASGI protocol instead of ``BaseHTTPMiddleware`` so the cookie is
    written exactly when the response starts and the session is saved before
    the final body chunk leaves, even for streaming responses.

    Args:
        app: The wrapped ASGI application.
        secret: Signing secret, or a sequence of secrets (first one signs).
        store: Session store; defaults to a new :class:`InMemorySessionStore`.
        name: Cookie name.
        generate_id: Identifier generator; defaults to UUID-4 strings.
        trust_proxy: Trust ``X-Forwarded-Proto`` when checking for HTTPS.
        cookie: Cookie attributes, as :class:`CookieAttributes` or a mapping
            of its field names.
        policy: ``persistent`` or ``transactional`` session policy.
        rolling: Reset the cookie expiry on every response of an active
            session; unchanged loaded sessions are touched, not rewritten.
    """

    def __init__(
        self,
        app: ASGIApp,
        secret: str | Sequence[str] | None = None,
        store: SessionStore | None = None,
        name: str = _DEFAULT_COOKIE_NAME,
        generate_id: Callable[[], str] | None = None,
        trust_proxy: bool = False,
        cookie: CookieAttributes | Mapping[str, Any] | None = None,
        policy: SessionPolicy | str = SessionPolicy.PERSISTENT,
        rolling: bool = False,
    ) -> None:
        self.app = app
        self._signer = Signer(secret) if secret else None
        self._name = name
        self._trust_proxy = trust_proxy
        self._rolling = rolling
        if isinstance(cookie, Mapping):
            cookie = CookieAttributes(**cookie)
        self._manager = SessionManager(
            store if store is not None else InMemorySessionStore(),
            generate_id=generate_id,
            cookie=cookie,
            policy=SessionPolicy(policy),
        )

    @property
    def manager(self) -> SessionManager:
        return self._manager

    @property
    def store(self) -> SessionStore:
        return self._manager.store

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state: dict[str, Any] = scope.setdefault("state", {})
        if state.get(_STATE_KEY) is not None:
            await self.app(scope, receive, send)
            return

        if self._signer is None:
            raise SessionConfigurationException("secret is missing. A secret is required")

        cookie_defaults = self._manager.cookie_defaults
        path: str = scope.get("path") or "/"
        if cookie_defaults.secure and not is_secure(scope, self._trust_proxy):
            raise SessionConfigurationException(
                "cookie.secure set but connection is not secure",
                context={"path": path, "trust_proxy": self._trust_proxy},
            )

        if self._manager.policy is SessionPolicy.PERSISTENT and not path.startswith(cookie_defaults.path):
            await self.app(scope, receive, send)
            return

        headers_started = False
        finalized = False

        async def send_with_session(message: Message) -> None:
            nonlocal headers_started, finalized
            if message["type"] == "http.response.start" and not headers_started:
                headers_started = True
                self._before_headers(state[_STATE_KEY], message)
            elif _is_final_body(message) and not finalized:
                finalized = True
                await self._before_finalize(state[_STATE_KEY])
            await send(message)

        session_id = self._recover_session_id(scope)
        state[_STATE_KEY] = self._manager.create_session()

        if session_id is not None:
            try:
                state[_STATE_KEY] = await self._manager.load(state[_STATE_KEY], session_id)
            except SessionNotFoundException:
                logger.debug("session_not_found", session_id=session_id, path=path)
            except Exception as exc:
                logger.error(
                    "session_load_failed",
                    session_id=session_id,
                    path=path,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise

        await self.app(scope, receive, send_with_session)

    def _recover_session_id(self, scope: Scope) -> str | None:
        """Return the verified identifier from the request cookie, if any."""
        cookie_header = "; ".join(Headers(scope=scope).getlist("cookie"))
        raw = decode(cookie_header, self._name)
        payload = strip_prefix(raw)
        if payload is None:
            if raw:
                logger.debug("session_cookie_unsigned", cookie_name=self._name)
            return None

        session_id = self._signer.unsign(payload)  # type: ignore[union-attr]
        if session_id is None:
            logger.debug("session_cookie_rejected", cookie_name=self._name)
        return session_id

    def _before_headers(self, session: HttpSession, message: Message) -> None:
        if session.should_set_cookie():
            if self._rolling:
                session.cookie.reset_expiry()
            signed = self._signer.sign(session.id)  # type: ignore[union-attr,arg-type]
            append_set_cookie(message, encode(self._name, signed, session.cookie))
        elif session.should_clear_cookie():
            append_set_cookie(message, encode_cleared(self._name, session.cookie))

    async def _before_finalize(self, session: HttpSession) -> None:
        if not session.should_save():
            return
        try:
            if self._rolling and not session.is_new and not session.is_modified():
                await self._manager.touch(session)
            else:
                await self._manager.save(session)
        except Exception as exc:
            # headers already sent
            logger.error(
                "session_save_failed",
                session_id=session.id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
