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
"""Session subsystem configuration from a :class:`Config`."""

from __future__ import annotations

import importlib.util
from typing import Any

from flysession.core.config import Config
from flysession.session.adapters.memory import InMemorySessionStore
from flysession.session.ports.outbound import SessionStore
from flysession.session.properties import SessionProperties


def session_properties(config: Config) -> SessionProperties:
    """Bind ``flysession.session.*`` to :class:`SessionProperties`."""
    return config.bind(SessionProperties)


def session_store_from_config(config: Config) -> SessionStore:
    """Build the store named by ``flysession.session.store``.

    Falls back to the in-memory store when ``redis`` is requested but the
    ``redis`` package is not installed.
    """
    props = session_properties(config)

    if props.store == "redis" and importlib.util.find_spec("redis") is not None:
        import redis.asyncio as aioredis

        from flysession.session.adapters.redis import RedisSessionStore

        client = aioredis.from_url(props.redis_url)  # type: ignore[no-untyped-call,unused-ignore]
        return RedisSessionStore(client=client)

    return InMemorySessionStore()


def session_middleware_kwargs(config: Config, store: SessionStore | None = None) -> dict[str, Any]:
    """Return keyword arguments for :class:`SessionMiddleware`.

    Usage::

        app.add_middleware(SessionMiddleware, **session_middleware_kwargs(config))
    """
    props = session_properties(config)
    return {
        "secret": props.secret or None,
        "store": store if store is not None else session_store_from_config(config),
        "name": props.name,
        "trust_proxy": props.trust_proxy,
        "cookie": props.cookie.to_attributes(),
        "policy": props.policy,
        "rolling": props.rolling,
    }
