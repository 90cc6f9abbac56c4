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
"""Tests for HttpSession lifecycle, policies and change detection."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from flysession.session.adapters.memory import InMemorySessionStore
from flysession.session.cookie import CookieAttributes
from flysession.session.manager import SessionManager
from flysession.session.session import (
    HttpSession,
    SessionPolicy,
    apply_cookie_policy,
    is_eligible,
)


def _counter_ids() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


def _manager(
    policy: SessionPolicy = SessionPolicy.PERSISTENT,
    cookie: CookieAttributes | None = None,
) -> SessionManager:
    return SessionManager(
        InMemorySessionStore(),
        generate_id=_counter_ids(),
        cookie=cookie,
        policy=policy,
    )


class TestEligibilityRules:
    def test_persistent_requires_id_and_flag(self) -> None:
        assert is_eligible(SessionPolicy.PERSISTENT, "abc", True) is True
        assert is_eligible(SessionPolicy.PERSISTENT, "abc", False) is False
        assert is_eligible(SessionPolicy.PERSISTENT, None, True) is False

    def test_transactional_requires_id_only(self) -> None:
        assert is_eligible(SessionPolicy.TRANSACTIONAL, "abc", False) is True
        assert is_eligible(SessionPolicy.TRANSACTIONAL, None, False) is False

    def test_transactional_forces_secure_cookie(self) -> None:
        attrs = apply_cookie_policy(SessionPolicy.TRANSACTIONAL, CookieAttributes(secure=False))
        assert attrs.secure is True

    def test_persistent_keeps_cookie(self) -> None:
        attrs = CookieAttributes(secure=False)
        assert apply_cookie_policy(SessionPolicy.PERSISTENT, attrs) is attrs


@pytest.mark.parametrize("policy", list(SessionPolicy))
class TestFreshSession:
    def test_is_not_eligible(self, policy: SessionPolicy) -> None:
        session = _manager(policy).create_session()
        assert session.id is None
        assert session.active is False
        assert session.should_save() is False
        assert session.should_set_cookie() is False
        assert session.should_clear_cookie() is False

    def test_predicates_do_not_mutate(self, policy: SessionPolicy) -> None:
        session = _manager(policy).create_session()
        before = (session.id, session.generated_or_loaded, session.get_data().copy())
        session.should_save()
        session.should_set_cookie()
        assert (session.id, session.generated_or_loaded, session.get_data()) == before


class TestPayload:
    def test_mapping_access(self) -> None:
        session = _manager().create_session()
        session["num"] = 1
        assert session["num"] == 1
        assert "num" in session
        assert session.get("missing", 7) == 7
        del session["num"]
        assert "num" not in session

    def test_attribute_accessors(self) -> None:
        session = _manager().create_session()
        session.set_attribute("user", "alice")
        assert session.get_attribute("user") == "alice"
        assert session.get_attribute_names() == ["user"]
        session.remove_attribute("user")
        session.remove_attribute("user")
        assert session.get_attribute("user") is None

    def test_cookie_key_is_reserved(self) -> None:
        session = _manager().create_session()
        with pytest.raises(KeyError):
            session["cookie"] = {}

    def test_behaviour_never_appears_in_payload(self) -> None:
        session = _manager().create_session()
        session["num"] = 1
        record = session.to_record()
        assert set(record) == {"num", "cookie"}
        for name in ("hash", "should_save", "should_set_cookie", "generate", "inflate", "destroy", "original_hash"):
            assert name not in session.get_data()


class TestGenerate:
    @pytest.mark.asyncio
    async def test_generate_makes_session_eligible(self) -> None:
        session = _manager().create_session()
        result = await session.generate()
        assert result is session
        assert session.id == "id-1"
        assert session.is_new is True
        assert session.generated_or_loaded is True
        assert session.should_save() is True
        assert session.should_set_cookie() is True

    @pytest.mark.asyncio
    async def test_transactional_generate(self) -> None:
        session = _manager(SessionPolicy.TRANSACTIONAL).create_session()
        await session.generate()
        assert session.active is True
        assert session.cookie.secure is True

    @pytest.mark.asyncio
    async def test_regenerate_yields_new_id_and_destroys_old(self) -> None:
        manager = _manager()
        session = manager.create_session()
        await session.generate()
        first_id = session.id
        session["num"] = 1
        await manager.save(session)

        await session.generate()

        assert session.id != first_id
        assert session.get_data() == {}
        assert first_id not in await manager.store.all()

    @pytest.mark.asyncio
    async def test_generate_resets_cookie_to_defaults(self) -> None:
        manager = _manager(cookie=CookieAttributes(path="/app", max_age=60))
        session = manager.create_session()
        session.cookie.path = "/changed"
        await session.generate()
        assert session.cookie.path == "/app"
        assert session.cookie.max_age == 60
        assert session.cookie.expires is not None


class TestInflate:
    def test_inflate_returns_new_active_session(self) -> None:
        session = _manager().create_session()
        loaded = session.inflate({"foo": "foo", "cookie": {}}, session_id="1")
        assert loaded is not session
        assert loaded.id == "1"
        assert loaded.active is True
        assert loaded.is_new is False
        assert loaded["foo"] == "foo"
        assert "cookie" not in loaded.get_data()
        assert session.active is False

    def test_inflate_reconstitutes_string_expiry(self) -> None:
        session = _manager().create_session()
        stamp = "2030-06-01T10:30:00+00:00"
        loaded = session.inflate({"cookie": {"expires": stamp, "max_age": 3600}}, session_id="1")
        assert isinstance(loaded.cookie.expires, datetime)
        assert loaded.cookie.expires == datetime.fromisoformat(stamp)
        assert loaded.cookie.max_age == 3600

    def test_inflate_without_cookie_uses_defaults(self) -> None:
        session = _manager(cookie=CookieAttributes(path="/x")).create_session()
        loaded = session.inflate({"foo": 1}, session_id="1")
        assert loaded.cookie.path == "/x"

    def test_transactional_inflate_forces_secure(self) -> None:
        session = _manager(SessionPolicy.TRANSACTIONAL).create_session()
        loaded = session.inflate({"cookie": {"secure": False}}, session_id="1")
        assert loaded.active is True
        assert loaded.cookie.secure is True

    def test_inflate_round_trips_record(self) -> None:
        manager = _manager(cookie=CookieAttributes(max_age=60, expires=datetime(2030, 1, 1, tzinfo=UTC)))
        source = manager.create_session().inflate({"num": 2}, session_id="1")
        again = source.inflate(source.to_record(), session_id="1")
        assert again.get_data() == {"num": 2}
        assert again.cookie == source.cookie


class TestDestroy:
    @pytest.mark.asyncio
    async def test_destroy_removes_from_store(self) -> None:
        manager = _manager()
        session = manager.create_session()
        await session.generate()
        await manager.save(session)
        session_id = session.id

        await session.destroy()

        assert session.id is None
        assert session.active is False
        assert session.should_clear_cookie() is True
        assert session_id not in await manager.store.all()

    @pytest.mark.asyncio
    async def test_destroy_inactive_session_is_noop(self) -> None:
        manager = _manager()
        session = manager.create_session()
        await session.destroy()
        await session.destroy()
        assert session.active is False
        assert session.should_clear_cookie() is False

    @pytest.mark.asyncio
    async def test_generate_after_destroy_sets_cookie_not_clear(self) -> None:
        session = _manager().create_session()
        await session.generate()
        await session.destroy()
        await session.generate()
        assert session.should_set_cookie() is True
        assert session.should_clear_cookie() is False


class TestHash:
    def test_hash_is_consistent(self) -> None:
        session = HttpSession(_manager(), {"foo": "foo"})
        assert session.hash() == session.hash()

    def test_identical_data_hashes_equal(self) -> None:
        manager = _manager()
        assert HttpSession(manager, {"foo": "foo"}).hash() == HttpSession(manager, {"foo": "foo"}).hash()

    def test_hash_ignores_key_order(self) -> None:
        manager = _manager()
        assert HttpSession(manager, {"a": 1, "b": 2}).hash() == HttpSession(manager, {"b": 2, "a": 1}).hash()

    def test_hash_ignores_cookie_and_identifier(self) -> None:
        data = {"foo": "foo"}
        s1 = HttpSession(_manager(), data, session_id="1", cookie=CookieAttributes(max_age=100))
        s2 = HttpSession(_manager(), data, session_id="2", cookie=CookieAttributes(path="/other", secure=True))
        assert s1.hash() == s2.hash()

    def test_hash_changes_with_data(self) -> None:
        manager = _manager()
        assert HttpSession(manager, {"foo": 1}).hash() != HttpSession(manager, {"foo": 2}).hash()

    def test_original_hash_captured_at_construction(self) -> None:
        session = HttpSession(_manager(), {"foo": "foo"})
        assert session.original_hash == session.hash()
        assert session.is_modified() is False
        session["foo"] = "bar"
        assert session.is_modified() is True
