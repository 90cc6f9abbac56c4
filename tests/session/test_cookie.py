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
"""Tests for cookie attributes and the session cookie codec."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from flysession.session.cookie import (
    SIGNED_PREFIX,
    CookieAttributes,
    append_set_cookie,
    decode,
    encode,
    encode_cleared,
    strip_prefix,
)


class TestCookieAttributes:
    def test_defaults(self) -> None:
        attrs = CookieAttributes()
        assert attrs.path == "/"
        assert attrs.max_age is None
        assert attrs.expires is None
        assert attrs.secure is False
        assert attrs.http_only is True

    def test_max_age_derives_expiry(self) -> None:
        before = datetime.now(UTC)
        attrs = CookieAttributes(max_age=60)
        assert attrs.expires is not None
        assert before + timedelta(seconds=59) <= attrs.expires <= datetime.now(UTC) + timedelta(seconds=60)

    def test_explicit_expiry_is_kept(self) -> None:
        expires = datetime(2030, 1, 1, tzinfo=UTC)
        attrs = CookieAttributes(max_age=60, expires=expires)
        assert attrs.expires == expires

    def test_remaining_max_age(self) -> None:
        attrs = CookieAttributes(expires=datetime.now(UTC) + timedelta(seconds=100))
        assert 98 <= attrs.remaining_max_age <= 100

    def test_remaining_max_age_never_negative(self) -> None:
        attrs = CookieAttributes(expires=datetime.now(UTC) - timedelta(seconds=100))
        assert attrs.remaining_max_age == 0
        assert attrs.expired is True

    def test_reset_expiry_rolls_forward(self) -> None:
        attrs = CookieAttributes(max_age=3600, expires=datetime.now(UTC) + timedelta(seconds=5))
        attrs.reset_expiry()
        assert attrs.remaining_max_age > 3500

    def test_invalid_same_site(self) -> None:
        with pytest.raises(ValueError):
            CookieAttributes(same_site="sometimes")

    def test_same_site_is_normalised(self) -> None:
        assert CookieAttributes(same_site="Lax").same_site == "lax"

    def test_to_dict_serializes_expiry_as_string(self) -> None:
        expires = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)
        data = CookieAttributes(max_age=60, expires=expires).to_dict()
        assert data["expires"] == "2030-01-01T12:00:00+00:00"
        assert data["max_age"] == 60

    def test_from_dict_parses_string_expiry(self) -> None:
        attrs = CookieAttributes.from_dict({"expires": "2030-01-01T12:00:00.000Z", "max_age": 60})
        assert attrs.expires == datetime(2030, 1, 1, 12, 0, tzinfo=UTC)
        assert attrs.max_age == 60

    def test_from_dict_naive_expiry_is_utc(self) -> None:
        attrs = CookieAttributes.from_dict({"expires": "2030-01-01T12:00:00"})
        assert attrs.expires == datetime(2030, 1, 1, 12, 0, tzinfo=UTC)

    def test_from_dict_restores_every_field(self) -> None:
        original = CookieAttributes(
            path="/app",
            max_age=120,
            secure=True,
            http_only=False,
            domain="example.com",
            same_site="strict",
        )
        assert CookieAttributes.from_dict(original.to_dict()) == original

    def test_from_dict_unreadable_expiry_falls_back_to_max_age(self) -> None:
        before = datetime.now(UTC)
        attrs = CookieAttributes.from_dict({"expires": "garbage", "max_age": 60})
        assert attrs.expires is not None
        assert before + timedelta(seconds=59) <= attrs.expires <= datetime.now(UTC) + timedelta(seconds=60)

    def test_from_dict_unreadable_expiry_without_max_age(self) -> None:
        assert CookieAttributes.from_dict({"expires": "garbage"}).expires is None
        assert CookieAttributes.from_dict({"expires": 12345}).expires is None


class TestEncode:
    def test_encodes_prefix_and_attributes(self) -> None:
        attrs = CookieAttributes(path="/", secure=True, http_only=True, same_site="lax")
        header = encode("session", "abc.MAC", attrs)
        assert header == "session=s%3Aabc.MAC; Path=/; HttpOnly; Secure; SameSite=Lax"

    def test_percent_encodes_base64_characters(self) -> None:
        header = encode("session", "id.a+b/c", CookieAttributes())
        assert header.startswith("session=s%3Aid.a%2Bb%2Fc;")

    def test_includes_max_age_and_expires(self) -> None:
        expires = datetime.now(UTC) + timedelta(seconds=60)
        header = encode("sid", "x.y", CookieAttributes(max_age=60, expires=expires))
        assert "Max-Age=" in header
        assert "Expires=" in header
        assert header.split("Expires=")[1].split(";")[0].endswith("GMT")

    def test_includes_domain(self) -> None:
        header = encode("sid", "x.y", CookieAttributes(domain="example.com"))
        assert "Domain=example.com" in header

    def test_cleared_cookie_expires_in_the_past(self) -> None:
        header = encode_cleared("sid", CookieAttributes(path="/app"))
        assert header.startswith("sid=;")
        assert "Max-Age=0" in header
        assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in header
        assert "Path=/app" in header


class TestDecode:
    def test_absent_header(self) -> None:
        assert decode(None, "session") is None
        assert decode("", "session") is None

    def test_absent_key(self) -> None:
        assert decode("other=1; foo=bar", "session") is None

    def test_extracts_named_value(self) -> None:
        assert decode("a=1; session=s%3Aabc.MAC; b=2", "session") == "s:abc.MAC"

    def test_value_with_embedded_equals(self) -> None:
        assert decode("session=s:abc.MAC==; other=1", "session") == "s:abc.MAC=="

    def test_first_duplicate_wins(self) -> None:
        assert decode("session=first; session=second", "session") == "first"
        assert decode("a=1; session=first; b=2; session=second", "session") == "first"

    def test_decode_reverses_encode(self) -> None:
        header = encode("session", "id.a+b/c", CookieAttributes())
        cookie_pair = header.split(";")[0]
        assert decode(cookie_pair, "session") == SIGNED_PREFIX + "id.a+b/c"


class TestStripPrefix:
    def test_signed_value(self) -> None:
        assert strip_prefix("s:abc.MAC") == "abc.MAC"

    @pytest.mark.parametrize("raw", [None, "", "abc.MAC", "j:{}", "S:abc"])
    def test_unsigned_value_is_absent(self, raw: str | None) -> None:
        assert strip_prefix(raw) is None


class TestAppendSetCookie:
    def test_appends_to_existing_headers(self) -> None:
        message = {
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"set-cookie", b"other=1"), (b"content-type", b"text/plain")],
        }
        append_set_cookie(message, "session=s%3Aabc")
        cookies = [v for k, v in message["headers"] if k == b"set-cookie"]
        assert cookies == [b"other=1", b"session=s%3Aabc"]

    def test_creates_header_list_when_missing(self) -> None:
        message = {"type": "http.response.start", "status": 200}
        append_set_cookie(message, "session=s%3Aabc")
        assert message["headers"] == [(b"set-cookie", b"session=s%3Aabc")]
