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
"""Bindable session settings under the ``flysession.session`` prefix."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flysession.core.config import config_properties
from flysession.session.cookie import CookieAttributes
from flysession.session.session import SessionPolicy


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class CookieProperties(BaseModel):
    """``flysession.session.cookie.*``"""

    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True)

    path: str = "/"
    secure: bool = False
    max_age: int | None = Field(default=None, ge=0)
    http_only: bool = True
    domain: str | None = None
    same_site: Literal["lax", "strict", "none"] | None = None

    def to_attributes(self) -> CookieAttributes:
        return CookieAttributes(
            path=self.path,
            max_age=self.max_age,
            secure=self.secure,
            http_only=self.http_only,
            domain=self.domain,
            same_site=self.same_site,
        )


@config_properties(prefix="flysession.session")
class SessionProperties(BaseModel):
    """Session settings.

    ``secret`` may be a single string or a list; a comma-separated string
    (as supplied through ``FLYSESSION_SESSION_SECRET``) is split into a list.
    """

    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True)

    secret: list[str] = Field(default_factory=list)
    name: str = "session"
    store: Literal["memory", "redis"] = "memory"
    trust_proxy: bool = False
    policy: SessionPolicy = SessionPolicy.PERSISTENT
    rolling: bool = False
    redis_url: str = "redis://localhost:6379/0"
    cookie: CookieProperties = Field(default_factory=CookieProperties)

    @field_validator("secret", mode="before")
    @classmethod
    def _split_secret(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value
