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
"""Session store protocol."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """Abstract session persistence interface.

    All session backends (in-memory, Redis, etc.) must implement this protocol.
    Records are JSON-compatible dicts whose ``cookie`` entry carries the
    serialized cookie attributes; backends derive the record lifetime from
    ``record["cookie"]["expires"]``.

    ``get`` raises :class:`~flysession.kernel.exceptions.SessionNotFoundException`
    for a missing or expired record; any other exception is a backend failure.
    """

    async def get(self, session_id: str) -> dict[str, Any]: ...

    async def set(self, session_id: str, record: dict[str, Any]) -> None: ...

    async def touch(self, session_id: str, record: dict[str, Any]) -> None:
        """Refresh the expiry of an existing record.

        The stored cookie attributes become ``record["cookie"]`` and the
        lifetime follows them; the stored payload is kept.  Unknown ids are
        ignored.
        """
        ...

    async def destroy(self, session_id: str) -> None: ...

    async def all(self) -> dict[str, dict[str, Any]]: ...
