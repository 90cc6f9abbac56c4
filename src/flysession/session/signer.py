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
"""HMAC signing of session identifiers.

A signed value has the form ``<value>.<mac>`` where ``mac`` is the
HMAC-SHA256 of ``value`` keyed with the secret, encoded in standard base64
with the ``=`` padding removed.  Verification uses a timing-safe
comparison and reports failure as ``None`` rather than raising.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from collections.abc import Sequence


def _mac(value: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii").rstrip("=")


def sign(value: str, secret: str) -> str:
    """Return *value* with its HMAC signature appended.

    Args:
        value: The identifier to sign.
        secret: The signing secret.

    Returns:
        ``"<value>.<signature>"``.
    """
    return f"{value}.{_mac(value, secret)}"


def unsign(signed: str, secret: str | Sequence[str]) -> str | None:
    """Verify *signed* against one or more secrets.

    Args:
        signed: A value previously produced by :func:`sign`.
        secret: A secret, or a sequence of accepted secrets.

    Returns:
        The original value if any secret validates the signature,
        otherwise ``None``.  Malformed input also yields ``None``.
    """
    if not isinstance(signed, str) or "." not in signed:
        return None

    value, _, provided = signed.rpartition(".")
    candidates = [secret] if isinstance(secret, str) else list(secret)

    matched = False
    for candidate in candidates:
        # no early exit: every secret is checked
        if hmac.compare_digest(provided.encode("utf-8"), _mac(value, candidate).encode("utf-8")):
            matched = True
    return value if matched else None


class Signer:
    """Signs with the first configured secret and verifies against all of them.

    Holding several secrets allows rotation: new cookies are signed with the
    newest secret while cookies signed with older ones remain valid.
    """

    def __init__(self, secrets: str | Sequence[str]) -> None:
        self._secrets = [secrets] if isinstance(secrets, str) else list(secrets)
        if not self._secrets or not all(self._secrets):
            raise ValueError("Signer requires at least one non-empty secret")

    @property
    def secrets(self) -> list[str]:
        return list(self._secrets)

    def sign(self, value: str) -> str:
        return sign(value, self._secrets[0])

    def unsign(self, signed: str) -> str | None:
        return unsign(signed, self._secrets)
