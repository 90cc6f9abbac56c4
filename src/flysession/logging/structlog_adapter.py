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
"""StructlogAdapter — default LoggingPort implementation using structlog."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, MutableMapping
from typing import Any

import structlog

from flysession.core.config import Config

DEFAULT_REDACTED_KEYS = frozenset({"secret", "secrets", "signed_value", "cookie_value"})

_MASK = "***"


class RedactSessionSecrets:
    """structlog processor that masks signing secrets and signed cookie values.

    Session identifiers stay readable; anything that would let a reader forge
    or replay a cookie does not.
    """

    def __init__(self, keys: Iterable[str] = DEFAULT_REDACTED_KEYS) -> None:
        self.keys = frozenset(keys)

    def __call__(self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        for key in self.keys & event_dict.keys():
            event_dict[key] = _MASK
        return event_dict


class StructlogAdapter:
    """Default logging adapter backed by structlog.

    Reads from ``flysession.logging``:

    - ``level.root`` and per-logger levels (``level.flysession.session: DEBUG``)
    - ``format``: ``console`` or ``json``
    - ``redact-keys``: event keys masked before rendering
    """

    def __init__(self) -> None:
        self._root_level = "INFO"
        self._format = "console"
        self._module_levels: dict[str, str] = {}
        self._redacted_keys: frozenset[str] = DEFAULT_REDACTED_KEYS

    def configure(self, config: Config) -> None:
        level_section = _flatten(config.get_section("flysession.logging.level"))
        self._root_level = str(level_section.pop("root", "INFO")).upper()
        self._module_levels = {name: str(level).upper() for name, level in level_section.items()}
        self._format = str(config.get("flysession.logging.format", "console")).lower()

        redact = config.get("flysession.logging.redact-keys")
        if isinstance(redact, str):
            redact = [key.strip() for key in redact.split(",") if key.strip()]
        if redact:
            self._redacted_keys = frozenset(redact)

        self._setup_structlog()
        for name, level in self._module_levels.items():
            self.set_level(name, level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        """Set the level of the stdlib logger structlog writes through."""
        logging.getLogger(name).setLevel(getattr(logging, level.upper(), logging.INFO))

    def _setup_structlog(self) -> None:
        processors: list[structlog.types.Processor] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            RedactSessionSecrets(self._redacted_keys),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
        ]
        if self._format == "json":
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.dev.ConsoleRenderer())

        structlog.configure(
            processors=processors,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=getattr(logging, self._root_level, logging.INFO),
            force=True,
        )


def _flatten(section: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    # nested maps become dotted logger names
    flat: dict[str, Any] = {}
    for key, value in section.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{name}."))
        elif value is not None:
            flat[name] = value
    return flat
