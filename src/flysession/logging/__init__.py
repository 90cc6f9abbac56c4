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
"""flysession logging — logging port, structlog adapter and bootstrap."""

from __future__ import annotations

from flysession.core.config import Config
from flysession.logging.port import LoggingPort
from flysession.logging.structlog_adapter import DEFAULT_REDACTED_KEYS, RedactSessionSecrets, StructlogAdapter


def configure_logging(config: Config, adapter: LoggingPort | None = None) -> LoggingPort:
    """Configure *adapter* (a :class:`StructlogAdapter` by default) from *config*."""
    adapter = adapter if adapter is not None else StructlogAdapter()
    adapter.configure(config)
    return adapter


__all__ = [
    "DEFAULT_REDACTED_KEYS",
    "LoggingPort",
    "RedactSessionSecrets",
    "StructlogAdapter",
    "configure_logging",
]
