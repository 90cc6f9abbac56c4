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
"""Layered configuration: packaged defaults, YAML/TOML files, profiles, env vars.

Keys use dot notation (``flysession.session.cookie.max-age``).  Every key can
be overridden from the environment: the leading ``flysession.`` is dropped,
dots and dashes become underscores and ``FLYSESSION_`` is prepended, so the
key above maps to ``FLYSESSION_SESSION_COOKIE_MAX_AGE``.
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar, cast, get_type_hints

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

T = TypeVar("T")

ENV_PREFIX = "FLYSESSION_"

PROFILES_ENV = "FLYSESSION_PROFILES_ACTIVE"

_PREFIX_ATTR = "__flysession_config_prefix__"

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")

_MAX_PLACEHOLDER_DEPTH = 10

_MISSING = object()


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Bind a pydantic model or dataclass to the config subtree at *prefix*.

    Usage:
        @config_properties(prefix="flysession.session")
        class SessionProperties(BaseModel):
            name: str = "session"
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _PREFIX_ATTR, prefix)
        return cls

    return decorator


def env_key(key: str) -> str:
    """Return the environment variable that overrides dotted *key*."""
    name = key.removeprefix("flysession.")
    return ENV_PREFIX + re.sub(r"[.\-]", "_", name).upper()


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    node: Any = data
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return _MISSING
        node = node[part]
    return _MISSING if node is None else node


def _merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def _read(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        with path.open("rb") as fh:
            return tomllib.load(fh)
    with path.open() as fh:
        return yaml.safe_load(fh) or {}


def _coerce(value: Any, hint: Any) -> Any:
    if not isinstance(value, str):
        return value
    if hint is bool:
        return value.strip().lower() in ("true", "1", "yes", "on")
    if hint in (int, float):
        return hint(value)
    return value


class Config:
    """Hierarchical configuration with dot-notation access.

    Priority (highest wins):

    1. ``FLYSESSION_*`` environment variables
    2. profile overlays, then the configuration file (or the dict given)
    3. packaged defaults (``flysession/resources/flysession-defaults.yaml``)
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """Files merged into this config, lowest priority first."""
        return list(self._sources)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        active_profiles: list[str] | None = None,
        load_defaults: bool = True,
    ) -> Config:
        """Load *path* (YAML, or TOML by suffix) on top of the packaged defaults.

        For each active profile an overlay ``{stem}-{profile}{suffix}`` next to
        *path* is merged when it exists.  Without *active_profiles* the
        comma-separated ``FLYSESSION_PROFILES_ACTIVE`` variable is used.
        A missing *path* is not an error.
        """
        path = Path(path)
        if active_profiles is None:
            active_profiles = [p.strip() for p in os.environ.get(PROFILES_ENV, "").split(",") if p.strip()]

        data: dict[str, Any] = {}
        sources: list[str] = []
        if load_defaults:
            data = cls._library_defaults()
            sources.append("flysession-defaults.yaml (library defaults)")

        if path.exists():
            data = _merge(data, _read(path))
            sources.append(str(path))
            for profile in active_profiles:
                overlay = path.with_name(f"{path.stem}-{profile}{path.suffix}")
                if overlay.exists():
                    data = _merge(data, _read(overlay))
                    sources.append(f"{overlay} (profile: {profile})")

        config = cls(data)
        config._sources = sources
        return config

    @staticmethod
    def _library_defaults() -> dict[str, Any]:
        resource = importlib.resources.files("flysession.resources").joinpath("flysession-defaults.yaml")
        return yaml.safe_load(resource.read_text(encoding="utf-8")) or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at dotted *key*, or *default*.

        An environment override wins over the stored value.  String values
        have their ``${...}`` placeholders resolved:

        - ``${ENV_VAR}`` from the environment
        - ``${config.key}`` from another config value
        - ``${name:fallback}`` with a fallback when neither exists
        """
        override = os.environ.get(env_key(key))
        if override is not None:
            return override

        value = _lookup(self._data, key)
        if value is _MISSING:
            return default
        if isinstance(value, str) and "${" in value:
            return self._interpolate(value)
        return value

    def _interpolate(self, value: str, depth: int = 0) -> str:
        if depth > _MAX_PLACEHOLDER_DEPTH:
            raise ValueError(
                f"Max recursion depth exceeded resolving placeholders in '{value}'. Check for circular references."
            )

        def substitute(match: re.Match[str]) -> str:
            name, _, fallback = match.group(1).partition(":")
            if name in os.environ:
                return os.environ[name]
            found = _lookup(self._data, name)
            if found is not _MISSING:
                text = str(found)
                return self._interpolate(text, depth + 1) if "${" in text else text
            if ":" in match.group(1):
                return fallback
            raise ValueError(f"Cannot resolve placeholder '${{{match.group(1)}}}': not found in environment or config")

        return _PLACEHOLDER.sub(substitute, value)

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Return the subtree at *prefix* with overrides and placeholders applied.

        Environment overrides apply only to keys present in the subtree.
        """
        section = _lookup(self._data, prefix)
        if not isinstance(section, Mapping):
            return {}
        return self._resolve(prefix, section)

    def _resolve(self, prefix: str, section: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: self._resolve(f"{prefix}.{key}", value)
            if isinstance(value, Mapping)
            else self.get(f"{prefix}.{key}", value)
            for key, value in section.items()
        }

    def bind(self, config_cls: type[T]) -> T:
        """Build a ``@config_properties`` class from its config subtree.

        Pydantic models go through ``model_validate``; dataclasses get their
        scalar fields coerced from strings.

        Raises:
            ValueError: If the class is not decorated, or validation fails.
        """
        prefix = getattr(config_cls, _PREFIX_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        section = self.get_section(prefix)
        if issubclass(config_cls, BaseModel):
            try:
                return cast(T, config_cls.model_validate(section))
            except ValidationError as exc:
                raise ValueError(
                    f"Configuration validation failed for '{config_cls.__name__}' (prefix='{prefix}'):\n{exc}"
                ) from exc

        hints = get_type_hints(config_cls)
        values = {
            field.name: _coerce(section[field.name], hints.get(field.name))
            for field in dataclasses.fields(config_cls)  # type: ignore[arg-type]
            if field.name in section
        }
        return config_cls(**values)
