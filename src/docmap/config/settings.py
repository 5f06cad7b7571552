"""Unified settings — init kwargs, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — passed by the embedding application
  2. Env vars     — ``DOCMAP_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``docmap.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the path resolution from
:mod:`docmap.config.discovery`.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from docmap.config.discovery import read_toml, resolve_config_path
from docmap.config.models import DiagnosticsConfig, MongoConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``docmap.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            self._data = read_toml(toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class DocmapSettings(BaseSettings):
    """Connection, logging, and diagnostics settings for docmap.

    Attributes:
        config_path: TOML file the settings were read from, if any.
        verbose: DEBUG-level logging for the ``docmap`` logger.
        log_json: JSON lines instead of the console renderer.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "DOCMAP_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    verbose: bool = False
    log_json: bool = False

    mongo: MongoConfig = Field(default_factory=MongoConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def load(
        cls,
        *,
        config_path: str | Path | None = None,
        start: Path | None = None,
        **overrides: Any,
    ) -> DocmapSettings:
        """Construct settings from the environment and an optional TOML file.

        Reads *config_path* when given (a missing file means no TOML),
        otherwise discovers ``docmap.toml`` by walking up from *start*. Keyword
        *overrides* take priority over every other source.
        """
        toml_path = resolve_config_path(config_path, start)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None
