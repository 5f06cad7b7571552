"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, docmap.toml only contains
overrides. ``FieldConfig`` is not read from TOML; storage types declare it
in code because it describes the shape of their documents.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from docmap.domain.paths import split_path

# --- Per storage type field transforms ---


class FieldConfig(BaseModel):
    """Declarative field transforms for one storage type.

    Every entry is a path pattern (``*`` matches any key or index) except
    ``defaults``, whose keys are exact paths.

    Attributes:
        dates: Integer epoch seconds in the body, BSON datetime on the wire.
        uuids: Canonical UUID strings in the body, UUID binary on the wire.
        pools: ``{"current", "pool"}`` pairs flushed through ``$inc``.
        references: Pattern to alias; ``{"alias", "id"}`` in the body,
            bare id on the wire.
        ignore: Paths dropped on both read and write.
        defaults: Values filled in on read when the path is absent.
    """

    model_config = {"frozen": True}

    dates: tuple[str, ...] = ()
    uuids: tuple[str, ...] = ()
    pools: tuple[str, ...] = ()
    references: dict[str, str] = Field(default_factory=dict)
    ignore: tuple[str, ...] = ()
    defaults: dict[str, Any] = Field(default_factory=dict)

    @field_validator("dates", "uuids", "pools", "ignore")
    @classmethod
    def _check_patterns(cls, patterns: tuple[str, ...]) -> tuple[str, ...]:
        for pattern in patterns:
            split_path(pattern)
        return patterns

    @field_validator("references", "defaults")
    @classmethod
    def _check_keys(cls, mapping: dict[str, Any]) -> dict[str, Any]:
        for path in mapping:
            split_path(path)
        return mapping


# --- docmap.toml sections ---


class MongoConfig(BaseModel):
    """[mongo] section."""

    model_config = {"frozen": True}

    uri: str = "mongodb://localhost:27017"
    database: str = "docmap"
    app_name: str = "docmap"
    tz_aware: bool = True
    server_selection_timeout_ms: int = 30000


class DiagnosticsConfig(BaseModel):
    """[diagnostics] section."""

    model_config = {"frozen": True}

    log_queries: bool = False


class DocmapConfig(BaseModel):
    """Root configuration composing all TOML sections."""

    model_config = {"frozen": True}

    mongo: MongoConfig = Field(default_factory=MongoConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
