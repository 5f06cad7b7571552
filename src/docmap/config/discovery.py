"""Locate and parse ``docmap.toml``.

Resolution order: an explicit path handed in by the embedding
application, then the file named by ``DOCMAP_CONFIG``, then the first
``docmap.toml`` found walking up from the start directory (the way git
finds ``.git/``). A path that does not name an existing file resolves to
no config at all; code defaults then apply.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from docmap.config.models import DocmapConfig
from docmap.errors import ConfigError

CONFIG_FILENAME = "docmap.toml"
CONFIG_ENV_VAR = "DOCMAP_CONFIG"


def _existing(path: str | Path) -> Path | None:
    candidate = Path(path)
    return candidate if candidate.is_file() else None


def _walk_up(start: Path) -> Iterator[Path]:
    here = start.resolve()
    yield here
    yield from here.parents


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file for *start* (default: cwd), or None.

    ``DOCMAP_CONFIG`` wins over discovery when set, even if it names a
    missing file.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return _existing(env_path)

    for directory in _walk_up(start or Path.cwd()):
        found = _existing(directory / CONFIG_FILENAME)
        if found is not None:
            return found
    return None


def resolve_config_path(
    config_path: str | Path | None = None,
    start: Path | None = None,
) -> Path | None:
    """Pick the explicit *config_path* if given, else discover from *start*."""
    if config_path:
        return _existing(config_path)
    return find_config(start)


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path*, reporting syntax errors as ``ConfigError``."""
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise ConfigError(msg) from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> DocmapConfig:
    """Validate the TOML sections into a :class:`DocmapConfig`.

    Without a file every section keeps its code defaults.
    """
    resolved = resolve_config_path(path, cwd)
    if resolved is None:
        return DocmapConfig()
    return DocmapConfig.model_validate(read_toml(resolved))
