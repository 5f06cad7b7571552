"""Query log — a human-readable trace of the commands a storage issues.

One line per driver call, shaped like a shell command::

    users.find({"_id.tenant":"t1","_id.id":"42"}).limit(1)

Near-zero overhead when disabled: storages without a ``QueryLog`` skip
formatting entirely. Serialization never raises; values JSON cannot
represent are rendered through ``bson.json_util`` or ``str``.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterator, Mapping
from typing import Any

import structlog
from bson import json_util

_log = structlog.get_logger("docmap.diagnostics")


def _json_default(value: Any) -> Any:
    try:
        return json_util.default(value)
    except (TypeError, ValueError):
        return str(value)


def to_json(value: Any) -> str:
    """Compact JSON for a filter or option value; lossy but total."""
    try:
        return json.dumps(
            value, ensure_ascii=False, separators=(",", ":"), default=_json_default
        )
    except (TypeError, ValueError):
        return repr(value)


def format_command(
    collection: str,
    operation: str,
    filter: Any = None,
    options: Mapping[str, Any] | None = None,
) -> str:
    """Render ``<collection>.<operation>(<filter>)[.<option>(<value>)...]``."""
    chain = [f"{collection}.{operation}({to_json(filter if filter is not None else {})})"]
    for name, value in (options or {}).items():
        chain.append(f"{name}({to_json(value)})")
    return ".".join(chain)


class QueryLog:
    """Append-only, clearable buffer of formatted commands.

    Safe to share between storages and threads. Every recorded line is
    also emitted as a ``query.recorded`` debug event.
    """

    def __init__(self) -> None:
        self._entries: list[str] = []
        self._lock = threading.Lock()

    def record(
        self,
        collection: str,
        operation: str,
        filter: Any = None,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        command = format_command(collection, operation, filter, options)
        with self._lock:
            self._entries.append(command)
        _log.debug("query.recorded", command=command)
        return command

    @property
    def entries(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)
