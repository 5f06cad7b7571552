"""MongoDB client setup from :class:`DocmapSettings`.

The client is created with ``uuidRepresentation="standard"`` so UUID
binaries decode to ``uuid.UUID`` and with ``tz_aware`` per settings;
the codecs accept both these and the raw driver types.

MongoClient connects lazily; nothing here performs a round trip.
"""

from __future__ import annotations

from typing import Any

from pymongo import MongoClient
from pymongo.database import Database

from docmap.config.settings import DocmapSettings
from docmap.infrastructure.diagnostics import QueryLog


def create_client(settings: DocmapSettings, **overrides: Any) -> MongoClient[dict[str, Any]]:
    """Create a client for ``settings.mongo.uri``; *overrides* go to MongoClient."""
    mongo = settings.mongo
    kwargs: dict[str, Any] = {
        "appname": mongo.app_name,
        "tz_aware": mongo.tz_aware,
        "uuidRepresentation": "standard",
        "serverSelectionTimeoutMS": mongo.server_selection_timeout_ms,
    }
    kwargs.update(overrides)
    return MongoClient(mongo.uri, **kwargs)


def get_database(
    settings: DocmapSettings, client: MongoClient[dict[str, Any]]
) -> Database[dict[str, Any]]:
    return client[settings.mongo.database]


def create_query_log(settings: DocmapSettings) -> QueryLog | None:
    """A fresh QueryLog when ``[diagnostics] log_queries`` is on, else None."""
    if settings.diagnostics.log_queries:
        return QueryLog()
    return None
