"""docmap — scoped document storage for MongoDB with declarative field transforms."""

from docmap.config.models import FieldConfig
from docmap.domain.records import Storage, StorageData
from docmap.errors import ConfigError, DocmapError, InvalidPathError, ScopeIntegrityError
from docmap.infrastructure.diagnostics import QueryLog
from docmap.infrastructure.scope import ScopeResolver
from docmap.infrastructure.storage import MongoStorage
from docmap.infrastructure.transform import TransformPipeline

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DocmapError",
    "FieldConfig",
    "InvalidPathError",
    "MongoStorage",
    "QueryLog",
    "ScopeIntegrityError",
    "ScopeResolver",
    "Storage",
    "StorageData",
    "TransformPipeline",
]
