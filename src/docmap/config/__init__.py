"""Configuration — field transform models, settings, discovery, logging."""

from docmap.config.logging import configure_from_settings, configure_logging
from docmap.config.models import DiagnosticsConfig, DocmapConfig, FieldConfig, MongoConfig
from docmap.config.settings import DocmapSettings

__all__ = [
    "DiagnosticsConfig",
    "DocmapConfig",
    "DocmapSettings",
    "FieldConfig",
    "MongoConfig",
    "configure_from_settings",
    "configure_logging",
]
