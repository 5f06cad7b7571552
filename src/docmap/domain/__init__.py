"""Domain layer — records, path patterns, and the nested document model.

This layer depends only on stdlib and pydantic.
It must never import from infrastructure or config.
"""
