"""Infrastructure layer — BSON codecs, scoping, transforms, MongoDB access.

This layer depends on stdlib and third-party libs (pymongo/bson, structlog).
The domain layer must never import from here.
"""
