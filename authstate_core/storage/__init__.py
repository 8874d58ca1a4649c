# authstate_core/storage/__init__.py

from .models import StorageRecord
from .provider import DocumentStore
from .providers.memory_provider import InMemoryStore
from .providers.sqlite_provider import SQLiteStore
from .providers.mongo_provider import MongoStore
from authstate_core.errors import SessionValidationError
import os


def load_storage_provider(config=None) -> DocumentStore:
    """
    Factory resolver for selecting the storage backend.

        - sqlite (default)
        - memory
        - mongo (needs the ``mongo`` extra)

    ``config`` is a SessionConfig or None; environment variables fill the gaps.
    """
    provider = getattr(config, "provider", None) or os.getenv("AUTHSTATE_STORAGE_PROVIDER", "sqlite")
    collection = getattr(config, "collection_name", None) or os.getenv("AUTHSTATE_COLLECTION", "baileys-auth")

    if provider == "memory":
        return InMemoryStore()

    if provider == "sqlite":
        db_path = getattr(config, "sqlite_path", None) or os.getenv("AUTHSTATE_DB_PATH", "db/authstate.db")
        return SQLiteStore(db_path, collection_name=collection)

    if provider == "mongo":
        uri = getattr(config, "mongo_uri", None) or os.getenv("AUTHSTATE_MONGO_URI")
        if not uri:
            raise SessionValidationError("MongoDB URI is required and must be a string")
        return MongoStore(
            uri,
            collection_name=collection,
            database_name=getattr(config, "database_name", None) or os.getenv("AUTHSTATE_DATABASE", "baileys"),
            options=getattr(config, "store_options", None),
        )

    raise SessionValidationError(f"Unknown storage provider: {provider}")


__all__ = [
    "StorageRecord",
    "DocumentStore",
    "InMemoryStore",
    "SQLiteStore",
    "MongoStore",
    "load_storage_provider",
]
