# custody_core/storage/__init__.py

from .models import AuthRecord
from .provider import StorageProvider
from .providers.memory_provider import InMemoryStorage
from .providers.sqlite_provider import SQLiteStorage
from custody_core.constants import DEFAULT_DB_PATH, DEFAULT_STORAGE_PROVIDER
from custody_core.errors import ConfigError
import os


def load_storage_provider(config: dict | None = None) -> StorageProvider:
    """
    Factory resolver for selecting the runtime storage backend.

        - sqlite (default)
        - memory
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("CUSTODY_STORAGE_PROVIDER", DEFAULT_STORAGE_PROVIDER)

    if provider == "memory":
        return InMemoryStorage()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("CUSTODY_DB_PATH", DEFAULT_DB_PATH)
        return SQLiteStorage(db_path)

    raise ConfigError(f"Unknown storage provider: {provider}")


__all__ = [
    "AuthRecord",
    "StorageProvider",
    "InMemoryStorage",
    "SQLiteStorage",
    "load_storage_provider",
]
