"""
Storage abstraction layer for the property registry.

Pluggable backends for persisting the registry snapshot:

- JSON file (default), optionally encrypted at rest
- Memory (for testing)

Usage:
    from storage import get_storage_backend

    storage = get_storage_backend()
    storage.save_state({"state": registry.to_dict(), "clock": clock.height})
    data = storage.load_state()
"""

import os

from encryption import is_encryption_enabled
from storage.base import (
    StorageBackend,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from storage.json_file import JSONFileStorage
from storage.memory import MemoryStorage

__all__ = [
    "JSONFileStorage",
    "MemoryStorage",
    "StorageBackend",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "get_storage_backend",
]


def get_storage_backend() -> StorageBackend:
    """
    Get the configured storage backend based on environment variables.

    Environment variables:
        STORAGE_BACKEND: Backend type ("json", "memory")
        REGISTRY_DATA_FILE: Path for JSON file storage (default: registry_data.json)
        PROPERTY_REGISTRY_ENCRYPTION_KEY: Enables encryption at rest when set

    Returns:
        Configured StorageBackend instance

    Raises:
        StorageError: If the backend type is unknown
    """
    backend_type = os.getenv("STORAGE_BACKEND", "json").lower()

    if backend_type == "json":
        data_file = os.getenv("REGISTRY_DATA_FILE", "registry_data.json")
        return JSONFileStorage(data_file, encryption_enabled=is_encryption_enabled())

    elif backend_type == "memory":
        return MemoryStorage()

    else:
        raise StorageError(f"Unknown storage backend: {backend_type}")
