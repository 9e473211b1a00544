"""
Storage Module

This module provides file storage abstraction using the Strategy Pattern.
The active backend is determined by configuration (STORAGE_BACKEND setting).

Adding New Backends:
-------------------
1. Create new file: storage/s3.py
2. Implement S3Storage(StorageBackend)
3. Add to _create_storage_backend()
4. Set STORAGE_BACKEND=s3 in config
"""

from docvault.storage.base import (
    StorageBackend,
    StoredFile,
    StorageError,
    FileNotFoundError,
)
from docvault.storage.local import LocalStorage
from docvault.core.config import settings

# Module-level storage instance (singleton)
_storage_instance: StorageBackend | None = None


def get_storage() -> StorageBackend:
    """
    Factory function that returns the configured storage backend.

    Uses singleton pattern - creates instance once, reuses it.

    Raises:
        ValueError: If STORAGE_BACKEND is not a valid option
    """
    global _storage_instance

    if _storage_instance is None:
        _storage_instance = _create_storage_backend()

    return _storage_instance


def _create_storage_backend() -> StorageBackend:
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "local":
        return LocalStorage(base_path=settings.UPLOAD_DIR)

    raise ValueError(
        f"Unknown storage backend: {backend}. "
        f"Valid options: local"
    )


def reset_storage() -> None:
    """
    Reset the storage singleton.

    After calling this, the next get_storage() call
    will create a new instance with current config.
    """
    global _storage_instance
    _storage_instance = None


__all__ = [
    "get_storage",
    "reset_storage",
    "StorageBackend",
    "StoredFile",
    "StorageError",
    "FileNotFoundError",
    "LocalStorage",
]
