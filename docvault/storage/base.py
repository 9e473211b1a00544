"""
Storage Backend Abstract Base Class

This module defines the interface that all storage backends must implement.
Using the Strategy Pattern, we can swap storage implementations without
changing any processing logic.

Processing handlers only need three things from storage:
- get(key): download a source blob
- save(content, key, content_type): upload a generated artifact
- generate_key(user_id, filename): a fresh, collision-free key
"""
import uuid
import time
from abc import ABC, abstractmethod
from typing import Optional
from dataclasses import dataclass
from datetime import datetime

from docvault.utils.file_utils import sanitize_storage_name


@dataclass
class StoredFile:
    """
    Represents metadata about a stored file.

    Attributes:
        path: The storage key where file was saved
        size: File size in bytes
        content_type: MIME type of the file (e.g., "application/pdf")
        stored_at: When the file was stored
        checksum: Optional hash for integrity verification
    """
    path: str
    size: int
    content_type: str
    stored_at: datetime
    checksum: Optional[str] = None


class StorageError(Exception):
    """
    Base exception for storage operations.

    All storage-related errors inherit from this, allowing
    calling code to catch storage errors generically.
    """
    pass


class FileNotFoundError(StorageError):
    """Raised when a requested file doesn't exist."""
    pass


class StorageBackend(ABC):
    """
    Abstract base class for file storage backends.

    All storage implementations must inherit from this
    and implement all abstract methods.
    """

    @abstractmethod
    async def save(
        self,
        file_content: bytes,
        destination_path: str,
        content_type: Optional[str] = None
    ) -> StoredFile:
        """
        Save file content to storage.

        Args:
            file_content: Raw bytes of the file to store
            destination_path: Storage key
                Example: "user123/1718000000000-<uuid>-Page_1.pdf"
            content_type: MIME type of the file

        Returns:
            StoredFile with metadata about the saved file

        Raises:
            StorageError: If the file cannot be saved
        """
        pass

    @abstractmethod
    async def get(self, path: str) -> bytes:
        """
        Retrieve file content from storage.

        Raises:
            FileNotFoundError: If the file doesn't exist
            StorageError: If the file cannot be retrieved
        """
        pass

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """
        Delete a file from storage.

        Returns:
            True if file was deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if a file exists in storage."""
        pass

    @abstractmethod
    async def get_size(self, path: str) -> int:
        """
        Get the size of a file in bytes.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        pass

    def generate_key(self, user_id: str, filename: str) -> str:
        """
        Build a unique storage key for a new file.

        Format: {user_id}/{timestamp_ms}-{uuid}-{sanitized_filename}

        The timestamp keeps a user's keys roughly time-ordered; the
        uuid makes two uploads of "Page 1.pdf" in the same millisecond
        distinct.
        """
        timestamp = int(time.time() * 1000)
        return f"{user_id}/{timestamp}-{uuid.uuid4()}-{sanitize_storage_name(filename)}"
