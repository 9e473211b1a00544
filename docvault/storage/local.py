"""
Local Filesystem Storage Backend

This implementation stores blobs on the local filesystem.
Perfect for:
- Development environments
- Single-server deployments
- Tests (point it at a temporary directory)

Directory Structure:
-------------------
{base_path}/
├── {user_id}/
│   └── {timestamp_ms}-{uuid}-{filename}
└── thumbnails/
    └── {user_id}/
        └── {file_id}.pdf
"""

import hashlib
import logging
import aiofiles
import aiofiles.os
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional

from docvault.storage.base import (
    StorageBackend,
    StoredFile,
    StorageError,
    FileNotFoundError as StorageFileNotFoundError,
)

logger = logging.getLogger(__name__)


class LocalStorage(StorageBackend):
    """
    Local filesystem storage implementation.

    Uses async file I/O to avoid blocking the event loop while
    workers are processing other jobs.

    Attributes:
        base_path: Root directory for all file storage
    """

    def __init__(self, base_path: str):
        """
        Initialize local storage with a base directory.

        Args:
            base_path: Root directory for storage. Will be created if
                      it doesn't exist.
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

        logger.info(f"LocalStorage initialized at: {self.base_path.absolute()}")

    def _get_full_path(self, relative_path: str) -> Path:
        """
        Convert a storage key to a full path under base_path.

        Raises:
            StorageError: If the key would escape base_path
                (e.g. "../../../etc/passwd")
        """
        full_path = self.base_path / relative_path
        resolved = full_path.resolve()

        try:
            resolved.relative_to(self.base_path.resolve())
        except ValueError:
            logger.warning(f"Path traversal attempt detected: {relative_path}")
            raise StorageError(f"Invalid path: {relative_path}")

        return resolved

    def _calculate_checksum(self, content: bytes) -> str:
        """MD5 of the content, for integrity checks only."""
        return hashlib.md5(content).hexdigest()

    async def save(
        self,
        file_content: bytes,
        destination_path: str,
        content_type: Optional[str] = None
    ) -> StoredFile:
        """
        Save file to local filesystem.

        Creates parent directories if they don't exist. Saving to an
        existing key overwrites it (thumbnails are regenerated in place).
        """
        try:
            full_path = self._get_full_path(destination_path)
            full_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(full_path, 'wb') as f:
                await f.write(file_content)

            size = len(file_content)
            checksum = self._calculate_checksum(file_content)

            logger.info(
                f"File saved: {destination_path} "
                f"({size} bytes, checksum: {checksum[:8]}...)"
            )

            return StoredFile(
                path=destination_path,
                size=size,
                content_type=content_type or "application/octet-stream",
                stored_at=datetime.now(timezone.utc),
                checksum=checksum
            )

        except OSError as e:
            # OSError covers disk full, permission denied, etc.
            logger.error(f"Failed to save file {destination_path}: {e}")
            raise StorageError(f"Failed to save file: {e}")

    async def get(self, path: str) -> bytes:
        """
        Read file content from storage.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        full_path = self._get_full_path(path)

        if not full_path.exists():
            logger.warning(f"File not found: {path}")
            raise StorageFileNotFoundError(f"File not found: {path}")

        if not full_path.is_file():
            raise StorageError(f"Path is not a file: {path}")

        try:
            async with aiofiles.open(full_path, 'rb') as f:
                content = await f.read()

            logger.debug(f"File read: {path} ({len(content)} bytes)")
            return content

        except OSError as e:
            logger.error(f"Failed to read file {path}: {e}")
            raise StorageError(f"Failed to read file: {e}")

    async def delete(self, path: str) -> bool:
        """
        Delete a file from storage.

        Idempotent: Returns False if file didn't exist (no error).
        """
        full_path = self._get_full_path(path)

        if not full_path.exists():
            logger.debug(f"File already doesn't exist: {path}")
            return False

        try:
            await aiofiles.os.remove(full_path)
            logger.info(f"File deleted: {path}")
            return True

        except OSError as e:
            logger.error(f"Failed to delete file {path}: {e}")
            raise StorageError(f"Failed to delete file: {e}")

    async def exists(self, path: str) -> bool:
        try:
            full_path = self._get_full_path(path)
            return full_path.exists() and full_path.is_file()
        except StorageError:
            # Invalid path (traversal attempt) → doesn't exist
            return False

    async def get_size(self, path: str) -> int:
        full_path = self._get_full_path(path)

        if not full_path.exists():
            raise StorageFileNotFoundError(f"File not found: {path}")

        return full_path.stat().st_size
