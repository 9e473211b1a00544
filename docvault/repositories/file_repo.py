"""
File Repository

Data access layer for File and Folder models.

Processing jobs only ever add rows (split pages, converted images,
split folders) or fill in the OCR columns of an existing file.
Everything else about files and folders belongs to the CRUD service.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.models.file import File
from docvault.models.folder import Folder
from docvault.repositories.base import BaseRepository


class FileRepository(BaseRepository[File]):
    """
    Repository for File model (and the folders processing creates).
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize with database session.

        Args:
            db: Async SQLAlchemy session from dependency injection
        """
        super().__init__(File, db)

    # ============================================================
    # QUERY METHODS - Reading Data
    # ============================================================

    async def get_owned_file(self, file_id: str, user_id: str) -> Optional[File]:
        """
        Get a non-deleted file only if it belongs to the user.

        Returns None for both "missing" and "someone else's" so
        callers can't tell whether it exists.
        """
        stmt = select(File).where(
            File.id == file_id,
            File.user_id == user_id,
            File.is_deleted.is_(False),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_owned_folder(self, folder_id: str, user_id: str) -> Optional[Folder]:
        """Get a non-deleted folder only if it belongs to the user."""
        stmt = select(Folder).where(
            Folder.id == folder_id,
            Folder.user_id == user_id,
            Folder.is_deleted.is_(False),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    # ============================================================
    # WRITE METHODS - Used by processing handlers
    # ============================================================

    async def insert_file(
        self,
        *,
        user_id: str,
        name: str,
        storage_key: str,
        mime_type: str,
        size_bytes: int,
        folder_id: Optional[str] = None,
    ) -> str:
        """
        Create a file record for a generated artifact.

        Returns:
            The new file id
        """
        file = await self.create(
            user_id=user_id,
            folder_id=folder_id,
            name=name,
            storage_key=storage_key,
            mime_type=mime_type,
            size_bytes=size_bytes,
            is_starred=False,
            is_deleted=False,
        )
        return file.id

    async def insert_folder(
        self,
        *,
        user_id: str,
        name: str,
        parent_id: Optional[str] = None,
    ) -> str:
        """
        Create a folder (parent_id None = document root).

        Returns:
            The new folder id
        """
        folder = Folder(
            user_id=user_id,
            parent_id=parent_id,
            name=name,
            is_starred=False,
            is_deleted=False,
        )
        self.db.add(folder)
        await self.db.commit()
        await self.db.refresh(folder)
        return folder.id

    async def update_file_ocr_fields(
        self,
        file_id: str,
        *,
        ocr_processed_at: datetime,
        ocr_text: Optional[str] = None,
        ocr_summary: Optional[str] = None,
    ) -> bool:
        """
        Persist OCR output on the source file.

        Only the fields that were produced are written: an extract-only
        run leaves a previous summary in place and vice versa.

        Returns:
            True if a row was updated
        """
        values = {
            "ocr_processed_at": ocr_processed_at,
            "updated_at": datetime.now(timezone.utc),
        }
        if ocr_text is not None:
            values["ocr_text"] = ocr_text
        if ocr_summary is not None:
            values["ocr_summary"] = ocr_summary

        result = await self.db.execute(
            update(File).where(File.id == file_id).values(**values)
        )
        await self.db.commit()
        return result.rowcount > 0
