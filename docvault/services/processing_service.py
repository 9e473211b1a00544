"""
Processing Service

Business logic for queueing processing jobs and reporting on them.

Every queue_* method:
1. Verifies the file exists and belongs to the user
2. Checks the file kind suits the job (PDF only, image only...)
3. Builds the typed payload and enqueues it
The job itself runs later, in a worker.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.config import settings
from docvault.jobs.base import JobStore
from docvault.models.file import File
from docvault.repositories.file_repo import FileRepository
from docvault.schemas.processing import (
    ImageConvertPayload,
    ImageFormat,
    JobType,
    OcrMode,
    OcrPayload,
    PdfSplitPayload,
    PdfThumbnailPayload,
    ProcessingStatus,
)
from docvault.utils.file_utils import get_base_name, is_image_mime

logger = logging.getLogger(__name__)


class ProcessingServiceError(Exception):
    """Base exception for processing service errors."""
    pass


class FileNotFoundForUserError(ProcessingServiceError):
    """Raised when the file doesn't exist or isn't the caller's."""
    pass


class FolderNotFoundError(ProcessingServiceError):
    """Raised when the destination folder doesn't exist or isn't the caller's."""
    pass


class ProcessingValidationError(ProcessingServiceError):
    """Raised when the file or options don't suit the requested job."""
    pass


def _is_pdf(file: File) -> bool:
    return "pdf" in (file.mime_type or "")


class ProcessingService:
    """
    Service class for processing jobs.
    """

    def __init__(self, db: AsyncSession, store: JobStore):
        """
        Initialize service with database session and job store.

        Args:
            db: Async database session
            store: Job store created at application startup
        """
        self.db = db
        self.file_repo = FileRepository(db)
        self.store = store

    # ============================================================
    # HELPER METHODS - Validation and Authorization
    # ============================================================

    async def _get_owned_file(self, file_id: str, user_id: str) -> File:
        file = await self.file_repo.get_owned_file(file_id, user_id)
        if not file:
            # Same error for "missing" and "someone else's": don't reveal existence
            logger.warning(f"File {file_id} not found for user {user_id}")
            raise FileNotFoundForUserError("File not found")
        return file

    async def _verify_folder(self, folder_id: Optional[str], user_id: str) -> None:
        if not folder_id:
            return
        folder = await self.file_repo.get_owned_folder(folder_id, user_id)
        if not folder:
            raise FolderNotFoundError("Folder not found")

    # ============================================================
    # QUEUE OPERATIONS
    # ============================================================

    async def queue_pdf_split(
        self,
        file_id: str,
        user_id: str,
        output_name_prefix: Optional[str] = None,
        folder_id: Optional[str] = None,
    ) -> str:
        """
        Queue splitting a PDF into one file per page.

        The pages go into a new folder named output_name_prefix
        (default "{name without extension} copy"), created under
        folder_id or at the root.

        Returns:
            Job id
        """
        file = await self._get_owned_file(file_id, user_id)

        if not _is_pdf(file):
            raise ProcessingValidationError("Only PDF files can be split")

        await self._verify_folder(folder_id, user_id)

        prefix = (output_name_prefix or "").strip() or f"{get_base_name(file.name)} copy"

        payload = PdfSplitPayload(
            file_id=file.id,
            user_id=user_id,
            storage_key=file.storage_key,
            filename=file.name,
            output_name_prefix=prefix,
            folder_id=folder_id,
        )
        return await self.store.enqueue(JobType.PDF_SPLIT, payload)

    async def queue_image_convert(
        self,
        file_id: str,
        user_id: str,
        target_format: ImageFormat,
        quality: Optional[int] = None,
        folder_id: Optional[str] = None,
    ) -> str:
        """
        Queue converting an image to PNG, JPEG or WebP.

        Returns:
            Job id
        """
        file = await self._get_owned_file(file_id, user_id)

        if not is_image_mime(file.mime_type):
            raise ProcessingValidationError("Only image files can be converted")

        try:
            target = ImageFormat(target_format)
        except ValueError:
            valid = ", ".join(f.value for f in ImageFormat)
            raise ProcessingValidationError(
                f"Invalid target format. Must be one of: {valid}"
            )

        if quality is not None and not 1 <= quality <= 100:
            raise ProcessingValidationError("Quality must be between 1 and 100")

        await self._verify_folder(folder_id, user_id)

        payload = ImageConvertPayload(
            file_id=file.id,
            user_id=user_id,
            storage_key=file.storage_key,
            filename=file.name,
            target_format=target,
            quality=quality if quality is not None else 80,
            folder_id=folder_id,
        )
        return await self.store.enqueue(JobType.IMAGE_CONVERT, payload)

    async def queue_ocr(
        self,
        file_id: str,
        user_id: str,
        language: Optional[str] = None,
        mode: OcrMode = OcrMode.EXTRACT,
    ) -> str:
        """
        Queue text extraction (and optionally summarization).

        Returns:
            Job id
        """
        file = await self._get_owned_file(file_id, user_id)

        if not _is_pdf(file) and not is_image_mime(file.mime_type):
            raise ProcessingValidationError(
                "OCR is only supported for PDF and image files"
            )

        payload = OcrPayload(
            file_id=file.id,
            user_id=user_id,
            storage_key=file.storage_key,
            filename=file.name,
            language=language or settings.OCR_DEFAULT_LANGUAGE,
            mode=mode,
        )
        return await self.store.enqueue(JobType.OCR, payload)

    async def queue_pdf_thumbnail(self, file_id: str, user_id: str) -> str:
        """
        Queue thumbnail generation for a PDF (highest priority).

        Returns:
            Job id
        """
        file = await self._get_owned_file(file_id, user_id)

        if not _is_pdf(file):
            raise ProcessingValidationError(
                "Thumbnails can only be generated for PDF files"
            )

        payload = PdfThumbnailPayload(
            file_id=file.id,
            user_id=user_id,
            storage_key=file.storage_key,
            filename=file.name,
        )
        return await self.store.enqueue(JobType.PDF_THUMBNAIL, payload)

    # ============================================================
    # STATUS & CANCELLATION
    # ============================================================

    async def get_job_status(self, job_id: str, user_id: str) -> Optional[ProcessingStatus]:
        """
        Status of one job, or None if it doesn't exist or isn't the user's.
        """
        job = await self.store.get(job_id)
        if job is None or job.user_id != user_id:
            return None
        return ProcessingStatus.from_job(job)

    async def get_jobs_for_file(self, file_id: str, user_id: str) -> List[ProcessingStatus]:
        """
        All retained jobs for a file, oldest first.

        Raises:
            FileNotFoundForUserError: If the file isn't the user's
        """
        await self._get_owned_file(file_id, user_id)

        jobs = await self.store.list_by_file_id(file_id)
        return [ProcessingStatus.from_job(job) for job in jobs if job.user_id == user_id]

    async def cancel_job(self, job_id: str, user_id: str) -> bool:
        """
        Cancel a job that hasn't started yet.

        Returns:
            True if cancelled; False if the job is unknown, not the
            user's, or already running / finished
        """
        job = await self.store.get(job_id)
        if job is None or job.user_id != user_id:
            return False

        cancelled = await self.store.cancel(job_id)
        if cancelled:
            logger.info(f"User {user_id} cancelled job {job_id}")
        return cancelled
