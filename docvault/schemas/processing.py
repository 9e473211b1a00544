"""
Processing Schemas

Typed job definitions shared by the API layer, the job store and the
worker handlers.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


# ============================================================
# ENUMS - Typed Constants
# ============================================================

class JobType(str, Enum):
    """
    Kinds of processing job. Closed set: it is the dispatch key.
    """
    PDF_SPLIT = "pdf-split"
    IMAGE_CONVERT = "image-convert"
    OCR = "ocr"
    PDF_THUMBNAIL = "pdf-thumbnail"


class JobState(str, Enum):
    """
    Job lifecycle state.

    waiting → active → completed | failed
    A waiting job may also be cancelled, which removes it entirely.
    """
    WAITING = "waiting"     # Queued (or waiting out a retry delay)
    ACTIVE = "active"       # A worker is running the handler
    COMPLETED = "completed" # Handler returned a result
    FAILED = "failed"       # Retries exhausted or non-retryable error


class ImageFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"


class OcrMode(str, Enum):
    EXTRACT = "extract"   # Text only
    SUMMARY = "summary"   # Summary only
    BOTH = "both"         # Text and summary


# Lower number = picked up first.
# Thumbnails are quick and users are looking at the screen waiting for them.
JOB_PRIORITIES: dict[JobType, int] = {
    JobType.PDF_THUMBNAIL: 1,
    JobType.PDF_SPLIT: 2,
    JobType.IMAGE_CONVERT: 2,
    JobType.OCR: 3,
}


# ============================================================
# JOB PAYLOADS - One per JobType
# ============================================================

class BaseJobPayload(BaseModel):
    """Fields every job carries about its source file."""
    file_id: str = Field(..., description="Source file id")
    user_id: str = Field(..., description="Owner of the source file")
    storage_key: str = Field(..., description="Storage key of the source blob")
    filename: str = Field(..., description="Display name of the source file")


class PdfSplitPayload(BaseJobPayload):
    type: Literal["pdf-split"] = "pdf-split"
    output_name_prefix: str = Field(
        ...,
        description="Name of the folder that receives the pages"
    )
    folder_id: Optional[str] = Field(
        default=None,
        description="Parent of the new folder (None = root)"
    )


class ImageConvertPayload(BaseJobPayload):
    type: Literal["image-convert"] = "image-convert"
    target_format: ImageFormat
    quality: int = Field(default=80, ge=1, le=100)
    folder_id: Optional[str] = None


class OcrPayload(BaseJobPayload):
    type: Literal["ocr"] = "ocr"
    language: str = Field(default="eng", description="Tesseract language code")
    mode: OcrMode = OcrMode.EXTRACT


class PdfThumbnailPayload(BaseJobPayload):
    type: Literal["pdf-thumbnail"] = "pdf-thumbnail"


JobPayload = Annotated[
    Union[PdfSplitPayload, ImageConvertPayload, OcrPayload, PdfThumbnailPayload],
    Field(discriminator="type"),
]


# ============================================================
# JOB RECORD
# ============================================================

class ProcessingJobResult(BaseModel):
    """
    What a handler returns.

    success=False with a message is still a *completed* job: the
    handler ran fine but the document didn't allow a useful result
    (e.g. a PDF with no pages).
    """
    success: bool
    message: str
    output_file_ids: Optional[list[str]] = None
    ocr_text: Optional[str] = None
    ocr_summary: Optional[str] = None
    thumbnail_key: Optional[str] = None


class Job(BaseModel):
    """
    A unit of processing work as held by the job store.

    type and payload never change after enqueue; everything else is
    owned by the store and mutated only through its methods.
    """
    id: str
    type: JobType
    payload: JobPayload
    priority: int
    state: JobState = JobState.WAITING
    progress: int = 0
    attempts: int = 0
    result: Optional[ProcessingJobResult] = None
    error: Optional[str] = None
    last_error: Optional[str] = None
    created_at: datetime
    available_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    seq: int = Field(default=0, description="Enqueue sequence number")

    @property
    def user_id(self) -> str:
        return self.payload.user_id

    @property
    def file_id(self) -> str:
        return self.payload.file_id


# ============================================================
# API SCHEMAS - Requests
# ============================================================

class PdfSplitRequest(BaseModel):
    output_name_prefix: Optional[str] = Field(
        default=None,
        max_length=255,
        description='Folder name for the pages (default "{name} copy")'
    )
    folder_id: Optional[str] = None


class ImageConvertRequest(BaseModel):
    target_format: ImageFormat
    quality: Optional[int] = Field(
        default=None,
        description="1-100, used for jpeg and webp only (default 80)"
    )
    folder_id: Optional[str] = None


class OcrRequest(BaseModel):
    language: Optional[str] = Field(default=None, max_length=32)
    mode: OcrMode = OcrMode.EXTRACT


# ============================================================
# API SCHEMAS - Responses
# ============================================================

class JobQueuedResponse(BaseModel):
    job_id: str
    message: str


class ProcessingStatus(BaseModel):
    """
    Public view of a job, as returned to polling clients.
    """
    job_id: str
    type: JobType
    status: JobState
    progress: int
    result: Optional[ProcessingJobResult] = None
    error: Optional[str] = None
    created_at: datetime
    finished_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: Job) -> "ProcessingStatus":
        return cls(
            job_id=job.id,
            type=job.type,
            status=job.state,
            progress=job.progress,
            result=job.result,
            error=job.error,
            created_at=job.created_at,
            finished_at=job.finished_at,
        )


class JobListResponse(BaseModel):
    jobs: list[ProcessingStatus]


class MessageResponse(BaseModel):
    message: str
