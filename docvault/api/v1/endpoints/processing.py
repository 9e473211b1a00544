"""
Processing Endpoints

HTTP API for queueing file processing jobs and polling their status.

All queue endpoints return immediately with a job id; clients poll
GET /processing/jobs/{job_id} until status is completed or failed.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from docvault.api.deps import get_current_user_id, get_processing_service
from docvault.schemas.processing import (
    ImageConvertRequest,
    JobListResponse,
    JobQueuedResponse,
    MessageResponse,
    OcrMode,
    OcrRequest,
    PdfSplitRequest,
    ProcessingStatus,
)
from docvault.services.processing_service import (
    FileNotFoundForUserError,
    FolderNotFoundError,
    ProcessingService,
    ProcessingServiceError,
    ProcessingValidationError,
)

logger = logging.getLogger(__name__)

# ============================================================
# Router Setup
# ============================================================

router = APIRouter(tags=["Processing"])

OCR_MODE_LABELS = {
    OcrMode.EXTRACT: "OCR",
    OcrMode.SUMMARY: "summarization",
    OcrMode.BOTH: "OCR + summarization",
}


def _to_http_error(error: ProcessingServiceError) -> HTTPException:
    """Map service errors to HTTP responses."""
    if isinstance(error, (FileNotFoundForUserError, FolderNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ProcessingValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))

    logger.error(f"Processing request failed: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to queue processing job",
    )


# ============================================================
# QUEUE ENDPOINTS
# ============================================================

@router.post(
    "/files/{file_id}/split",
    response_model=JobQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Split a PDF into pages",
    responses={
        400: {"description": "File is not a PDF"},
        404: {"description": "File or folder not found"},
    },
)
async def split_pdf(
    file_id: str,
    body: PdfSplitRequest = PdfSplitRequest(),
    user_id: str = Depends(get_current_user_id),
    service: ProcessingService = Depends(get_processing_service),
):
    """
    Split a PDF into individual pages ("Page 1.pdf", "Page 2.pdf", ...)
    inside a new folder.
    """
    try:
        job_id = await service.queue_pdf_split(
            file_id,
            user_id,
            output_name_prefix=body.output_name_prefix,
            folder_id=body.folder_id,
        )
    except ProcessingServiceError as e:
        raise _to_http_error(e)

    return JobQueuedResponse(job_id=job_id, message="PDF split job queued")


@router.post(
    "/files/{file_id}/convert",
    response_model=JobQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Convert an image",
    responses={
        400: {"description": "File is not an image or options are invalid"},
        404: {"description": "File or folder not found"},
    },
)
async def convert_image(
    file_id: str,
    body: ImageConvertRequest,
    user_id: str = Depends(get_current_user_id),
    service: ProcessingService = Depends(get_processing_service),
):
    """
    Convert an image to PNG, JPEG or WebP. The original is kept.
    """
    try:
        job_id = await service.queue_image_convert(
            file_id,
            user_id,
            target_format=body.target_format,
            quality=body.quality,
            folder_id=body.folder_id,
        )
    except ProcessingServiceError as e:
        raise _to_http_error(e)

    return JobQueuedResponse(
        job_id=job_id,
        message=f"Image conversion to {body.target_format.value.upper()} queued",
    )


@router.post(
    "/files/{file_id}/ocr",
    response_model=JobQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Extract text / summarize",
    responses={
        400: {"description": "File is neither a PDF nor an image"},
        404: {"description": "File not found"},
    },
)
async def extract_text(
    file_id: str,
    body: OcrRequest = OcrRequest(),
    user_id: str = Depends(get_current_user_id),
    service: ProcessingService = Depends(get_processing_service),
):
    """
    Extract text from a PDF or image, optionally with an AI summary.

    Results are also saved on the file (ocr_text / ocr_summary).
    """
    try:
        job_id = await service.queue_ocr(
            file_id,
            user_id,
            language=body.language,
            mode=body.mode,
        )
    except ProcessingServiceError as e:
        raise _to_http_error(e)

    return JobQueuedResponse(
        job_id=job_id,
        message=f"{OCR_MODE_LABELS[body.mode]} job queued",
    )


@router.post(
    "/files/{file_id}/thumbnail",
    response_model=JobQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Generate a PDF thumbnail",
    responses={
        400: {"description": "File is not a PDF"},
        404: {"description": "File not found"},
    },
)
async def generate_thumbnail(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProcessingService = Depends(get_processing_service),
):
    try:
        job_id = await service.queue_pdf_thumbnail(file_id, user_id)
    except ProcessingServiceError as e:
        raise _to_http_error(e)

    return JobQueuedResponse(job_id=job_id, message="PDF thumbnail generation queued")


# ============================================================
# STATUS ENDPOINTS
# ============================================================

@router.get(
    "/jobs/{job_id}",
    response_model=ProcessingStatus,
    summary="Get job status",
    responses={404: {"description": "Job not found"}},
)
async def get_job_status(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProcessingService = Depends(get_processing_service),
):
    """
    Poll a job: status, progress (0-100), and result or error.
    """
    job_status = await service.get_job_status(job_id, user_id)

    if job_status is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found"
        )

    return job_status


@router.get(
    "/files/{file_id}/jobs",
    response_model=JobListResponse,
    summary="List jobs for a file",
    responses={404: {"description": "File not found"}},
)
async def get_jobs_for_file(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProcessingService = Depends(get_processing_service),
):
    try:
        jobs = await service.get_jobs_for_file(file_id, user_id)
    except ProcessingServiceError as e:
        raise _to_http_error(e)

    return JobListResponse(jobs=jobs)


@router.delete(
    "/jobs/{job_id}",
    response_model=MessageResponse,
    summary="Cancel a pending job",
    responses={400: {"description": "Job not found or already started"}},
)
async def cancel_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProcessingService = Depends(get_processing_service),
):
    """
    Cancel a job that is still waiting. Running jobs can't be cancelled.
    """
    cancelled = await service.cancel_job(job_id, user_id)

    if not cancelled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Job not found or already started"
        )

    return MessageResponse(message="Job cancelled")
