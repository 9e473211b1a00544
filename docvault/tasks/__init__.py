"""
Background Tasks Module

Processing handlers, one per job type.

Task Organization:
-----------------
- pdf_split.py:      PDF → one file per page in a new folder
- image_convert.py:  image → PNG / JPEG / WebP copy
- ocr.py:            text extraction + optional AI summary
- pdf_thumbnail.py:  first page of a PDF as a thumbnail

How Tasks Work:
--------------
1. The API enqueues a job: await store.enqueue(JobType.OCR, payload)
2. A worker claims it: job = await store.fetch_next()
3. The dispatcher looks up HANDLERS[job.type] and calls
   handler(job.payload, ctx) with a TaskContext for that job
4. The returned ProcessingJobResult (or the error) is recorded
   in the job store

Running Workers:
---------------
    # Inline in the API process (default, RUN_INLINE_WORKERS=true)
    uvicorn docvault.main:app

    # Standalone, against the Redis job store
    python -m docvault.worker
"""

from typing import Optional

from docvault.jobs.base import JobStore
from docvault.jobs.dispatcher import ContextFactory, Dispatcher, Handler
from docvault.schemas.processing import JobType
from docvault.tasks.context import TaskContext, open_task_context
from docvault.tasks.pdf_split import split_pdf
from docvault.tasks.image_convert import convert_image_file
from docvault.tasks.ocr import run_ocr
from docvault.tasks.pdf_thumbnail import generate_pdf_thumbnail

# Dispatch table: every JobType must have an entry
HANDLERS: dict[JobType, Handler] = {
    JobType.PDF_SPLIT: split_pdf,
    JobType.IMAGE_CONVERT: convert_image_file,
    JobType.OCR: run_ocr,
    JobType.PDF_THUMBNAIL: generate_pdf_thumbnail,
}


def build_dispatcher(
    store: JobStore,
    context_factory: Optional[ContextFactory] = None,
    **options,
) -> Dispatcher:
    """
    Dispatcher wired to the standard handlers.

    Args:
        store: Job store to pull from and report to
        context_factory: Per-job context (defaults to open_task_context)
        **options: max_attempts, retry_base_delay, timeout overrides
    """
    return Dispatcher(
        store,
        HANDLERS,
        context_factory or open_task_context,
        **options,
    )


__all__ = [
    "HANDLERS",
    "build_dispatcher",
    "TaskContext",
    "open_task_context",
    "split_pdf",
    "convert_image_file",
    "run_ocr",
    "generate_pdf_thumbnail",
]
