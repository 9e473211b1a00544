"""
PDF Thumbnail Task

Stores the first page of a PDF as a one-page PDF under a
deterministic key, thumbnails/{user_id}/{file_id}.pdf. Clients
render it with PDF.js; regenerating overwrites the previous one.
"""

import asyncio
import logging

from docvault.schemas.processing import PdfThumbnailPayload, ProcessingJobResult
from docvault.tasks.context import TaskContext
from docvault.utils.pdf_utils import open_pdf, page_to_pdf

logger = logging.getLogger(__name__)


def thumbnail_key(user_id: str, file_id: str) -> str:
    return f"thumbnails/{user_id}/{file_id}.pdf"


async def generate_pdf_thumbnail(
    payload: PdfThumbnailPayload,
    ctx: TaskContext,
) -> ProcessingJobResult:
    """
    Generate a thumbnail from the first page of a PDF.

    A PDF without pages completes with success=False rather than
    raising: retrying would not give it any pages.
    """
    await ctx.report(10)
    content = await ctx.storage.get(payload.storage_key)

    await ctx.report(30)
    reader = await asyncio.to_thread(open_pdf, content)

    if len(reader.pages) == 0:
        logger.warning(f"PDF {payload.file_id} has no pages, no thumbnail generated")
        return ProcessingJobResult(success=False, message="PDF has no pages")

    await ctx.report(50)
    first_page = await asyncio.to_thread(page_to_pdf, reader, 0)

    await ctx.report(70)
    key = thumbnail_key(payload.user_id, payload.file_id)
    await ctx.storage.save(first_page, key, content_type="application/pdf")

    await ctx.report(90)
    logger.info(f"Generated PDF thumbnail for file {payload.file_id}")

    return ProcessingJobResult(
        success=True,
        message="PDF thumbnail generated",
        thumbnail_key=key,
    )
