"""
PDF Split Task

Splits a PDF into one file per page, inside a new folder.

Steps:
1. Download the source PDF                     (5%)
2. Parse it and count pages                    (10%)
3. Create the destination folder               (15%)
4. For each page: single-page PDF → upload →
   file record named "Page {n}.pdf"            (15-95%)
"""

import asyncio
import logging

from docvault.schemas.processing import PdfSplitPayload, ProcessingJobResult
from docvault.tasks.context import TaskContext
from docvault.utils.pdf_utils import open_pdf, page_to_pdf

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"


async def split_pdf(payload: PdfSplitPayload, ctx: TaskContext) -> ProcessingJobResult:
    """
    Split a PDF into individual pages.

    Returns:
        Result with the new file ids in page order. A zero-page PDF
        still gets its (empty) folder.

    Raises:
        UnprocessableDocumentError: If the source isn't a readable PDF
    """
    await ctx.report(5)
    content = await ctx.storage.get(payload.storage_key)

    await ctx.report(10)
    reader = await asyncio.to_thread(open_pdf, content)
    page_count = len(reader.pages)

    logger.info(f"Splitting PDF {payload.filename} into {page_count} pages")

    split_folder_id = await ctx.repository.insert_folder(
        user_id=payload.user_id,
        name=payload.output_name_prefix,
        parent_id=payload.folder_id,
    )
    logger.info(f'Created folder "{payload.output_name_prefix}" for split pages')

    await ctx.report(15)

    created_file_ids = []
    for i in range(page_count):
        await ctx.report(15 + (i * 80) // page_count)

        page_bytes = await asyncio.to_thread(page_to_pdf, reader, i)
        page_name = f"Page {i + 1}.pdf"
        storage_key = ctx.storage.generate_key(payload.user_id, page_name)

        await ctx.storage.save(page_bytes, storage_key, content_type=PDF_MIME)

        file_id = await ctx.repository.insert_file(
            user_id=payload.user_id,
            folder_id=split_folder_id,
            name=page_name,
            storage_key=storage_key,
            mime_type=PDF_MIME,
            size_bytes=len(page_bytes),
        )
        created_file_ids.append(file_id)
        logger.debug(f"Created split page {i + 1}: {file_id}")

    return ProcessingJobResult(
        success=True,
        message=(
            f"Split PDF into {page_count} pages in folder "
            f'"{payload.output_name_prefix}"'
        ),
        output_file_ids=created_file_ids,
    )
