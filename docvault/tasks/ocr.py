"""
OCR / Summarization Task

Extracts text from a PDF or image, optionally summarizes it, and
stores the results on the source file's record.

Pipeline:
--------
1. Download                                        (5%, 10%)
2. Extract text (see docvault.ai.extraction)       (20-90%)
   PDF:   text layer → rasterize + Tesseract
   Image: Gemini vision → Tesseract
3. Summarize if mode is summary/both               (90%)
4. Save ocr_text / ocr_summary on the file record  (95%)

Degradation never fails the job: missing AI, unreadable images and
quota errors all produce an explicit "[...]" placeholder. Only a PDF
that can't even be rendered ends with success=False.
"""

import logging
from typing import Optional

from docvault.ai.extraction import (
    Extraction,
    ExtractionError,
    ExtractionMethod,
    build_image_cascade,
    build_pdf_cascade,
    run_cascade,
)
from docvault.ai.llm import is_quota_error
from docvault.schemas.processing import OcrMode, OcrPayload, ProcessingJobResult
from docvault.tasks.context import TaskContext
from docvault.utils.file_utils import is_pdf_filename
from docvault.jobs.base import utcnow

logger = logging.getLogger(__name__)

# PDFs with less text than this are not worth a summarization call
MIN_SUMMARY_TEXT_LENGTH = 50

SUMMARY_NO_AI_FALLBACK = (
    "[Summary unavailable - text extracted using local OCR. "
    "AI summarization requires a configured AI provider.]"
)
SUMMARY_NO_AI = "[Summary unavailable - AI provider not configured]"
SUMMARY_QUOTA_EXCEEDED = "[Summary unavailable - quota exceeded]"
SUMMARY_ERROR = "[Error generating summary]"
SUMMARY_NO_TEXT = "[No text content found in this document]"

METHOD_SUFFIXES = {
    ExtractionMethod.LOCAL_OCR: " (using local OCR)",
    ExtractionMethod.DIRECT: " (direct text extraction)",
    ExtractionMethod.VISION: " (AI vision analysis)",
}


# ============================================================
# SUMMARIZATION
# ============================================================

async def summarize_extraction(
    extraction: Extraction,
    is_image: bool,
    ai,
) -> str:
    """
    Produce the summary for an extraction, or a placeholder.

    Images reuse their description as the summary: a second
    AI call would only describe the same picture again.
    """
    if ai is None:
        logger.warning("Skipping summary generation - AI provider not configured")
        return SUMMARY_NO_AI_FALLBACK if extraction.used_fallback else SUMMARY_NO_AI

    if is_image:
        return extraction.text

    if len(extraction.text.strip()) <= MIN_SUMMARY_TEXT_LENGTH:
        return SUMMARY_NO_TEXT

    try:
        summary = await ai.summarize_text(extraction.text)
    except Exception as e:
        logger.error(f"Summary generation failed: {e}")
        return SUMMARY_QUOTA_EXCEEDED if is_quota_error(e) else SUMMARY_ERROR

    return summary or SUMMARY_ERROR


def build_result_message(
    extraction: Extraction,
    is_image: bool,
    mode: OcrMode,
) -> str:
    """
    Human-readable account of what was done and how.

    Example:
        "Extracted 1234 characters from 3 page(s) (direct text extraction)"
    """
    suffix = METHOD_SUFFIXES[extraction.method]

    if is_image:
        if mode == OcrMode.SUMMARY:
            return f"Generated summary for image{suffix}"
        return f"Analyzed image content{suffix}"

    if mode == OcrMode.SUMMARY:
        return f"Generated summary from {extraction.page_label}{suffix}"
    if mode == OcrMode.BOTH:
        return f"Extracted text and generated summary from {extraction.page_label}{suffix}"
    return f"Extracted {len(extraction.text)} characters from {extraction.page_label}{suffix}"


# ============================================================
# TASK
# ============================================================

async def run_ocr(payload: OcrPayload, ctx: TaskContext) -> ProcessingJobResult:
    """
    Extract text from a PDF or image using the extraction cascade.
    """
    mode = OcrMode(payload.mode)
    is_image = not is_pdf_filename(payload.filename)

    await ctx.report(5)
    content = await ctx.storage.get(payload.storage_key)

    await ctx.report(10)

    if is_image:
        logger.info(f"Processing image: {payload.filename}")
        await ctx.report(40)
        strategies = build_image_cascade(ctx.ai, ctx.ocr, payload.language)
    else:
        logger.info(f"Attempting direct text extraction from PDF: {payload.filename}")
        strategies = build_pdf_cascade(
            ctx.ocr,
            payload.language,
            max_pages=ctx.ocr_max_pages,
            scale=ctx.ocr_render_scale,
            report=ctx.report,
        )

    try:
        extraction = await run_cascade(strategies, content)
    except ExtractionError as e:
        return ProcessingJobResult(success=False, message=f"OCR failed: {e}")

    await ctx.report(90)
    logger.info(
        f"Text extraction completed for {payload.filename}: "
        f"{len(extraction.text)} characters from {extraction.page_label}"
    )

    ocr_text: Optional[str] = None
    ocr_summary: Optional[str] = None

    if mode in (OcrMode.EXTRACT, OcrMode.BOTH):
        ocr_text = extraction.text
    if mode in (OcrMode.SUMMARY, OcrMode.BOTH):
        ocr_summary = await summarize_extraction(extraction, is_image, ctx.ai)

    await ctx.report(95)
    await ctx.repository.update_file_ocr_fields(
        payload.file_id,
        ocr_text=ocr_text,
        ocr_summary=ocr_summary,
        ocr_processed_at=utcnow(),
    )
    logger.info(f"Saved OCR results for file {payload.file_id}")

    return ProcessingJobResult(
        success=True,
        message=build_result_message(extraction, is_image, mode),
        ocr_text=ocr_text,
        ocr_summary=ocr_summary,
    )
