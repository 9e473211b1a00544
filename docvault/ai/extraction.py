"""
Text Extraction Cascade

Getting text out of an upload, cheapest method first:

    PDF:    direct text layer (pypdf)  →  rasterize + Tesseract
    Image:  AI vision (Gemini)         →  Tesseract

Each stage is a strategy returning an Extraction, or None meaning
"not good enough, try the next one". The last stage of each cascade
always produces something (possibly a placeholder), so a cascade
only fails outright when a document can't be rendered at all.

Cost Ordering:
-------------
- Direct extraction: milliseconds, free
- Local OCR: seconds per page, free, CPU heavy
- AI vision: one API call, paid

A digitally-authored PDF therefore never reaches the OCR stage, and
AI vision is never used on PDFs.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from docvault.utils.file_utils import detect_image_mime
from docvault.utils.pdf_utils import extract_text, render_pages

logger = logging.getLogger(__name__)

ProgressReporter = Callable[[int], Awaitable[None]]

# Below either threshold the text layer is treated as a scanned document
MIN_AVG_CHARS_PER_PAGE = 50
MIN_DIRECT_TEXT_LENGTH = 100

# OCR output on an image must beat this to count as "text found"
MIN_IMAGE_TEXT_LENGTH = 20

PAGE_BREAK = "\n\n--- Page Break ---\n\n"

IMAGE_TEXT_PREFIX = "[Text extracted from image]\n\n"
NO_IMAGE_TEXT_PLACEHOLDER = (
    "[Image analysis unavailable - AI provider not configured. "
    "No significant text detected in image.]"
)
IMAGE_FAILED_PLACEHOLDER = "[Image analysis failed - unable to process image content]"


class ExtractionMethod(str, Enum):
    DIRECT = "direct"
    LOCAL_OCR = "local-ocr"
    VISION = "vision"


class ExtractionError(Exception):
    """Raised when no stage can produce text (e.g. a PDF that can't be rendered)."""
    pass


@dataclass
class Extraction:
    """
    Output of a successful stage.

    Attributes:
        text: Extracted text, description, or placeholder
        page_label: "3 page(s)" for PDFs, "1 image" for images
        method: Which stage produced the text
    """
    text: str
    page_label: str
    method: ExtractionMethod

    @property
    def used_fallback(self) -> bool:
        """True when the text came from local OCR rather than the preferred stage."""
        return self.method == ExtractionMethod.LOCAL_OCR


class ExtractionStrategy(ABC):
    """One stage of a cascade."""

    name: str = "strategy"

    @abstractmethod
    async def extract(self, content: bytes) -> Optional[Extraction]:
        """
        Try to extract text.

        Returns:
            Extraction, or None to hand over to the next stage
        """
        pass


# ============================================================
# PDF STAGES
# ============================================================

class DirectTextStrategy(ExtractionStrategy):
    """
    Read the PDF's embedded text layer.

    Insufficient when the average is under 50 characters per page or
    the total under 100 characters (typical of scans), or when the
    PDF can't be parsed at all.
    """

    name = "direct"

    def __init__(self, report: Optional[ProgressReporter] = None):
        self.report = report

    async def extract(self, content: bytes) -> Optional[Extraction]:
        if self.report:
            await self.report(20)

        try:
            pdf = await asyncio.to_thread(extract_text, content)
        except Exception as e:
            logger.warning(f"Direct PDF text extraction failed: {e}")
            return None
        finally:
            if self.report:
                await self.report(40)

        logger.info(
            f"[pypdf] Extracted {len(pdf.text)} characters from {pdf.page_count} page(s)"
        )

        if pdf.avg_chars_per_page < MIN_AVG_CHARS_PER_PAGE:
            logger.warning(
                f"Low text density ({round(pdf.avg_chars_per_page)} chars/page) - "
                f"PDF may be scanned. Falling back to OCR."
            )
            return None

        if len(pdf.text) < MIN_DIRECT_TEXT_LENGTH:
            logger.info("Too little text in PDF text layer, falling back to OCR")
            return None

        return Extraction(
            text=pdf.text,
            page_label=f"{pdf.page_count} page(s)",
            method=ExtractionMethod.DIRECT,
        )


class RasterOcrStrategy(ExtractionStrategy):
    """
    Render the first pages to PNG and OCR each one.

    A page whose OCR fails contributes an inline error marker
    instead of aborting the document.

    Raises:
        ExtractionError: If the PDF can't be rendered at all
    """

    name = "raster-ocr"

    def __init__(
        self,
        ocr,
        language: str = "eng",
        max_pages: int = 20,
        scale: float = 2.0,
        report: Optional[ProgressReporter] = None,
    ):
        self.ocr = ocr
        self.language = language
        self.max_pages = max_pages
        self.scale = scale
        self.report = report

    async def extract(self, content: bytes) -> Optional[Extraction]:
        logger.info("Falling back to image-based OCR for scanned PDF...")

        try:
            total, images = await asyncio.to_thread(
                render_pages, content, self.max_pages, self.scale
            )
        except Exception as e:
            logger.error(f"Image-based OCR failed: {e}")
            raise ExtractionError(str(e)) from e

        page_total = len(images)
        texts = []
        for page_num, png in enumerate(images, start=1):
            if self.report:
                await self.report(40 + (page_num * 50) // page_total)

            try:
                text = await self.ocr.recognize(png, self.language)
                logger.info(f"[Tesseract] Page {page_num}: {len(text)} chars")
                texts.append(text)
            except Exception as e:
                logger.error(f"Tesseract failed for page {page_num}: {e}")
                texts.append(f"[Error extracting text from page {page_num}]")

        if total > page_total:
            logger.info(f"OCR limited to first {page_total} of {total} pages")

        return Extraction(
            text=PAGE_BREAK.join(texts),
            page_label=f"{page_total} page(s)",
            method=ExtractionMethod.LOCAL_OCR,
        )


# ============================================================
# IMAGE STAGES
# ============================================================

class VisionStrategy(ExtractionStrategy):
    """
    Ask the AI model to describe the image.

    Skipped when no AI client is configured; an API error or an
    empty answer also hands over to local OCR.
    """

    name = "vision"

    def __init__(self, ai):
        self.ai = ai

    async def extract(self, content: bytes) -> Optional[Extraction]:
        if self.ai is None:
            return None

        mime_type = detect_image_mime(content)
        try:
            description = await self.ai.describe_image(content, mime_type)
        except Exception as e:
            logger.warning(f"AI vision failed: {e}")
            return None

        if not description or not description.strip():
            return None

        return Extraction(
            text=description,
            page_label="1 image",
            method=ExtractionMethod.VISION,
        )


class ImageOcrStrategy(ExtractionStrategy):
    """
    Tesseract on the raw image. Always returns an Extraction:
    the recognized text, or a placeholder saying why there is none.
    """

    name = "image-ocr"

    def __init__(self, ocr, language: str = "eng"):
        self.ocr = ocr
        self.language = language

    async def extract(self, content: bytes) -> Optional[Extraction]:
        try:
            text = (await self.ocr.recognize(content, self.language)).strip()
        except Exception as e:
            logger.error(f"Tesseract OCR failed: {e}")
            text = None

        if text is None:
            result = IMAGE_FAILED_PLACEHOLDER
        elif len(text) > MIN_IMAGE_TEXT_LENGTH:
            logger.info(f"[Tesseract] Extracted {len(text)} characters from image")
            result = f"{IMAGE_TEXT_PREFIX}{text}"
        else:
            logger.info(f"[Tesseract] No significant text found in image ({len(text)} chars)")
            result = NO_IMAGE_TEXT_PLACEHOLDER

        return Extraction(
            text=result,
            page_label="1 image",
            method=ExtractionMethod.LOCAL_OCR,
        )


# ============================================================
# CASCADE
# ============================================================

async def run_cascade(
    strategies: Sequence[ExtractionStrategy],
    content: bytes,
) -> Extraction:
    """
    Run strategies in order and return the first Extraction.

    Raises:
        ExtractionError: If a stage raises it, or no stage produced text
    """
    for strategy in strategies:
        extraction = await strategy.extract(content)
        if extraction is not None:
            logger.debug(f"Extraction stage '{strategy.name}' succeeded")
            return extraction
        logger.debug(f"Extraction stage '{strategy.name}' insufficient, trying next")

    raise ExtractionError("No extraction stage produced text")


def build_pdf_cascade(
    ocr,
    language: str,
    max_pages: int,
    scale: float,
    report: Optional[ProgressReporter] = None,
) -> list[ExtractionStrategy]:
    return [
        DirectTextStrategy(report=report),
        RasterOcrStrategy(ocr, language, max_pages=max_pages, scale=scale, report=report),
    ]


def build_image_cascade(ai, ocr, language: str) -> list[ExtractionStrategy]:
    return [
        VisionStrategy(ai),
        ImageOcrStrategy(ocr, language),
    ]
