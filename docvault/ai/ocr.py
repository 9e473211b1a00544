"""
Local OCR Engine

Tesseract via pytesseract. Used when a PDF has no usable text layer
and for images when the AI vision model is unavailable.

Requires the tesseract binary on the host (apt install tesseract-ocr)
plus language packs for anything other than English.
"""

import io
import asyncio
import logging
from typing import Optional

import pytesseract
from PIL import Image

from docvault.core.config import settings

logger = logging.getLogger(__name__)


class TesseractOCR:
    """
    Async wrapper around pytesseract.

    Usage:
        ocr = TesseractOCR()
        text = await ocr.recognize(png_bytes, "eng")

    recognize() raises whatever Tesseract or Pillow raise; callers
    decide how a failed page degrades.
    """

    def __init__(self, tesseract_cmd: Optional[str] = None):
        cmd = tesseract_cmd or settings.TESSERACT_CMD
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd

    def _recognize_sync(self, image_bytes: bytes, language: str) -> str:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return pytesseract.image_to_string(img, lang=language)

    async def recognize(self, image_bytes: bytes, language: str = "eng") -> str:
        """
        Recognize text in an image.

        Args:
            image_bytes: Any format Pillow can open
            language: Tesseract language code(s), e.g. "eng" or "eng+deu"
        """
        text = await asyncio.to_thread(self._recognize_sync, image_bytes, language)
        logger.debug(f"[Tesseract] Recognized {len(text)} characters")
        return text


_ocr_engine: Optional[TesseractOCR] = None


def get_ocr_engine() -> TesseractOCR:
    """Shared engine instance (singleton)."""
    global _ocr_engine

    if _ocr_engine is None:
        _ocr_engine = TesseractOCR()

    return _ocr_engine
