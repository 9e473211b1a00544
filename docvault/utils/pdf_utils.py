"""
PDF Utilities

Synchronous helpers around pypdf (structure and text) and PyMuPDF
(rendering). They are CPU-bound: call them through asyncio.to_thread
from async code.

Why two libraries?
-----------------
- pypdf: pure Python, good at copying pages and reading text layers
- PyMuPDF (fitz): fast, accurate rasterizer for scanned documents
"""

import io
import logging
from dataclasses import dataclass
from typing import Iterator

import fitz  # PyMuPDF
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from docvault.jobs.errors import UnprocessableDocumentError

logger = logging.getLogger(__name__)


@dataclass
class PdfText:
    """
    Text layer of a PDF.

    Attributes:
        text: All pages' text joined with blank lines
        page_count: Number of pages in the document
    """
    text: str
    page_count: int

    @property
    def avg_chars_per_page(self) -> float:
        return len(self.text) / max(self.page_count, 1)


def open_pdf(content: bytes) -> PdfReader:
    """
    Parse PDF bytes.

    Raises:
        UnprocessableDocumentError: If the bytes aren't a readable PDF
    """
    try:
        return PdfReader(io.BytesIO(content))
    except (PdfReadError, ValueError) as e:
        raise UnprocessableDocumentError(f"Invalid or corrupted PDF: {e}")


def page_to_pdf(reader: PdfReader, index: int) -> bytes:
    """Copy page `index` (0-based) of an open reader into a new single-page PDF."""
    writer = PdfWriter()
    writer.add_page(reader.pages[index])
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def extract_text(content: bytes) -> PdfText:
    """
    Read the embedded text layer (no OCR).

    Scanned PDFs come back with little or no text; callers decide
    whether that is enough.

    Raises:
        UnprocessableDocumentError: If the PDF can't be read
    """
    reader = open_pdf(content)
    parts = []
    for page in reader.pages:
        parts.append(page.extract_text() or "")

    text = "\n\n".join(parts).strip()
    return PdfText(text=text, page_count=len(reader.pages))


def render_pages(content: bytes, max_pages: int, scale: float = 2.0) -> tuple[int, list[bytes]]:
    """
    Rasterize the first pages of a PDF to PNG.

    Higher scale = better OCR accuracy, more memory. 2.0 renders a
    letter page at roughly 1224x1584.

    Returns:
        (total page count, PNG bytes for the first min(total, max_pages) pages)

    Raises:
        UnprocessableDocumentError: If PyMuPDF can't open the document
    """
    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except (fitz.FileDataError, RuntimeError, ValueError) as e:
        raise UnprocessableDocumentError(f"Cannot render PDF: {e}")

    try:
        total = doc.page_count
        matrix = fitz.Matrix(scale, scale)
        images = []
        for index in range(min(total, max_pages)):
            pix = doc[index].get_pixmap(matrix=matrix, alpha=False)
            images.append(pix.tobytes("png"))
        return total, images
    finally:
        doc.close()
