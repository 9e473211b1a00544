"""
Shared fixtures: in-memory job store, temporary blob storage, a
throwaway SQLite database, and fakes for the OCR engine, the AI
client and the file repository.
"""

import io
import uuid

import fitz  # PyMuPDF
import pytest
from PIL import Image
from pypdf import PdfWriter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from docvault.db.database import Base
from docvault.jobs.memory import InMemoryJobStore
from docvault.storage.local import LocalStorage
from docvault.tasks.context import TaskContext
import docvault.models  # noqa: F401  (registers tables on Base.metadata)


SAMPLE_LINES = [
    "The quick brown fox jumps over the lazy dog.",
    "Invoices are due within thirty days of receipt.",
    "Please keep this document for your records.",
    "Questions can be sent to the accounts department.",
]


# ============================================================
# FAKES
# ============================================================

class FakeRepository:
    """Records what handlers write instead of touching a database."""

    def __init__(self):
        self.folders = []
        self.files = []
        self.ocr_updates = []

    async def insert_folder(self, *, user_id, name, parent_id=None):
        folder_id = f"folder-{len(self.folders) + 1}"
        self.folders.append(
            {"id": folder_id, "user_id": user_id, "name": name, "parent_id": parent_id}
        )
        return folder_id

    async def insert_file(self, *, user_id, name, storage_key, mime_type, size_bytes, folder_id=None):
        file_id = f"file-{len(self.files) + 1}"
        self.files.append({
            "id": file_id,
            "user_id": user_id,
            "folder_id": folder_id,
            "name": name,
            "storage_key": storage_key,
            "mime_type": mime_type,
            "size_bytes": size_bytes,
        })
        return file_id

    async def update_file_ocr_fields(self, file_id, *, ocr_processed_at, ocr_text=None, ocr_summary=None):
        self.ocr_updates.append({
            "file_id": file_id,
            "ocr_text": ocr_text,
            "ocr_summary": ocr_summary,
            "ocr_processed_at": ocr_processed_at,
        })
        return True


class FakeOCR:
    """
    Stands in for TesseractOCR.

    `pages` gives the text returned for successive calls (the last
    entry repeats); an Exception instance in the list is raised.
    """

    def __init__(self, pages=None):
        self.pages = pages if pages is not None else ["recognized text"]
        self.calls = []

    async def recognize(self, image_bytes, language="eng"):
        self.calls.append(language)
        index = min(len(self.calls) - 1, len(self.pages) - 1)
        value = self.pages[index]
        if isinstance(value, Exception):
            raise value
        return value


class FakeAI:
    """Stands in for GeminiClient. Pass an Exception to make a call fail."""

    def __init__(self, description="A red square on a white background.", summary="Short summary."):
        self.description = description
        self.summary = summary
        self.described = []
        self.summarized = []

    async def describe_image(self, image_bytes, mime_type):
        self.described.append(mime_type)
        if isinstance(self.description, Exception):
            raise self.description
        return self.description

    async def summarize_text(self, text):
        self.summarized.append(text)
        if isinstance(self.summary, Exception):
            raise self.summary
        return self.summary


class ProgressRecorder:
    def __init__(self):
        self.values = []

    async def __call__(self, percent):
        self.values.append(percent)


# ============================================================
# BUILDERS
# ============================================================

def build_text_pdf(pages: int = 2) -> bytes:
    doc = fitz.open()
    for n in range(pages):
        page = doc.new_page()
        page.insert_text((72, 72), [f"Page {n + 1}"] + SAMPLE_LINES, fontsize=11)
    content = doc.tobytes()
    doc.close()
    return content


def build_pdf_with_text(line: str) -> bytes:
    """One page holding a single line of text."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), line, fontsize=11)
    content = doc.tobytes()
    doc.close()
    return content


def build_blank_pdf(pages: int = 1) -> bytes:
    """Pages with no text layer, like a scan."""
    doc = fitz.open()
    for _ in range(pages):
        doc.new_page(width=200, height=200)
    content = doc.tobytes()
    doc.close()
    return content


def build_empty_pdf() -> bytes:
    """A structurally valid PDF with zero pages."""
    writer = PdfWriter()
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def build_image(fmt: str = "PNG", mode: str = "RGB", size=(16, 16)) -> bytes:
    color = (255, 0, 0, 128) if mode == "RGBA" else (255, 0, 0)
    img = Image.new(mode, size, color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def store():
    return InMemoryJobStore(
        keep_completed_seconds=3600,
        keep_completed_count=100,
        keep_failed_seconds=86400,
    )


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(base_path=str(tmp_path / "blobs"))


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def progress():
    return ProgressRecorder()


@pytest.fixture
def make_ctx(storage, repository, progress):
    """Build a TaskContext around the shared fakes."""

    def _make(ocr=None, ai=None, **overrides):
        return TaskContext(
            storage=storage,
            repository=repository,
            report=progress,
            ocr=ocr or FakeOCR(),
            ai=ai,
            ocr_max_pages=overrides.get("ocr_max_pages", 20),
            ocr_render_scale=overrides.get("ocr_render_scale", 0.5),
        )

    return _make


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
