"""
Task Context

Everything a processing handler may touch, bundled per job:
- storage:    blob storage for source files and generated artifacts
- repository: file/folder records (one DB session per job)
- report:     progress callback bound to the job
- ocr:        local OCR engine
- ai:         Gemini client, or None when AI is not configured

Handlers receive the context as an argument and never reach for
globals, so tests can hand them fakes.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from docvault.core.config import settings
from docvault.db.database import AsyncSessionLocal
from docvault.repositories.file_repo import FileRepository
from docvault.storage import StorageBackend, get_storage
from docvault.ai.ocr import get_ocr_engine
from docvault.ai.llm import get_ai_client

ProgressReporter = Callable[[int], Awaitable[None]]


@dataclass
class TaskContext:
    storage: StorageBackend
    repository: Any   # FileRepository or anything with the same write methods
    report: ProgressReporter
    ocr: Any
    ai: Optional[Any] = None
    ocr_max_pages: int = 20
    ocr_render_scale: float = 2.0


@asynccontextmanager
async def open_task_context(report: ProgressReporter) -> AsyncIterator[TaskContext]:
    """
    Default context factory used by the worker.

    Opens a fresh database session for the job and closes it when
    the handler finishes, whatever the outcome.
    """
    async with AsyncSessionLocal() as session:
        yield TaskContext(
            storage=get_storage(),
            repository=FileRepository(session),
            report=report,
            ocr=get_ocr_engine(),
            ai=get_ai_client(),
            ocr_max_pages=settings.OCR_MAX_PAGES,
            ocr_render_scale=settings.OCR_RENDER_SCALE,
        )
