"""Tests for the PDF split and PDF thumbnail handlers."""

import io

import pytest
from pypdf import PdfReader

from conftest import build_empty_pdf, build_text_pdf
from docvault.jobs.errors import UnprocessableDocumentError
from docvault.schemas.processing import PdfSplitPayload, PdfThumbnailPayload
from docvault.tasks.pdf_split import split_pdf
from docvault.tasks.pdf_thumbnail import generate_pdf_thumbnail, thumbnail_key


async def _store_source(storage, user_id, content, name="report.pdf"):
    key = storage.generate_key(user_id, name)
    await storage.save(content, key, content_type="application/pdf")
    return key


def _page_count(content: bytes) -> int:
    return len(PdfReader(io.BytesIO(content)).pages)


# ============================================================
# SPLIT
# ============================================================

async def test_split_creates_folder_and_one_file_per_page(storage, repository, progress, make_ctx, user_id):
    key = await _store_source(storage, user_id, build_text_pdf(pages=3))
    payload = PdfSplitPayload(
        file_id="src",
        user_id=user_id,
        storage_key=key,
        filename="report.pdf",
        output_name_prefix="report copy",
        folder_id="parent-folder",
    )

    result = await split_pdf(payload, make_ctx())

    assert result.success is True
    assert result.message == 'Split PDF into 3 pages in folder "report copy"'

    assert repository.folders == [{
        "id": "folder-1",
        "user_id": user_id,
        "name": "report copy",
        "parent_id": "parent-folder",
    }]
    assert [f["name"] for f in repository.files] == ["Page 1.pdf", "Page 2.pdf", "Page 3.pdf"]
    assert result.output_file_ids == [f["id"] for f in repository.files]

    for record in repository.files:
        assert record["folder_id"] == "folder-1"
        assert record["mime_type"] == "application/pdf"
        assert record["storage_key"].startswith(f"{user_id}/")
        assert record["storage_key"].endswith(record["name"].replace(" ", "_"))

        content = await storage.get(record["storage_key"])
        assert record["size_bytes"] == len(content)
        assert _page_count(content) == 1


async def test_split_reports_progress(storage, progress, make_ctx, user_id):
    key = await _store_source(storage, user_id, build_text_pdf(pages=4))
    payload = PdfSplitPayload(
        file_id="src", user_id=user_id, storage_key=key,
        filename="report.pdf", output_name_prefix="pages",
    )

    await split_pdf(payload, make_ctx())

    assert progress.values == [5, 10, 15, 15, 35, 55, 75]
    assert progress.values == sorted(progress.values)


async def test_split_zero_page_pdf_creates_empty_folder(storage, repository, make_ctx, user_id):
    key = await _store_source(storage, user_id, build_empty_pdf())
    payload = PdfSplitPayload(
        file_id="src", user_id=user_id, storage_key=key,
        filename="empty.pdf", output_name_prefix="empty copy",
    )

    result = await split_pdf(payload, make_ctx())

    assert result.success is True
    assert result.output_file_ids == []
    assert len(repository.folders) == 1
    assert repository.files == []


async def test_split_corrupt_pdf_is_not_retryable(storage, repository, make_ctx, user_id):
    key = await _store_source(storage, user_id, b"this is not a pdf at all")
    payload = PdfSplitPayload(
        file_id="src", user_id=user_id, storage_key=key,
        filename="broken.pdf", output_name_prefix="broken copy",
    )

    with pytest.raises(UnprocessableDocumentError):
        await split_pdf(payload, make_ctx())

    assert repository.folders == []


# ============================================================
# THUMBNAIL
# ============================================================

async def test_thumbnail_stores_first_page(storage, progress, make_ctx, user_id):
    key = await _store_source(storage, user_id, build_text_pdf(pages=3))
    payload = PdfThumbnailPayload(
        file_id="file-42", user_id=user_id, storage_key=key, filename="report.pdf"
    )

    result = await generate_pdf_thumbnail(payload, make_ctx())

    assert result.success is True
    assert result.message == "PDF thumbnail generated"
    assert result.thumbnail_key == f"thumbnails/{user_id}/file-42.pdf"
    assert result.thumbnail_key == thumbnail_key(user_id, "file-42")
    assert _page_count(await storage.get(result.thumbnail_key)) == 1
    assert progress.values == [10, 30, 50, 70, 90]


async def test_thumbnail_regeneration_overwrites(storage, make_ctx, user_id):
    key = await _store_source(storage, user_id, build_text_pdf(pages=2))
    payload = PdfThumbnailPayload(
        file_id="file-42", user_id=user_id, storage_key=key, filename="report.pdf"
    )

    first = await generate_pdf_thumbnail(payload, make_ctx())
    second = await generate_pdf_thumbnail(payload, make_ctx())

    assert first.thumbnail_key == second.thumbnail_key
    assert await storage.exists(second.thumbnail_key)


async def test_thumbnail_of_empty_pdf_is_unsuccessful(storage, make_ctx, user_id):
    key = await _store_source(storage, user_id, build_empty_pdf())
    payload = PdfThumbnailPayload(
        file_id="file-42", user_id=user_id, storage_key=key, filename="empty.pdf"
    )

    result = await generate_pdf_thumbnail(payload, make_ctx())

    assert result.success is False
    assert result.message == "PDF has no pages"
    assert result.thumbnail_key is None
    assert not await storage.exists(thumbnail_key(user_id, "file-42"))
