"""Tests for file helpers, PDF helpers and local storage."""

import re

import pytest

from conftest import build_blank_pdf, build_image, build_text_pdf
from docvault.jobs.errors import UnprocessableDocumentError
from docvault.storage.base import FileNotFoundError as StorageFileNotFoundError
from docvault.storage.base import StorageError
from docvault.utils.file_utils import (
    detect_image_mime,
    get_base_name,
    is_image_mime,
    is_pdf_filename,
    replace_extension,
    sanitize_storage_name,
)
from docvault.utils.pdf_utils import extract_text, open_pdf, render_pages


# ============================================================
# FILE UTILS
# ============================================================

@pytest.mark.parametrize(
    "name, expected",
    [
        ("Page 1.pdf", "Page_1.pdf"),
        ("my  résumé!!.png", "my_r_sum_.png"),
        ("already_safe-name.v2.txt", "already_safe-name.v2.txt"),
        ("../../etc/passwd", ".._.._etc_passwd"),
    ],
)
def test_sanitize_storage_name(name, expected):
    assert sanitize_storage_name(name) == expected


def test_sanitize_storage_name_truncates():
    assert len(sanitize_storage_name("a" * 400 + ".pdf")) == 255


def test_name_helpers():
    assert get_base_name("Quarterly Report.pdf") == "Quarterly Report"
    assert get_base_name("archive.tar.gz") == "archive.tar"
    assert replace_extension("photo.jpeg", "png") == "photo.png"
    assert replace_extension("noext", "webp") == "noext.webp"
    assert is_pdf_filename("SCAN.PDF")
    assert not is_pdf_filename("scan.pdf.png")


def test_mime_helpers():
    assert is_image_mime("image/png")
    assert not is_image_mime("application/pdf")
    assert not is_image_mime(None)

    assert detect_image_mime(build_image("JPEG")) == "image/jpeg"
    assert detect_image_mime(build_image("WEBP")) == "image/webp"
    assert detect_image_mime(build_image("BMP")) == "image/png"


# ============================================================
# PDF UTILS
# ============================================================

def test_open_pdf_rejects_garbage():
    with pytest.raises(UnprocessableDocumentError):
        open_pdf(b"not a pdf")


def test_extract_text_reads_text_layer():
    pdf = extract_text(build_text_pdf(pages=2))

    assert pdf.page_count == 2
    assert "Page 1" in pdf.text
    assert pdf.avg_chars_per_page > 50


def test_extract_text_of_blank_pdf():
    pdf = extract_text(build_blank_pdf(pages=3))

    assert pdf.page_count == 3
    assert pdf.text == ""
    assert pdf.avg_chars_per_page == 0


def test_render_pages_returns_pngs():
    total, images = render_pages(build_blank_pdf(pages=4), max_pages=2, scale=0.5)

    assert total == 4
    assert len(images) == 2
    assert all(png.startswith(b"\x89PNG") for png in images)


# ============================================================
# LOCAL STORAGE
# ============================================================

async def test_save_and_get(storage):
    stored = await storage.save(b"hello", "u1/a.txt", content_type="text/plain")

    assert stored.size == 5
    assert stored.content_type == "text/plain"
    assert await storage.get("u1/a.txt") == b"hello"
    assert await storage.exists("u1/a.txt")
    assert await storage.get_size("u1/a.txt") == 5


async def test_save_overwrites(storage):
    await storage.save(b"old", "thumbnails/u1/f1.pdf")
    await storage.save(b"new content", "thumbnails/u1/f1.pdf")

    assert await storage.get("thumbnails/u1/f1.pdf") == b"new content"


async def test_missing_blob(storage):
    with pytest.raises(StorageFileNotFoundError):
        await storage.get("u1/missing.pdf")
    assert not await storage.exists("u1/missing.pdf")


async def test_delete(storage):
    await storage.save(b"x", "u1/x.bin")

    assert await storage.delete("u1/x.bin") is True
    assert await storage.delete("u1/x.bin") is False


async def test_path_traversal_rejected(storage):
    with pytest.raises(StorageError):
        await storage.save(b"x", "../outside.txt")
    assert not await storage.exists("../../etc/passwd")


def test_generate_key_format(storage):
    key = storage.generate_key("user-1", "Page 3.pdf")

    assert re.fullmatch(r"user-1/\d{13}-[0-9a-f-]{36}-Page_3\.pdf", key)
    assert key != storage.generate_key("user-1", "Page 3.pdf")


def test_get_storage_uses_configured_directory(tmp_path, monkeypatch):
    from docvault.core.config import settings
    from docvault.storage import LocalStorage, get_storage, reset_storage

    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    reset_storage()
    try:
        backend = get_storage()
        assert isinstance(backend, LocalStorage)
        assert backend.base_path == tmp_path / "uploads"
        assert get_storage() is backend
    finally:
        reset_storage()
