"""
API tests for the processing endpoints.

The app runs without its lifespan: the database dependency points
at a throwaway SQLite file and the job store is an in-memory store,
so queued jobs can be inspected directly.
"""

import httpx
import pytest

from docvault.api.deps import get_job_store
from docvault.db.database import get_db
from docvault.main import app
from docvault.repositories.file_repo import FileRepository
from docvault.schemas.processing import ImageFormat, JobState, JobType, OcrMode, ProcessingJobResult

OWNER = "user-owner"
OTHER = "user-other"
PREFIX = "/api/v1/processing"


@pytest.fixture
async def files(session_factory):
    """Seed one file of each kind plus a folder, all owned by OWNER."""
    async with session_factory() as session:
        repo = FileRepository(session)
        folder_id = await repo.insert_folder(user_id=OWNER, name="Work")
        ids = {"folder": folder_id}
        for kind, name, mime in [
            ("pdf", "Quarterly Report.pdf", "application/pdf"),
            ("image", "photo.jpg", "image/jpeg"),
            ("text", "notes.txt", "text/plain"),
        ]:
            ids[kind] = await repo.insert_file(
                user_id=OWNER,
                name=name,
                storage_key=f"{OWNER}/1-x-{name}",
                mime_type=mime,
                size_bytes=100,
            )
        return ids


@pytest.fixture
async def client(session_factory, store):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_job_store] = lambda: store

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def as_user(user_id):
    return {"X-User-Id": user_id}


# ============================================================
# QUEUEING
# ============================================================

async def test_split_queues_job_with_default_prefix(client, store, files):
    response = await client.post(f"{PREFIX}/files/{files['pdf']}/split", headers=as_user(OWNER))

    assert response.status_code == 202
    body = response.json()
    assert body["message"] == "PDF split job queued"

    job = await store.get(body["job_id"])
    assert job.type == JobType.PDF_SPLIT
    assert job.priority == 2
    assert job.payload.output_name_prefix == "Quarterly Report copy"
    assert job.payload.folder_id is None
    assert job.payload.storage_key == f"{OWNER}/1-x-Quarterly Report.pdf"


async def test_split_into_named_folder(client, store, files):
    response = await client.post(
        f"{PREFIX}/files/{files['pdf']}/split",
        json={"output_name_prefix": "Pages", "folder_id": files["folder"]},
        headers=as_user(OWNER),
    )

    assert response.status_code == 202
    job = await store.get(response.json()["job_id"])
    assert job.payload.output_name_prefix == "Pages"
    assert job.payload.folder_id == files["folder"]


async def test_split_rejects_non_pdf(client, files):
    response = await client.post(f"{PREFIX}/files/{files['image']}/split", headers=as_user(OWNER))

    assert response.status_code == 400
    assert response.json()["detail"] == "Only PDF files can be split"


async def test_split_unknown_folder(client, files):
    response = await client.post(
        f"{PREFIX}/files/{files['pdf']}/split",
        json={"folder_id": "no-such-folder"},
        headers=as_user(OWNER),
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Folder not found"


async def test_other_users_file_is_not_found(client, store, files):
    response = await client.post(f"{PREFIX}/files/{files['pdf']}/thumbnail", headers=as_user(OTHER))

    assert response.status_code == 404
    assert response.json()["detail"] == "File not found"
    assert await store.list_by_file_id(files["pdf"]) == []


async def test_missing_user_header_is_unauthorized(client, files):
    response = await client.post(f"{PREFIX}/files/{files['pdf']}/thumbnail")

    assert response.status_code == 401


async def test_convert_image(client, store, files):
    response = await client.post(
        f"{PREFIX}/files/{files['image']}/convert",
        json={"target_format": "webp", "quality": 60},
        headers=as_user(OWNER),
    )

    assert response.status_code == 202
    assert response.json()["message"] == "Image conversion to WEBP queued"

    job = await store.get(response.json()["job_id"])
    assert job.payload.target_format == ImageFormat.WEBP
    assert job.payload.quality == 60


async def test_convert_defaults_quality(client, store, files):
    response = await client.post(
        f"{PREFIX}/files/{files['image']}/convert",
        json={"target_format": "png"},
        headers=as_user(OWNER),
    )

    job = await store.get(response.json()["job_id"])
    assert job.payload.quality == 80


async def test_convert_rejects_bad_quality(client, files):
    response = await client.post(
        f"{PREFIX}/files/{files['image']}/convert",
        json={"target_format": "jpeg", "quality": 0},
        headers=as_user(OWNER),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Quality must be between 1 and 100"


async def test_convert_rejects_unknown_format(client, files):
    response = await client.post(
        f"{PREFIX}/files/{files['image']}/convert",
        json={"target_format": "gif"},
        headers=as_user(OWNER),
    )

    assert response.status_code == 422


async def test_convert_rejects_pdf(client, files):
    response = await client.post(
        f"{PREFIX}/files/{files['pdf']}/convert",
        json={"target_format": "png"},
        headers=as_user(OWNER),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Only image files can be converted"


@pytest.mark.parametrize(
    "mode, message",
    [
        ("extract", "OCR job queued"),
        ("summary", "summarization job queued"),
        ("both", "OCR + summarization job queued"),
    ],
)
async def test_ocr_messages(client, store, files, mode, message):
    response = await client.post(
        f"{PREFIX}/files/{files['pdf']}/ocr",
        json={"mode": mode},
        headers=as_user(OWNER),
    )

    assert response.status_code == 202
    assert response.json()["message"] == message

    job = await store.get(response.json()["job_id"])
    assert job.priority == 3
    assert job.payload.mode == OcrMode(mode)
    assert job.payload.language == "eng"


async def test_ocr_rejects_text_file(client, files):
    response = await client.post(f"{PREFIX}/files/{files['text']}/ocr", headers=as_user(OWNER))

    assert response.status_code == 400
    assert response.json()["detail"] == "OCR is only supported for PDF and image files"


async def test_thumbnail_has_top_priority(client, store, files):
    response = await client.post(f"{PREFIX}/files/{files['pdf']}/thumbnail", headers=as_user(OWNER))

    assert response.status_code == 202
    assert response.json()["message"] == "PDF thumbnail generation queued"
    assert (await store.get(response.json()["job_id"])).priority == 1


async def test_thumbnail_rejects_image(client, files):
    response = await client.post(f"{PREFIX}/files/{files['image']}/thumbnail", headers=as_user(OWNER))

    assert response.status_code == 400


# ============================================================
# STATUS & CANCELLATION
# ============================================================

async def _queue_ocr(client, files):
    response = await client.post(f"{PREFIX}/files/{files['pdf']}/ocr", headers=as_user(OWNER))
    return response.json()["job_id"]


async def test_job_status_lifecycle(client, store, files):
    job_id = await _queue_ocr(client, files)

    response = await client.get(f"{PREFIX}/jobs/{job_id}", headers=as_user(OWNER))
    assert response.status_code == 200
    assert response.json()["status"] == "waiting"
    assert response.json()["progress"] == 0
    assert response.json()["type"] == "ocr"

    await store.fetch_next()
    await store.update_progress(job_id, 45)
    assert (await client.get(f"{PREFIX}/jobs/{job_id}", headers=as_user(OWNER))).json()["progress"] == 45

    await store.complete(job_id, ProcessingJobResult(success=True, message="Extracted"))
    body = (await client.get(f"{PREFIX}/jobs/{job_id}", headers=as_user(OWNER))).json()
    assert body["status"] == "completed"
    assert body["progress"] == 100
    assert body["result"]["message"] == "Extracted"
    assert body["finished_at"] is not None


async def test_job_status_hidden_from_other_users(client, files):
    job_id = await _queue_ocr(client, files)

    response = await client.get(f"{PREFIX}/jobs/{job_id}", headers=as_user(OTHER))

    assert response.status_code == 404
    assert response.json()["detail"] == "Job not found"


async def test_unknown_job_status(client):
    response = await client.get(f"{PREFIX}/jobs/nope", headers=as_user(OWNER))

    assert response.status_code == 404


async def test_list_jobs_for_file(client, files):
    first = await _queue_ocr(client, files)
    second = (await client.post(
        f"{PREFIX}/files/{files['pdf']}/thumbnail", headers=as_user(OWNER)
    )).json()["job_id"]

    response = await client.get(f"{PREFIX}/files/{files['pdf']}/jobs", headers=as_user(OWNER))

    assert response.status_code == 200
    assert [job["job_id"] for job in response.json()["jobs"]] == [first, second]

    response = await client.get(f"{PREFIX}/files/{files['pdf']}/jobs", headers=as_user(OTHER))
    assert response.status_code == 404


async def test_cancel_waiting_job(client, store, files):
    job_id = await _queue_ocr(client, files)

    response = await client.delete(f"{PREFIX}/jobs/{job_id}", headers=as_user(OWNER))

    assert response.status_code == 200
    assert response.json() == {"message": "Job cancelled"}
    assert await store.get(job_id) is None

    again = await client.delete(f"{PREFIX}/jobs/{job_id}", headers=as_user(OWNER))
    assert again.status_code == 400
    assert again.json()["detail"] == "Job not found or already started"


async def test_cannot_cancel_started_job(client, store, files):
    job_id = await _queue_ocr(client, files)
    await store.fetch_next()

    response = await client.delete(f"{PREFIX}/jobs/{job_id}", headers=as_user(OWNER))

    assert response.status_code == 400
    assert (await store.get(job_id)).state == JobState.ACTIVE


async def test_cannot_cancel_other_users_job(client, store, files):
    job_id = await _queue_ocr(client, files)

    response = await client.delete(f"{PREFIX}/jobs/{job_id}", headers=as_user(OTHER))

    assert response.status_code == 400
    assert (await store.get(job_id)).state == JobState.WAITING


# ============================================================
# HEALTH
# ============================================================

async def test_health_reports_database_state(client, monkeypatch):
    import docvault.main as main_module

    async def db_down():
        return False

    monkeypatch.setattr(main_module.settings, "JOB_STORE_BACKEND", "memory")
    monkeypatch.setattr(main_module, "check_db_connection", db_down)

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["database"] == "disconnected"
    assert response.json()["job_store"] == "memory"
