"""
Tests for the Redis job store.

Most tests need a real Redis server: set TEST_REDIS_URL (e.g.
redis://localhost:6379/15) to run them. Each test uses its own key
prefix and removes its keys afterwards.
"""

import os
import uuid

import pytest
from redis.asyncio import Redis
from redis.crc import key_slot

from docvault.jobs.redis_store import RedisJobStore
from docvault.schemas.processing import (
    JobState,
    JobType,
    OcrPayload,
    PdfThumbnailPayload,
    ProcessingJobResult,
)

REDIS_URL = os.getenv("TEST_REDIS_URL")

requires_redis = pytest.mark.skipif(not REDIS_URL, reason="TEST_REDIS_URL not set")


@pytest.fixture
async def redis_store():
    prefix = f"test-jobs-{uuid.uuid4().hex[:8]}"
    client = Redis.from_url(REDIS_URL, decode_responses=True)
    store = RedisJobStore(
        client,
        prefix=prefix,
        keep_completed_seconds=3600,
        keep_completed_count=100,
        keep_failed_seconds=86400,
    )
    yield store

    keys = [key async for key in client.scan_iter(match=f"{{{prefix}}}:*")]
    if keys:
        await client.delete(*keys)
    await store.close()


def test_keys_share_one_cluster_slot():
    store = RedisJobStore(Redis(), prefix="jobs")
    keys = [
        store._key("waiting"),
        store._key("delayed"),
        store._job_key("abc"),
        store._file_key("f1"),
    ]

    assert keys[0] == "{jobs}:waiting"
    assert len({key_slot(key.encode()) for key in keys}) == 1


def ocr_payload(file_id="f1"):
    return OcrPayload(file_id=file_id, user_id="u1", storage_key="u1/doc.pdf", filename="doc.pdf")


def thumbnail_payload(file_id="f1"):
    return PdfThumbnailPayload(file_id=file_id, user_id="u1", storage_key="u1/doc.pdf", filename="doc.pdf")


@requires_redis
async def test_round_trip_through_lifecycle(redis_store):
    job_id = await redis_store.enqueue(JobType.OCR, ocr_payload())

    job = await redis_store.get(job_id)
    assert job.state == JobState.WAITING
    assert job.payload.filename == "doc.pdf"

    claimed = await redis_store.fetch_next()
    assert claimed.id == job_id
    assert claimed.state == JobState.ACTIVE
    assert claimed.attempts == 1

    assert await redis_store.update_progress(job_id, 60)
    await redis_store.update_progress(job_id, 10)
    assert (await redis_store.get(job_id)).progress == 60

    assert await redis_store.complete(job_id, ProcessingJobResult(success=True, message="ok"))
    done = await redis_store.get(job_id)
    assert done.state == JobState.COMPLETED
    assert done.progress == 100
    assert done.result.message == "ok"
    assert await redis_store.fail(job_id, "late") is False


@requires_redis
async def test_priority_then_fifo(redis_store):
    ocr_first = await redis_store.enqueue(JobType.OCR, ocr_payload("a"))
    ocr_second = await redis_store.enqueue(JobType.OCR, ocr_payload("b"))
    thumb = await redis_store.enqueue(JobType.PDF_THUMBNAIL, thumbnail_payload("c"))

    order = [(await redis_store.fetch_next()).id for _ in range(3)]

    assert order == [thumb, ocr_first, ocr_second]
    assert await redis_store.fetch_next() is None


@requires_redis
async def test_retry_and_cancel(redis_store):
    job_id = await redis_store.enqueue(JobType.OCR, ocr_payload())
    await redis_store.fetch_next()

    assert await redis_store.retry(job_id, 60, "transient")
    job = await redis_store.get(job_id)
    assert job.state == JobState.WAITING
    assert job.last_error == "transient"
    assert await redis_store.fetch_next() is None

    assert await redis_store.cancel(job_id) is True
    assert await redis_store.get(job_id) is None
    assert await redis_store.list_by_file_id("f1") == []


@requires_redis
async def test_cancel_active_job_refused(redis_store):
    job_id = await redis_store.enqueue(JobType.OCR, ocr_payload())
    await redis_store.fetch_next()

    assert await redis_store.cancel(job_id) is False


@requires_redis
async def test_list_and_purge(redis_store):
    redis_store.keep_failed_seconds = 0
    first = await redis_store.enqueue(JobType.OCR, ocr_payload())
    second = await redis_store.enqueue(JobType.PDF_THUMBNAIL, thumbnail_payload())

    assert [j.id for j in await redis_store.list_by_file_id("f1")] == [first, second]

    await redis_store.fetch_next()  # thumbnail
    await redis_store.fail(second, "bad")

    assert await redis_store.purge_expired() == 1
    assert [j.id for j in await redis_store.list_by_file_id("f1")] == [first]
