"""
In-Memory Job Store

Single-process job store for development and tests.

All mutations happen under one asyncio.Lock, which is what makes
fetch_next safe with several worker tasks polling at once. Jobs
handed out are deep copies: callers can't change stored state
except through the store's methods.
"""

import logging
import asyncio
from datetime import timedelta
from typing import Optional

from docvault.jobs.base import JobStore, clamp_progress, utcnow
from docvault.schemas.processing import (
    BaseJobPayload,
    Job,
    JobState,
    JobType,
    ProcessingJobResult,
)

logger = logging.getLogger(__name__)


class InMemoryJobStore(JobStore):
    """
    Job store backed by a dict.

    Jobs are lost on restart, and only workers in the same
    process can see them.
    """

    def __init__(self, **retention):
        super().__init__(**retention)
        self._jobs: dict[str, Job] = {}
        self._seq = 0
        self._lock = asyncio.Lock()

    async def enqueue(
        self,
        job_type: JobType,
        payload: BaseJobPayload,
        priority: Optional[int] = None,
    ) -> str:
        async with self._lock:
            self._seq += 1
            job = self._build_job(job_type, payload, priority, self._seq)
            self._jobs[job.id] = job

        logger.info(
            f"Queued {job.type.value} job {job.id} for file {job.file_id} "
            f"(priority {job.priority})"
        )
        return job.id

    async def fetch_next(self) -> Optional[Job]:
        async with self._lock:
            now = utcnow()
            due = [
                job for job in self._jobs.values()
                if job.state == JobState.WAITING and job.available_at <= now
            ]
            if not due:
                return None

            job = min(due, key=lambda j: (j.priority, j.seq))
            job.state = JobState.ACTIVE
            job.attempts += 1
            job.started_at = now
            return job.model_copy(deep=True)

    async def update_progress(self, job_id: str, percent: int) -> bool:
        async with self._lock:
            job = self._active(job_id)
            if job is None:
                return False
            job.progress = max(job.progress, clamp_progress(percent))
            return True

    async def complete(self, job_id: str, result: ProcessingJobResult) -> bool:
        async with self._lock:
            job = self._active(job_id)
            if job is None:
                return False
            job.state = JobState.COMPLETED
            job.progress = 100
            job.result = result
            job.finished_at = utcnow()
            return True

    async def fail(self, job_id: str, error: str) -> bool:
        async with self._lock:
            job = self._active(job_id)
            if job is None:
                return False
            job.state = JobState.FAILED
            job.error = error
            job.last_error = error
            job.finished_at = utcnow()
            return True

    async def retry(self, job_id: str, delay_seconds: float, error: str) -> bool:
        async with self._lock:
            job = self._active(job_id)
            if job is None:
                return False
            job.state = JobState.WAITING
            job.last_error = error
            job.available_at = utcnow() + timedelta(seconds=delay_seconds)
            return True

    async def cancel(self, job_id: str) -> bool:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state != JobState.WAITING:
                return False
            del self._jobs[job_id]

        logger.info(f"Cancelled job {job_id}")
        return True

    async def get(self, job_id: str) -> Optional[Job]:
        async with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    async def list_by_file_id(self, file_id: str) -> list[Job]:
        async with self._lock:
            jobs = [j for j in self._jobs.values() if j.file_id == file_id]
            jobs.sort(key=lambda j: (j.created_at, j.seq))
            return [j.model_copy(deep=True) for j in jobs]

    async def purge_expired(self) -> int:
        async with self._lock:
            now = utcnow()
            completed_cutoff = self._completed_cutoff(now)
            failed_cutoff = self._failed_cutoff(now)

            expired = set()
            completed = []
            for job in self._jobs.values():
                if job.state == JobState.COMPLETED:
                    if job.finished_at <= completed_cutoff:
                        expired.add(job.id)
                    else:
                        completed.append(job)
                elif job.state == JobState.FAILED and job.finished_at <= failed_cutoff:
                    expired.add(job.id)

            # Count cap: keep only the most recently finished completed jobs
            completed.sort(key=lambda j: (j.finished_at, j.seq), reverse=True)
            for job in completed[self.keep_completed_count:]:
                expired.add(job.id)

            for job_id in expired:
                del self._jobs[job_id]

        if expired:
            logger.info(f"Purged {len(expired)} expired jobs")
        return len(expired)

    def _active(self, job_id: str) -> Optional[Job]:
        job = self._jobs.get(job_id)
        if job is None or job.state != JobState.ACTIVE:
            return None
        return job
