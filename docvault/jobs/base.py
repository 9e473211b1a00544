"""
Job Store Abstract Base Class

The job store is the queue AND the source of truth for job state.
Two implementations:
- InMemoryJobStore: single process, good for development and tests
- RedisJobStore: shared by any number of API / worker processes

State machine enforced by every implementation:

    enqueue ──► waiting ──fetch_next──► active ──complete──► completed
                  ▲  │                    │
                  │  └──cancel──► (gone)  ├──fail──► failed
                  └──────retry────────────┘

Operations on a missing job (or a job in the wrong state) return
None / False. They never raise.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional

from docvault.core.config import settings
from docvault.schemas.processing import (
    JOB_PRIORITIES,
    BaseJobPayload,
    Job,
    JobType,
    ProcessingJobResult,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_progress(percent: int) -> int:
    """
    Progress while active stays within 0-99.

    100 is reserved for complete(), so a client seeing 100
    knows the result is available.
    """
    return max(0, min(99, int(percent)))


class JobStore(ABC):
    """
    Abstract base class for job stores.

    Attributes:
        keep_completed_seconds: Age after which completed jobs are purged
        keep_completed_count: Max number of completed jobs retained
        keep_failed_seconds: Age after which failed jobs are purged
    """

    def __init__(
        self,
        keep_completed_seconds: Optional[int] = None,
        keep_completed_count: Optional[int] = None,
        keep_failed_seconds: Optional[int] = None,
    ):
        self.keep_completed_seconds = (
            settings.KEEP_COMPLETED_SECONDS
            if keep_completed_seconds is None else keep_completed_seconds
        )
        self.keep_completed_count = (
            settings.KEEP_COMPLETED_COUNT
            if keep_completed_count is None else keep_completed_count
        )
        self.keep_failed_seconds = (
            settings.KEEP_FAILED_SECONDS
            if keep_failed_seconds is None else keep_failed_seconds
        )

    # ============================================================
    # PRODUCER SIDE
    # ============================================================

    @abstractmethod
    async def enqueue(
        self,
        job_type: JobType,
        payload: BaseJobPayload,
        priority: Optional[int] = None,
    ) -> str:
        """
        Record a new waiting job and return its id immediately.

        Args:
            job_type: Dispatch key, must match payload.type
            payload: Typed payload for the job
            priority: Lower runs first (defaults to JOB_PRIORITIES[job_type])
        """
        pass

    @abstractmethod
    async def cancel(self, job_id: str) -> bool:
        """
        Remove a job that hasn't started yet.

        Returns:
            True if the job was waiting (due or pending retry) and is
            now gone; False if it is active, terminal or unknown.
        """
        pass

    # ============================================================
    # CONSUMER SIDE
    # ============================================================

    @abstractmethod
    async def fetch_next(self) -> Optional[Job]:
        """
        Claim the highest-priority, oldest due waiting job.

        The job moves to active and its attempts counter is
        incremented before it is returned. Two concurrent callers
        never receive the same job.

        Returns:
            The claimed job, or None if nothing is due
        """
        pass

    @abstractmethod
    async def update_progress(self, job_id: str, percent: int) -> bool:
        """Set progress (clamped to 0-99, never decreasing). Active jobs only."""
        pass

    @abstractmethod
    async def complete(self, job_id: str, result: ProcessingJobResult) -> bool:
        """active → completed, progress 100."""
        pass

    @abstractmethod
    async def fail(self, job_id: str, error: str) -> bool:
        """active → failed."""
        pass

    @abstractmethod
    async def retry(self, job_id: str, delay_seconds: float, error: str) -> bool:
        """
        active → waiting, not due before now + delay_seconds.

        The job keeps its id and attempts counter; error is kept
        as last_error.
        """
        pass

    # ============================================================
    # QUERIES & MAINTENANCE
    # ============================================================

    @abstractmethod
    async def get(self, job_id: str) -> Optional[Job]:
        pass

    @abstractmethod
    async def list_by_file_id(self, file_id: str) -> list[Job]:
        """All retained jobs for a file, oldest first."""
        pass

    @abstractmethod
    async def purge_expired(self) -> int:
        """
        Drop terminal jobs outside the retention window.

        Returns:
            Number of jobs removed
        """
        pass

    async def close(self) -> None:
        """Release connections. Nothing to do by default."""
        return None

    # ============================================================
    # HELPERS
    # ============================================================

    def _build_job(
        self,
        job_type: JobType,
        payload: BaseJobPayload,
        priority: Optional[int],
        seq: int,
    ) -> Job:
        job_type = JobType(job_type)
        if payload.type != job_type.value:
            raise ValueError(
                f"Payload type '{payload.type}' does not match job type '{job_type.value}'"
            )

        now = utcnow()
        return Job(
            id=str(uuid.uuid4()),
            type=job_type,
            payload=payload,
            priority=JOB_PRIORITIES[job_type] if priority is None else priority,
            created_at=now,
            available_at=now,
            seq=seq,
        )

    def _completed_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(seconds=self.keep_completed_seconds)

    def _failed_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(seconds=self.keep_failed_seconds)
