"""
Jobs Module

Priority job queue, dispatcher and worker pool for file processing.
The active store is determined by configuration (JOB_STORE_BACKEND).

    memory  - single process; API must run the workers inline
    redis   - shared by the API and any number of worker processes
"""

from docvault.core.config import settings
from docvault.jobs.base import JobStore
from docvault.jobs.dispatcher import Dispatcher, WorkerPool
from docvault.jobs.errors import (
    JobError,
    JobConfigurationError,
    NonRetryableJobError,
    JobValidationError,
    JobTimeoutError,
    UnprocessableDocumentError,
)
from docvault.jobs.memory import InMemoryJobStore
from docvault.jobs.redis_store import RedisJobStore


def create_job_store() -> JobStore:
    """
    Build the job store selected by JOB_STORE_BACKEND.

    Not a singleton: the API lifespan and the worker entry point
    each build one and pass it to whoever needs it.
    """
    backend = settings.JOB_STORE_BACKEND.lower()

    if backend == "memory":
        return InMemoryJobStore()

    if backend == "redis":
        from docvault.db.redis import get_redis
        return RedisJobStore(get_redis(), prefix=settings.JOB_QUEUE_NAME)

    raise ValueError(
        f"Unknown job store backend: {backend}. "
        f"Valid options: memory, redis"
    )


__all__ = [
    "create_job_store",
    "JobStore",
    "InMemoryJobStore",
    "RedisJobStore",
    "Dispatcher",
    "WorkerPool",
    "JobError",
    "JobConfigurationError",
    "NonRetryableJobError",
    "JobValidationError",
    "JobTimeoutError",
    "UnprocessableDocumentError",
]
