"""
Job Dispatcher and Worker Pool

The dispatcher runs ONE job: it picks the handler for the job type,
gives it a progress callback, and records the outcome in the job
store. The worker pool keeps N asyncio tasks pulling jobs from the
store and feeding them to the dispatcher.

Retry Policy:
------------
- Handler returns              → complete
- NonRetryableJobError         → fail now (same input, same failure)
- Anything else (incl. JobTimeoutError):
    attempts < max_attempts    → retry after base_delay * 2^(attempts-1)
    otherwise                  → fail with the error message

With the defaults (3 attempts, 1s base) a job that always errors
runs at t=0, t≈1s, t≈3s and is then marked failed.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Awaitable, Callable, Mapping, Optional

from docvault.core.config import settings
from docvault.jobs.base import JobStore
from docvault.jobs.errors import (
    JobConfigurationError,
    JobError,
    JobTimeoutError,
    JobValidationError,
    NonRetryableJobError,
)
from docvault.schemas.processing import Job, JobType, ProcessingJobResult

logger = logging.getLogger(__name__)

ProgressReporter = Callable[[int], Awaitable[None]]
Handler = Callable[[Any, Any], Awaitable[ProcessingJobResult]]
# Builds whatever a handler needs for one job (storage, DB session, AI...)
ContextFactory = Callable[[ProgressReporter], AbstractAsyncContextManager]


class Dispatcher:
    """
    Runs jobs through their handlers and applies the retry policy.

    Args:
        store: Job store to report progress and outcomes to
        handlers: Handler per JobType; must cover every JobType
        context_factory: Opens the per-job handler context
        max_attempts: Total attempts per job (first run included)
        retry_base_delay: Seconds before the first retry
        timeout: Wall-clock seconds per attempt (0/None disables)

    Raises:
        JobConfigurationError: If a JobType has no handler
    """

    def __init__(
        self,
        store: JobStore,
        handlers: Mapping[JobType, Handler],
        context_factory: ContextFactory,
        max_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        missing = [t.value for t in JobType if t not in handlers]
        if missing:
            raise JobConfigurationError(
                f"No handler registered for job type(s): {', '.join(missing)}"
            )

        self.store = store
        self.handlers = dict(handlers)
        self.context_factory = context_factory
        self.max_attempts = max_attempts or settings.JOB_MAX_ATTEMPTS
        self.retry_base_delay = (
            settings.JOB_RETRY_BASE_DELAY_SECONDS
            if retry_base_delay is None else retry_base_delay
        )
        self.timeout = settings.JOB_TIMEOUT_SECONDS if timeout is None else timeout

    def backoff_delay(self, attempts: int) -> float:
        """Delay before the next attempt, after `attempts` attempts so far."""
        return self.retry_base_delay * (2 ** (attempts - 1))

    async def run_once(self) -> bool:
        """
        Fetch and process one job.

        Returns:
            False if there was nothing to do
        """
        job = await self.store.fetch_next()
        if job is None:
            return False
        await self.process(job)
        return True

    async def process(self, job: Job) -> None:
        """
        Run a claimed (active) job to an outcome.

        Handler exceptions never escape this method: the job always
        ends up completed, failed, or scheduled for retry.
        """
        logger.info(
            f"Processing {job.type.value} job {job.id} "
            f"(attempt {job.attempts}/{self.max_attempts})"
        )

        async def report(percent: int) -> None:
            logger.debug(f"Job {job.id} progress: {percent}%")
            await self.store.update_progress(job.id, percent)

        try:
            result = await self._run_handler(job, report)

        except NonRetryableJobError as e:
            logger.error(f"Job {job.id} failed permanently: {e}")
            await self.store.fail(job.id, str(e))
            return

        except Exception as e:
            logger.exception(f"Job {job.id} raised {e.__class__.__name__}")
            await self._handle_failure(job, str(e) or e.__class__.__name__)
            return

        await self.store.complete(job.id, result)
        logger.info(f"Job {job.id} completed: {result.message}")

    async def _run_handler(self, job: Job, report: ProgressReporter) -> ProcessingJobResult:
        if job.payload.type != job.type.value:
            raise JobValidationError(
                f"Payload for {job.payload.type} cannot run as a {job.type.value} job"
            )

        handler = self.handlers[job.type]

        async with self.context_factory(report) as ctx:
            if not self.timeout:
                return await handler(job.payload, ctx)

            async def run() -> ProcessingJobResult:
                # Keep a handler's own timeouts apart from the deadline below
                try:
                    return await handler(job.payload, ctx)
                except asyncio.TimeoutError as e:
                    raise JobError(str(e) or e.__class__.__name__) from e

            try:
                return await asyncio.wait_for(run(), self.timeout)
            except asyncio.TimeoutError:
                raise JobTimeoutError(f"Job timed out after {self.timeout}s") from None

    async def _handle_failure(self, job: Job, error: str) -> None:
        if job.attempts < self.max_attempts:
            delay = self.backoff_delay(job.attempts)
            await self.store.retry(job.id, delay, error)
            logger.warning(
                f"Job {job.id} attempt {job.attempts} failed: {error}. "
                f"Retrying in {delay:.1f}s"
            )
        else:
            await self.store.fail(job.id, error)
            logger.error(
                f"Job {job.id} failed after {job.attempts} attempts: {error}"
            )


class WorkerPool:
    """
    N concurrent workers pulling from one job store.

    Each worker processes one job to completion before fetching the
    next, so at most `concurrency` jobs run at a time per pool. A
    separate task purges expired jobs every `cleanup_interval` seconds.
    """

    def __init__(
        self,
        store: JobStore,
        dispatcher: Dispatcher,
        concurrency: Optional[int] = None,
        poll_delay: Optional[float] = None,
        cleanup_interval: Optional[float] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.concurrency = concurrency or settings.WORKER_CONCURRENCY
        self.poll_delay = poll_delay or settings.WORKER_POLL_DELAY
        self.cleanup_interval = cleanup_interval or settings.CLEANUP_INTERVAL_SECONDS

        self._tasks: list[asyncio.Task] = []
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return bool(self._tasks) and not self._stopping.is_set()

    async def start(self) -> None:
        if self._tasks:
            return

        self._stopping.clear()
        for i in range(self.concurrency):
            self._tasks.append(
                asyncio.create_task(self._worker(i), name=f"worker-{i}")
            )
        self._tasks.append(
            asyncio.create_task(self._cleanup_loop(), name="job-cleanup")
        )
        logger.info(f"Worker pool started ({self.concurrency} workers)")

    async def stop(self, timeout: float = 30.0) -> None:
        """
        Stop fetching new jobs and wait for running ones.

        Jobs still running after `timeout` are cancelled and stay
        active in the store.
        """
        if not self._tasks:
            return

        self._stopping.set()
        done, pending = await asyncio.wait(self._tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"Cancelled {len(pending)} worker task(s) on shutdown")

        self._tasks = []
        logger.info("Worker pool stopped")

    async def _worker(self, index: int) -> None:
        logger.debug(f"Worker {index} started")

        while not self._stopping.is_set():
            try:
                processed = await self.dispatcher.run_once()
            except Exception as e:
                # Store unreachable etc. Keep the worker alive and back off.
                logger.error(f"Worker {index} error: {e}")
                processed = False

            if not processed:
                await self._sleep(self.poll_delay)

        logger.debug(f"Worker {index} stopped")

    async def _cleanup_loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.store.purge_expired()
            except Exception as e:
                logger.error(f"Job cleanup failed: {e}")
            await self._sleep(self.cleanup_interval)

    async def _sleep(self, delay: float) -> None:
        """Sleep, waking early if the pool is stopping."""
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
