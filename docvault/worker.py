"""
Standalone Worker

Runs a worker pool against the shared (Redis) job store, separately
from the API process.

Running the Worker:
------------------
    # From project root directory
    JOB_STORE_BACKEND=redis python -m docvault.worker

    # With custom log level
    LOG_LEVEL=DEBUG JOB_STORE_BACKEND=redis python -m docvault.worker

Worker Lifecycle:
----------------
1. Worker builds the job store and connects to Redis
2. Worker calls startup()
3. WORKER_CONCURRENCY tasks poll the store for jobs
4. On SIGINT/SIGTERM, running jobs finish, then shutdown() runs

Scaling Workers:
---------------
You can run multiple workers for parallel processing:

    # Terminal 1
    python -m docvault.worker

    # Terminal 2
    python -m docvault.worker

Each worker pulls jobs from the same Redis keys. The fetch is
atomic, so a job is only ever claimed by one worker.
"""

import asyncio
import logging
import signal

from docvault.core.config import settings
from docvault.db.database import dispose_engine
from docvault.db.redis import check_redis_connection, close_redis_pool
from docvault.jobs import JobStore, WorkerPool, create_job_store
from docvault.tasks import build_dispatcher

# ============================================================
# Logging Configuration
# ============================================================

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============================================================
# Startup and Shutdown Hooks
# ============================================================

async def startup() -> JobStore:
    """
    Called when worker starts.

    Fails fast on a misconfigured store: a standalone worker can't
    see jobs in another process's memory store.
    """
    logger.info("Worker starting up...")

    if settings.JOB_STORE_BACKEND != "redis":
        raise RuntimeError(
            "Standalone workers need JOB_STORE_BACKEND=redis "
            "(the memory store only works with inline workers)"
        )

    if not await check_redis_connection():
        raise RuntimeError(f"Redis not reachable at {settings.REDIS_URL}")

    store = create_job_store()
    logger.info("Worker ready to process jobs")
    return store


async def shutdown(store: JobStore) -> None:
    """
    Called when worker shuts down.

    Clean up resources.
    """
    logger.info("Worker shutting down...")

    await store.close()
    await close_redis_pool()
    await dispose_engine()

    logger.info("Worker shutdown complete")


# ============================================================
# Main Loop
# ============================================================

async def run_worker() -> None:
    store = await startup()
    pool = WorkerPool(store, build_dispatcher(store))

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    await pool.start()
    try:
        await stop_event.wait()
    finally:
        await pool.stop()
        await shutdown(store)


def main() -> None:
    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        logger.info("Worker interrupted")


if __name__ == "__main__":
    main()
