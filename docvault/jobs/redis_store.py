"""
Redis Job Store

Job store shared by any number of API and worker processes.

Key Layout ({prefix} = JOB_QUEUE_NAME):
--------------------------------------
Every key starts with the hash tag {prefix}, braces included, so the
whole queue lives in one Redis Cluster slot. FETCH_NEXT_LUA and
CANCEL_LUA build job and file-index key names from an ARGV prefix
rather than KEYS; the shared slot keeps that working on a cluster,
but those keys are invisible to server-side key tracking.

{prefix}:seq                  INCR counter, enqueue order
{prefix}:job:{id}             HASH, one job (see _to_hash)
{prefix}:waiting              ZSET, due jobs, score = priority * 10^12 + seq
{prefix}:delayed              ZSET, jobs waiting out a retry, score = available_at (ms)
{prefix}:active               SET, jobs a worker has claimed
{prefix}:completed            ZSET, score = finished_at (ms)
{prefix}:failed               ZSET, score = finished_at (ms)
{prefix}:file:{file_id}       ZSET, all jobs for a file, score = seq

Every state transition is one Lua script, so it is atomic with
respect to other processes: two workers can never claim the same
job, and a cancel can't race a fetch.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import TypeAdapter
from redis.asyncio import Redis

from docvault.jobs.base import JobStore, clamp_progress, utcnow
from docvault.schemas.processing import (
    BaseJobPayload,
    Job,
    JobPayload,
    JobState,
    JobType,
    ProcessingJobResult,
)

logger = logging.getLogger(__name__)

# Priority dominates, seq breaks ties (FIFO within a priority)
PRIORITY_SCALE = 10 ** 12

_payload_adapter = TypeAdapter(JobPayload)


# ============================================================
# LUA SCRIPTS
# ============================================================

# KEYS: waiting, delayed, active
# ARGV: now_ms, job key prefix
FETCH_NEXT_LUA = """
local due = redis.call('ZRANGEBYSCORE', KEYS[2], '-inf', ARGV[1])
for _, id in ipairs(due) do
  redis.call('ZREM', KEYS[2], id)
  local rank = redis.call('HGET', ARGV[2] .. id, 'rank')
  if rank then
    redis.call('ZADD', KEYS[1], rank, id)
  end
end
local popped = redis.call('ZPOPMIN', KEYS[1])
if #popped == 0 then
  return false
end
local id = popped[1]
local key = ARGV[2] .. id
redis.call('HSET', key, 'state', 'active', 'started_at', ARGV[1])
redis.call('HINCRBY', key, 'attempts', 1)
redis.call('SADD', KEYS[3], id)
return id
"""

# KEYS: job
# ARGV: percent
PROGRESS_LUA = """
if redis.call('HGET', KEYS[1], 'state') ~= 'active' then
  return 0
end
local current = tonumber(redis.call('HGET', KEYS[1], 'progress') or '0')
local percent = tonumber(ARGV[1])
if percent > current then
  redis.call('HSET', KEYS[1], 'progress', percent)
end
return 1
"""

# KEYS: job, active, completed
# ARGV: id, result json, now_ms
COMPLETE_LUA = """
if redis.call('HGET', KEYS[1], 'state') ~= 'active' then
  return 0
end
redis.call('HSET', KEYS[1], 'state', 'completed', 'progress', 100,
           'result', ARGV[2], 'finished_at', ARGV[3])
redis.call('SREM', KEYS[2], ARGV[1])
redis.call('ZADD', KEYS[3], ARGV[3], ARGV[1])
return 1
"""

# KEYS: job, active, failed
# ARGV: id, error, now_ms
FAIL_LUA = """
if redis.call('HGET', KEYS[1], 'state') ~= 'active' then
  return 0
end
redis.call('HSET', KEYS[1], 'state', 'failed', 'error', ARGV[2],
           'last_error', ARGV[2], 'finished_at', ARGV[3])
redis.call('SREM', KEYS[2], ARGV[1])
redis.call('ZADD', KEYS[3], ARGV[3], ARGV[1])
return 1
"""

# KEYS: job, active, delayed
# ARGV: id, available_at_ms, error
RETRY_LUA = """
if redis.call('HGET', KEYS[1], 'state') ~= 'active' then
  return 0
end
redis.call('HSET', KEYS[1], 'state', 'waiting', 'available_at', ARGV[2],
           'last_error', ARGV[3])
redis.call('SREM', KEYS[2], ARGV[1])
redis.call('ZADD', KEYS[3], ARGV[2], ARGV[1])
return 1
"""

# KEYS: job, waiting, delayed
# ARGV: id, file index key prefix
CANCEL_LUA = """
if redis.call('HGET', KEYS[1], 'state') ~= 'waiting' then
  return 0
end
local file_id = redis.call('HGET', KEYS[1], 'file_id')
redis.call('ZREM', KEYS[2], ARGV[1])
redis.call('ZREM', KEYS[3], ARGV[1])
redis.call('DEL', KEYS[1])
if file_id then
  redis.call('ZREM', ARGV[2] .. file_id, ARGV[1])
end
return 1
"""


def _to_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_ms(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


class RedisJobStore(JobStore):
    """
    Job store backed by Redis (redis.asyncio).

    Args:
        redis: Client created with decode_responses=True
        prefix: Key namespace, so several queues can share a database
    """

    def __init__(self, redis: Redis, prefix: str = "file-processing", **retention):
        super().__init__(**retention)
        self.redis = redis
        self.prefix = prefix
        # Hash tag: every key of this queue hashes to one cluster slot
        self.namespace = f"{{{prefix}}}"

        self._fetch_next = redis.register_script(FETCH_NEXT_LUA)
        self._progress = redis.register_script(PROGRESS_LUA)
        self._complete = redis.register_script(COMPLETE_LUA)
        self._fail = redis.register_script(FAIL_LUA)
        self._retry = redis.register_script(RETRY_LUA)
        self._cancel = redis.register_script(CANCEL_LUA)

    # ============================================================
    # KEYS
    # ============================================================

    def _key(self, name: str) -> str:
        return f"{self.namespace}:{name}"

    def _job_key(self, job_id: str) -> str:
        return f"{self.namespace}:job:{job_id}"

    def _file_key(self, file_id: str) -> str:
        return f"{self.namespace}:file:{file_id}"

    # ============================================================
    # SERIALIZATION
    # ============================================================

    def _to_hash(self, job: Job) -> dict:
        return {
            "id": job.id,
            "type": job.type.value,
            "payload": job.payload.model_dump_json(),
            "file_id": job.file_id,
            "priority": job.priority,
            "rank": job.priority * PRIORITY_SCALE + job.seq,
            "seq": job.seq,
            "state": job.state.value,
            "progress": job.progress,
            "attempts": job.attempts,
            "created_at": _to_ms(job.created_at),
            "available_at": _to_ms(job.available_at),
        }

    def _from_hash(self, data: dict) -> Job:
        result = data.get("result")
        return Job(
            id=data["id"],
            type=JobType(data["type"]),
            payload=_payload_adapter.validate_json(data["payload"]),
            priority=int(data["priority"]),
            state=JobState(data["state"]),
            progress=int(data.get("progress", 0)),
            attempts=int(data.get("attempts", 0)),
            result=ProcessingJobResult.model_validate_json(result) if result else None,
            error=data.get("error") or None,
            last_error=data.get("last_error") or None,
            created_at=_from_ms(data["created_at"]),
            available_at=_from_ms(data["available_at"]),
            started_at=_from_ms(data.get("started_at")),
            finished_at=_from_ms(data.get("finished_at")),
            seq=int(data.get("seq", 0)),
        )

    # ============================================================
    # PRODUCER SIDE
    # ============================================================

    async def enqueue(
        self,
        job_type: JobType,
        payload: BaseJobPayload,
        priority: Optional[int] = None,
    ) -> str:
        seq = await self.redis.incr(self._key("seq"))
        job = self._build_job(job_type, payload, priority, seq)
        fields = self._to_hash(job)

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(self._job_key(job.id), mapping=fields)
            pipe.zadd(self._file_key(job.file_id), {job.id: seq})
            pipe.zadd(self._key("waiting"), {job.id: fields["rank"]})
            await pipe.execute()

        logger.info(
            f"Queued {job.type.value} job {job.id} for file {job.file_id} "
            f"(priority {job.priority})"
        )
        return job.id

    async def cancel(self, job_id: str) -> bool:
        removed = await self._cancel(
            keys=[self._job_key(job_id), self._key("waiting"), self._key("delayed")],
            args=[job_id, f"{self.namespace}:file:"],
        )
        if removed:
            logger.info(f"Cancelled job {job_id}")
        return bool(removed)

    # ============================================================
    # CONSUMER SIDE
    # ============================================================

    async def fetch_next(self) -> Optional[Job]:
        job_id = await self._fetch_next(
            keys=[self._key("waiting"), self._key("delayed"), self._key("active")],
            args=[_to_ms(utcnow()), f"{self.namespace}:job:"],
        )
        if not job_id:
            return None
        return await self.get(job_id)

    async def update_progress(self, job_id: str, percent: int) -> bool:
        updated = await self._progress(
            keys=[self._job_key(job_id)],
            args=[clamp_progress(percent)],
        )
        return bool(updated)

    async def complete(self, job_id: str, result: ProcessingJobResult) -> bool:
        updated = await self._complete(
            keys=[self._job_key(job_id), self._key("active"), self._key("completed")],
            args=[job_id, result.model_dump_json(), _to_ms(utcnow())],
        )
        return bool(updated)

    async def fail(self, job_id: str, error: str) -> bool:
        updated = await self._fail(
            keys=[self._job_key(job_id), self._key("active"), self._key("failed")],
            args=[job_id, error, _to_ms(utcnow())],
        )
        return bool(updated)

    async def retry(self, job_id: str, delay_seconds: float, error: str) -> bool:
        available_at = _to_ms(utcnow()) + int(delay_seconds * 1000)
        updated = await self._retry(
            keys=[self._job_key(job_id), self._key("active"), self._key("delayed")],
            args=[job_id, available_at, error],
        )
        return bool(updated)

    # ============================================================
    # QUERIES & MAINTENANCE
    # ============================================================

    async def get(self, job_id: str) -> Optional[Job]:
        data = await self.redis.hgetall(self._job_key(job_id))
        if not data:
            return None
        return self._from_hash(data)

    async def list_by_file_id(self, file_id: str) -> list[Job]:
        job_ids = await self.redis.zrange(self._file_key(file_id), 0, -1)
        if not job_ids:
            return []

        async with self.redis.pipeline(transaction=False) as pipe:
            for job_id in job_ids:
                pipe.hgetall(self._job_key(job_id))
            rows = await pipe.execute()

        # Rows can be empty if a job was purged after the ZRANGE
        jobs = [self._from_hash(row) for row in rows if row]
        jobs.sort(key=lambda j: (j.created_at, j.seq))
        return jobs

    async def purge_expired(self) -> int:
        now = utcnow()
        completed_key = self._key("completed")
        failed_key = self._key("failed")

        expired = set(await self.redis.zrangebyscore(
            completed_key, "-inf", _to_ms(self._completed_cutoff(now))
        ))
        # Everything past the newest keep_completed_count entries
        expired.update(await self.redis.zrevrange(
            completed_key, self.keep_completed_count, -1
        ))
        expired_failed = set(await self.redis.zrangebyscore(
            failed_key, "-inf", _to_ms(self._failed_cutoff(now))
        ))

        if not expired and not expired_failed:
            return 0

        all_expired = list(expired | expired_failed)
        async with self.redis.pipeline(transaction=False) as pipe:
            for job_id in all_expired:
                pipe.hget(self._job_key(job_id), "file_id")
            file_ids = await pipe.execute()

        async with self.redis.pipeline(transaction=True) as pipe:
            for job_id, file_id in zip(all_expired, file_ids):
                pipe.delete(self._job_key(job_id))
                if file_id:
                    pipe.zrem(self._file_key(file_id), job_id)
            if expired:
                pipe.zrem(completed_key, *expired)
            if expired_failed:
                pipe.zrem(failed_key, *expired_failed)
            await pipe.execute()

        logger.info(f"Purged {len(all_expired)} expired jobs")
        return len(all_expired)

    async def close(self) -> None:
        await self.redis.aclose()
