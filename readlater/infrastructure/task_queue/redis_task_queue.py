"""Redis-backed queue of integration sync tasks.

Each task is a hash under ``<prefix>:task:<name>`` and its name is a member
of the ``<prefix>:tasks`` sorted set, scored by enqueue time. A worker pops
names from the set and calls the task's ``url`` with its payload.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError

from readlater.domain.exceptions.domain_exceptions import TransientIOError
from readlater.infrastructure.redis import redis_key
from readlater.protocols import CancelOutcome

if TYPE_CHECKING:
    import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class RedisTaskQueue:
    def __init__(
        self,
        redis: aioredis.Redis,
        *,
        prefix: str = "readlater",
        service_path: str = "/svc/integrations",
    ) -> None:
        self._redis = redis
        self._prefix = prefix
        self._service_path = service_path.rstrip("/")

    def _task_key(self, task_name: str) -> str:
        return redis_key(self._prefix, "task", task_name)

    @property
    def _queue_key(self) -> str:
        return redis_key(self._prefix, "tasks")

    async def enqueue(self, owner_id: str, integration_type: str) -> str:
        """Schedule a full sync for ``owner_id`` with ``integration_type``.

        Raises:
            TransientIOError: If Redis could not be reached.
        """
        provider = integration_type.strip().upper()
        task_name = f"sync-{provider.lower()}-{owner_id}-{uuid.uuid4().hex[:12]}"
        payload = {"owner_id": owner_id, "integration_type": provider}
        task = {
            "name": task_name,
            "url": f"{self._service_path}/{provider.lower()}:sync_all",
            "payload": json.dumps(payload),
            "created_at": str(time.time()),
        }
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.hset(self._task_key(task_name), mapping=task)
                pipe.zadd(self._queue_key, {task_name: time.time()})
                await pipe.execute()
        except RedisError as exc:
            msg = f"Failed to enqueue sync task: {exc}"
            raise TransientIOError(
                msg, details={"owner_id": owner_id, "integration_type": provider}
            ) from exc

        logger.info(
            "sync_task_enqueued",
            extra={"task_name": task_name, "owner_id": owner_id, "provider": provider},
        )
        return task_name

    async def cancel(self, task_name: str) -> CancelOutcome:
        """Remove a scheduled task.

        A task that no longer exists is reported as ``NOT_FOUND``, which
        callers treat as already gone.

        Raises:
            TransientIOError: If Redis could not be reached.
        """
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.delete(self._task_key(task_name))
                pipe.zrem(self._queue_key, task_name)
                deleted, _ = await pipe.execute()
        except RedisError as exc:
            msg = f"Failed to cancel sync task: {exc}"
            raise TransientIOError(msg, details={"task_name": task_name}) from exc

        outcome = CancelOutcome.CANCELLED if deleted else CancelOutcome.NOT_FOUND
        logger.info("sync_task_cancelled", extra={"task_name": task_name, "outcome": outcome.value})
        return outcome

    async def get_task(self, task_name: str) -> dict[str, Any] | None:
        try:
            raw = await self._redis.hgetall(self._task_key(task_name))
        except RedisError as exc:
            msg = f"Failed to read sync task: {exc}"
            raise TransientIOError(msg, details={"task_name": task_name}) from exc
        if not raw:
            return None
        task: dict[str, Any] = dict(raw)
        task["payload"] = json.loads(task.get("payload") or "{}")
        return task

    async def pending_tasks(self) -> list[str]:
        """Task names in enqueue order."""
        try:
            return list(await self._redis.zrange(self._queue_key, 0, -1))
        except RedisError as exc:
            msg = f"Failed to list sync tasks: {exc}"
            raise TransientIOError(msg) from exc
