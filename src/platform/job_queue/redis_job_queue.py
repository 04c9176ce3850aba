"""
Redis Job Queue

Keys per queue (all prefixed with REDIS_KEY_PREFIX for test isolation):
    queue:{name}:wait     LIST   new/promoted task ids (LPUSH in, consumed from the right)
    queue:{name}:active   LIST   task ids currently held by a worker
    queue:{name}:delayed  ZSET   task ids scored by ready-at epoch ms (retries, deferrals)
    queue:{name}:tasks    HASH   task id → QueueTask JSON envelope
    queue:{name}:dedupe   HASH   dedupe key → task id (one pending task per key)
    queue:{name}:failed   LIST   bounded history of exhausted tasks
"""

from pathlib import Path
import time
from typing import Any, Optional

import attrs
from redis.asyncio import Redis
import uuid_utils as uuid

from src.platform.config.core_setting import settings
from src.platform.job_queue.i_job_queue import IJobQueue
from src.platform.job_queue.queue_task import QueueTask
from src.platform.logging.loguru_io import Logger
from src.platform.state.lua_script_executor import LuaScripts


_KEY_PREFIX = settings.REDIS_KEY_PREFIX
_PROMOTE_BATCH_SIZE = 100

queue_lua_scripts = LuaScripts(scripts_dir=Path(__file__).parent / 'lua_scripts')


def _now_ms() -> int:
    return int(time.time() * 1000)


class RedisJobQueue(IJobQueue):
    def __init__(
        self,
        *,
        client: Redis,
        name: str,
        max_attempts: int,
        backoff_seconds: float = 0.0,
        failed_history_limit: int = 50,
    ) -> None:
        self.client = client
        self._name = name
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.failed_history_limit = failed_history_limit

        base = f'{_KEY_PREFIX}queue:{name}'
        self.wait_key = f'{base}:wait'
        self.active_key = f'{base}:active'
        self.delayed_key = f'{base}:delayed'
        self.tasks_key = f'{base}:tasks'
        self.dedupe_key = f'{base}:dedupe'
        self.failed_key = f'{base}:failed'

    @property
    def name(self) -> str:
        return self._name

    async def enqueue(
        self,
        *,
        name: str,
        data: dict[str, Any],
        dedupe_key: str = '',
        delay_seconds: float = 0.0,
    ) -> Optional[str]:
        task = QueueTask(
            id=str(uuid.uuid7()),
            name=name,
            data=data,
            dedupe_key=dedupe_key,
            max_attempts=self.max_attempts,
            backoff_seconds=self.backoff_seconds,
            enqueued_at=time.time(),
        )
        ready_at_ms = _now_ms() + int(delay_seconds * 1000) if delay_seconds > 0 else 0

        added = await queue_lua_scripts.run(
            'enqueue',
            client=self.client,
            keys=[self.wait_key, self.delayed_key, self.tasks_key, self.dedupe_key],
            args=[task.id, task.to_json(), dedupe_key, ready_at_ms],
        )
        if not int(added):
            Logger.base.debug(f'⏭️ [QUEUE:{self._name}] Already pending: {dedupe_key}')
            return None

        Logger.base.debug(f'📥 [QUEUE:{self._name}] Enqueued {name} task={task.id}')
        return task.id

    async def dequeue(self, *, timeout: float) -> Optional[QueueTask]:
        task_id = await self.client.blmove(
            self.wait_key, self.active_key, timeout, 'RIGHT', 'LEFT'
        )  # type: ignore
        if task_id is None:
            return None

        raw = await self.client.hget(self.tasks_key, task_id)  # type: ignore
        if raw is None:
            # Envelope gone (finished by a recovered duplicate); drop the orphan id
            await self.client.lrem(self.active_key, 1, task_id)  # type: ignore
            Logger.base.warning(f'⚠️ [QUEUE:{self._name}] Orphan task id dropped: {task_id}')
            return None

        return QueueTask.from_json(raw)

    async def complete(self, *, task: QueueTask) -> None:
        await self._finish(task=task, failed_payload='')

    async def fail(self, *, task: QueueTask, error: str) -> None:
        failed = attrs.evolve(task, last_error=error)
        await self._finish(task=task, failed_payload=failed.to_json())

    async def _finish(self, *, task: QueueTask, failed_payload: str) -> None:
        await queue_lua_scripts.run(
            'finish',
            client=self.client,
            keys=[self.active_key, self.tasks_key, self.dedupe_key, self.failed_key],
            args=[task.id, task.dedupe_key, failed_payload, self.failed_history_limit],
        )

    async def retry(self, *, task: QueueTask, delay_seconds: float) -> bool:
        moved = await queue_lua_scripts.run(
            'retry',
            client=self.client,
            keys=[self.active_key, self.delayed_key, self.tasks_key],
            args=[task.id, task.to_json(), _now_ms() + int(delay_seconds * 1000)],
        )
        return bool(int(moved))

    async def promote_delayed(self) -> int:
        moved = await queue_lua_scripts.run(
            'promote_delayed',
            client=self.client,
            keys=[self.wait_key, self.delayed_key],
            args=[_now_ms(), _PROMOTE_BATCH_SIZE],
        )
        return int(moved)

    async def recover_active(self) -> int:
        moved = int(
            await queue_lua_scripts.run(
                'recover_active',
                client=self.client,
                keys=[self.active_key, self.wait_key],
                args=[],
            )
        )
        if moved:
            Logger.base.warning(f'♻️ [QUEUE:{self._name}] Recovered {moved} in-flight tasks')
        return moved
