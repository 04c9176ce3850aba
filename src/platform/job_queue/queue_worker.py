"""
Queue Worker

Runs `concurrency` consumer loops against one IJobQueue inside an anyio task
group, so at most `concurrency` handler calls are in flight per worker.

Per task:
    dequeue → (rate limit permit) → handler
        ok                  → complete
        TaskDeferredError   → back to delayed, attempt not spent
        other exception     → retry with exponential backoff, or fail when exhausted

Tasks held when the process dies stay in the active list and are moved back
to wait by `recover_active()` on the next start.
"""

from typing import Any, Awaitable, Callable, Optional

import anyio
import attrs
from opentelemetry import trace

from src.platform.job_queue.i_job_queue import IJobQueue
from src.platform.job_queue.queue_task import QueueTask, TaskDeferredError
from src.platform.job_queue.sliding_window_rate_limiter import SlidingWindowRateLimiter
from src.platform.logging.loguru_io import Logger


TaskHandler = Callable[[QueueTask], Awaitable[Any]]


class QueueWorker:
    def __init__(
        self,
        *,
        queue: IJobQueue,
        handler: TaskHandler,
        concurrency: int,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        poll_timeout_seconds: float = 1.0,
        promote_interval_seconds: float = 1.0,
    ) -> None:
        if concurrency < 1:
            raise ValueError('concurrency must be >= 1')
        self.queue = queue
        self.handler = handler
        self.concurrency = concurrency
        self.rate_limiter = rate_limiter
        self.poll_timeout_seconds = poll_timeout_seconds
        self.promote_interval_seconds = promote_interval_seconds
        self.tracer = trace.get_tracer(__name__)

        self.running = False
        self.in_flight = 0
        self._cancel_scope: Optional[anyio.CancelScope] = None

    async def run(self) -> None:
        """Consume until stop() is called or the surrounding scope is cancelled."""
        self.running = True
        Logger.base.info(
            f'🚀 [WORKER:{self.queue.name}] Started | concurrency={self.concurrency} '
            f'rate_limit={self._describe_rate_limit()}'
        )
        try:
            async with anyio.create_task_group() as tg:
                self._cancel_scope = tg.cancel_scope
                tg.start_soon(self._promote_loop)
                for slot in range(self.concurrency):
                    tg.start_soon(self._consume_loop, slot)
        finally:
            self.running = False
            self._cancel_scope = None
            Logger.base.info(f'🛑 [WORKER:{self.queue.name}] Stopped')

    def stop(self) -> None:
        self.running = False
        if self._cancel_scope is not None:
            self._cancel_scope.cancel()

    def _describe_rate_limit(self) -> str:
        if self.rate_limiter is None:
            return 'none'
        return f'{self.rate_limiter.max_events}/{self.rate_limiter.window_seconds:g}s'

    async def _promote_loop(self) -> None:
        while self.running:
            try:
                await self.queue.promote_delayed()
            except Exception as e:
                Logger.base.error(f'❌ [WORKER:{self.queue.name}] Promote failed: {e}')
            await anyio.sleep(self.promote_interval_seconds)

    async def _consume_loop(self, slot: int) -> None:
        while self.running:
            try:
                task = await self.queue.dequeue(timeout=self.poll_timeout_seconds)
            except Exception as e:
                Logger.base.error(f'❌ [WORKER:{self.queue.name}#{slot}] Dequeue failed: {e}')
                await anyio.sleep(self.poll_timeout_seconds)
                continue

            if task is None:
                continue

            if self.rate_limiter is not None:
                await self.rate_limiter.acquire()

            try:
                await self.process(task)
            except Exception as e:
                # Queue bookkeeping failed; task stays in active until recover_active()
                Logger.base.error(f'❌ [WORKER:{self.queue.name}#{slot}] Ack failed task={task.id}: {e}')

    async def process(self, task: QueueTask) -> None:
        self.in_flight += 1
        try:
            with self.tracer.start_as_current_span(
                f'queue.{self.queue.name}.process',
                attributes={
                    'messaging.system': 'redis',
                    'messaging.destination': self.queue.name,
                    'queue.task_id': task.id,
                    'queue.attempt': task.attempts_made + 1,
                },
            ):
                await self.handler(task)
        except TaskDeferredError as e:
            Logger.base.info(
                f'⏸️ [WORKER:{self.queue.name}] Deferred task={task.id} '
                f'for {e.delay_seconds:g}s: {e.reason}'
            )
            await self.queue.retry(task=task, delay_seconds=e.delay_seconds)
        except Exception as e:
            await self._handle_failure(task=task, error=e)
        else:
            await self.queue.complete(task=task)
        finally:
            self.in_flight -= 1

    async def _handle_failure(self, *, task: QueueTask, error: Exception) -> None:
        attempted = attrs.evolve(
            task, attempts_made=task.attempts_made + 1, last_error=f'{type(error).__name__}: {error}'
        )
        if attempted.attempts_left > 0:
            delay = attempted.backoff_delay()
            Logger.base.warning(
                f'🔁 [WORKER:{self.queue.name}] Retry task={task.id} '
                f'attempt {attempted.attempts_made}/{attempted.max_attempts} in {delay:g}s | {error}'
            )
            await self.queue.retry(task=attempted, delay_seconds=delay)
            return

        Logger.base.error(
            f'💀 [WORKER:{self.queue.name}] Failed task={task.id} '
            f'after {attempted.attempts_made} attempts | {error}'
        )
        await self.queue.fail(task=attempted, error=attempted.last_error)
