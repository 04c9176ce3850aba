"""
Watch Worker

Consumes the watch queue: concurrency 2, at most WATCH_RATE_LIMIT_MAX cycle
starts per rolling window. Site errors propagate to the queue's retry policy;
once a task has spent its last attempt the failure is recorded on the job so
the scheduler backs off its next re-arm.
"""

import time
from typing import Optional

from src.platform.job_queue.i_job_queue import IJobQueue
from src.platform.job_queue.queue_task import QueueTask
from src.platform.job_queue.queue_worker import QueueWorker
from src.platform.job_queue.sliding_window_rate_limiter import SlidingWindowRateLimiter
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.autobooking_metrics import metrics
from src.service.autobooking.app.command.process_watch_job_use_case import (
    ProcessWatchJobUseCase,
)
from src.service.autobooking.app.dto.watch_result import WatchResult
from src.service.autobooking.app.dto.watch_task import WatchTask
from src.service.autobooking.app.interface.i_job_store import IJobStore


class WatchWorker:
    def __init__(
        self,
        *,
        queue: IJobQueue,
        process_watch_job_use_case: ProcessWatchJobUseCase,
        job_store: IJobStore,
        concurrency: int,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        poll_timeout_seconds: float = 1.0,
        promote_interval_seconds: float = 1.0,
    ) -> None:
        self.process_watch_job_use_case = process_watch_job_use_case
        self.job_store = job_store
        self.queue_worker = QueueWorker(
            queue=queue,
            handler=self.handle,
            concurrency=concurrency,
            rate_limiter=rate_limiter,
            poll_timeout_seconds=poll_timeout_seconds,
            promote_interval_seconds=promote_interval_seconds,
        )

    async def run(self) -> None:
        await self.queue_worker.run()

    def stop(self) -> None:
        self.queue_worker.stop()

    async def handle(self, task: QueueTask) -> WatchResult:
        watch_task = WatchTask.from_dict(task.data)
        metrics.record_watch_dispatch()
        start = time.perf_counter()

        try:
            result = await self.process_watch_job_use_case.execute(task=watch_task)
        except Exception:
            metrics.record_watch_cycle(outcome='error', duration=time.perf_counter() - start)
            if task.attempts_made + 1 >= task.max_attempts:
                errors = await self.job_store.record_watch_outcome(
                    job_id=watch_task.job_id, errored=True
                )
                Logger.base.warning(
                    f'⚠️ [WATCH] Job {watch_task.job_id} watch retries exhausted '
                    f'({errors} consecutive failed cycles)'
                )
            raise

        await self.job_store.record_watch_outcome(job_id=watch_task.job_id, errored=False)
        metrics.record_watch_cycle(
            outcome='found' if result.tickets_found else 'not_found',
            duration=time.perf_counter() - start,
        )
        return result
