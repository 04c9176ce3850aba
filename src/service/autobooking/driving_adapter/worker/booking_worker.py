"""
Booking Worker

Consumes the booking queue with concurrency 1. Each attempt also holds the
Redis purchase lock, so a second worker process cannot drive a checkout
concurrently; a task that finds the lock held is deferred without spending
an attempt.
"""

import time
from typing import Callable

from src.platform.job_queue.i_job_queue import IJobQueue
from src.platform.job_queue.queue_task import QueueTask, TaskDeferredError
from src.platform.job_queue.queue_worker import QueueWorker
from src.platform.metrics.autobooking_metrics import metrics
from src.platform.state.distributed_lock import DistributedLock
from src.service.autobooking.app.command.process_booking_job_use_case import (
    ProcessBookingJobUseCase,
)
from src.service.autobooking.app.dto.booking_task import BookingTask
from src.service.autobooking.app.dto.booking_task_result import BookingTaskResult


BOOKING_CONCURRENCY = 1


class BookingWorker:
    def __init__(
        self,
        *,
        queue: IJobQueue,
        process_booking_job_use_case: ProcessBookingJobUseCase,
        lock_factory: Callable[[], DistributedLock],
        lock_retry_delay_seconds: float,
        poll_timeout_seconds: float = 1.0,
        promote_interval_seconds: float = 1.0,
    ) -> None:
        self.process_booking_job_use_case = process_booking_job_use_case
        self.lock_factory = lock_factory
        self.lock_retry_delay_seconds = lock_retry_delay_seconds
        self.queue_worker = QueueWorker(
            queue=queue,
            handler=self.handle,
            concurrency=BOOKING_CONCURRENCY,
            poll_timeout_seconds=poll_timeout_seconds,
            promote_interval_seconds=promote_interval_seconds,
        )

    async def run(self) -> None:
        await self.queue_worker.run()

    def stop(self) -> None:
        self.queue_worker.stop()

    async def handle(self, task: QueueTask) -> BookingTaskResult:
        booking_task = BookingTask.from_dict(task.data)

        lock = self.lock_factory()
        if not await lock.acquire_lock():
            metrics.booking_lock_contention.inc()
            raise TaskDeferredError(
                delay_seconds=self.lock_retry_delay_seconds,
                reason=f'purchase lock held, job {booking_task.job_id} waits',
            )

        metrics.active_bookings.inc()
        start = time.perf_counter()
        outcome = 'error'
        try:
            result = await self.process_booking_job_use_case.execute(task=booking_task)
            outcome = str(result.job_status)
            return result
        finally:
            metrics.active_bookings.dec()
            metrics.record_booking_attempt(outcome=outcome, duration=time.perf_counter() - start)
            await lock.release_lock()
