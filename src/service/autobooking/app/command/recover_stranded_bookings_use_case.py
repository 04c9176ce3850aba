from datetime import datetime, timedelta, timezone
from typing import Optional

from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.dto.booking_task import BookingTask
from src.service.autobooking.app.interface.i_booking_task_publisher import IBookingTaskPublisher
from src.service.autobooking.app.interface.i_job_store import IJobStore
from src.service.autobooking.domain.enum.job_status import JobStatus


class RecoverStrandedBookingsUseCase:
    """
    Re-enqueue booking tasks for jobs left in BOOKING without one.

    A job reaches BOOKING only through a watch match, but the hand-off or the
    final status write can be lost (crash, Redis error). For every BOOKING job
    untouched for `grace_seconds`:
    - matched showtime or commit mark present → publish its booking task again;
      the per-job dedupe key makes this a no-op while a task is queued or running,
      and a committed job is then failed for reconciliation by the booking stage
    - neither present → nothing to book, release it back to WATCHING
    """

    def __init__(
        self,
        *,
        job_store: IJobStore,
        booking_task_publisher: IBookingTaskPublisher,
        grace_seconds: float,
    ) -> None:
        self.job_store = job_store
        self.booking_task_publisher = booking_task_publisher
        self.grace = timedelta(seconds=grace_seconds)
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        with self.tracer.start_as_current_span('use_case.recover_stranded_bookings'):
            recovered = 0
            for job in await self.job_store.list_by_status(statuses=[JobStatus.BOOKING]):
                if job.updated_at is not None and now - job.updated_at < self.grace:
                    continue

                if job.has_matched_showtime or job.is_committed:
                    published = await self.booking_task_publisher.publish(
                        task=BookingTask.from_job(
                            job, theatre=job.matched_theatre or '', time=job.matched_time or ''
                        )
                    )
                    if published:
                        recovered += 1
                        Logger.base.warning(f'🩹 [RECOVER] Re-enqueued booking for job {job.short_id}')
                    continue

                released = await self.job_store.transition_status(
                    job_id=job.id,
                    from_statuses=[JobStatus.BOOKING],
                    to_status=JobStatus.WATCHING,
                    require_uncommitted=True,
                )
                if released is not None:
                    recovered += 1
                    Logger.base.warning(
                        f'🩹 [RECOVER] Job {job.short_id} had no matched showtime, back to watching'
                    )

            return recovered
