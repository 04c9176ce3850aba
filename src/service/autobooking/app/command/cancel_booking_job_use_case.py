from opentelemetry import trace

from src.platform.exception.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
)
from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.interface.i_job_store import IJobStore
from src.service.autobooking.app.service.notification_service import NotificationService
from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.enum.job_status import ACTIVE_STATUSES, JobStatus
from src.service.autobooking.domain.enum.notification_type import NotificationType


class CancelBookingJobUseCase:
    """
    User-initiated cancel.

    Allowed from PENDING, WATCHING, and BOOKING until the purchase passes the
    point of no return. Queued watch/booking tasks for the job are not removed;
    workers observe CANCELLED and skip them.
    """

    def __init__(self, *, job_store: IJobStore, notification_service: NotificationService) -> None:
        self.job_store = job_store
        self.notification_service = notification_service
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, job_id: str, user_id: str) -> BookingJob:
        with self.tracer.start_as_current_span(
            'use_case.cancel_booking_job',
            attributes={'job.id': job_id},
        ):
            job = await self.job_store.get(job_id=job_id)
            if job is None:
                raise NotFoundError('Booking job not found')

            if job.user_id != user_id:
                raise ForbiddenError('Only the owner can cancel this job')

            if job.status == JobStatus.CANCELLED:
                raise DomainError('Job is already cancelled')
            if job.status.is_terminal:
                raise DomainError(f'Cannot cancel a {job.status} job')
            if job.is_committed:
                raise ConflictError('Purchase already past the point of no return')

            cancelled = await self.job_store.transition_status(
                job_id=job_id,
                from_statuses=ACTIVE_STATUSES,
                to_status=JobStatus.CANCELLED,
                require_uncommitted=True,
            )
            if cancelled is None:
                raise ConflictError('Job changed state while cancelling, please retry')

            Logger.base.info(f'🚫 [CANCEL] Job {cancelled.short_id} cancelled (was {job.status})')
            await self.notification_service.notify(job=cancelled, type=NotificationType.JOB_CANCELLED)
            return cancelled
