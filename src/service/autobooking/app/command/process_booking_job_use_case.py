"""
Process Booking Job Use Case

Runs one BookingFlow attempt for a job in BOOKING and persists the outcome:

    CONFIRMED                 → SUCCEEDED
    FAILED, recoverable       → WATCHING, attempts + 1 (FAILED once the budget is spent)
    FAILED, not recoverable   → FAILED (post-commit failures carry evidence)
    CANCELLED                 → left CANCELLED

A job already committed when its task is (re)delivered was interrupted past the
point of no return; it is failed for manual reconciliation instead of re-run.
"""

import attrs
from opentelemetry import trace

from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.dto.booking_task import BookingTask
from src.service.autobooking.app.dto.booking_task_result import BookingTaskResult
from src.service.autobooking.app.interface.i_job_store import IJobStore
from src.service.autobooking.app.service.booking_flow import BookingFlow, BookingFlowOutcome
from src.service.autobooking.app.service.notification_service import NotificationService
from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.enum.booking_state import BookingState
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.enum.notification_type import NotificationType
from src.service.autobooking.domain.value_object.booking_result import BookingResult


INTERRUPTED_AFTER_COMMIT = 'Interrupted after seats were committed; manual reconciliation required'


class ProcessBookingJobUseCase:
    def __init__(
        self,
        *,
        job_store: IJobStore,
        booking_flow: BookingFlow,
        notification_service: NotificationService,
        max_booking_attempts: int,
    ) -> None:
        self.job_store = job_store
        self.booking_flow = booking_flow
        self.notification_service = notification_service
        self.max_booking_attempts = max_booking_attempts
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, task: BookingTask) -> BookingTaskResult:
        with self.tracer.start_as_current_span(
            'use_case.process_booking_job',
            attributes={'job.id': task.job_id},
        ):
            job = await self.job_store.get(job_id=task.job_id)
            if job is None:
                raise NotFoundError(f'Booking job {task.job_id} not found')

            if job.status != JobStatus.BOOKING:
                Logger.base.info(f'⏭️ [BOOKING] Job {job.short_id} is {job.status}, skipping')
                return BookingTaskResult(
                    job_id=job.id,
                    job_status=job.status,
                    result=BookingResult(success=False, error=f'Job not in booking state ({job.status})'),
                )

            if job.is_committed:
                return await self._fail_interrupted(job=job)

            await self.notification_service.notify(
                job=job,
                type=NotificationType.BOOKING_STARTED,
                theatre=task.matched_theatre,
                showtime=task.matched_time,
            )

            outcome = await self.booking_flow.run(
                task=task, movie_title=job.movie_title, city=job.city
            )

            if outcome.state == BookingState.CONFIRMED:
                return await self._succeed(job=job, outcome=outcome)
            if outcome.state == BookingState.CANCELLED:
                latest = await self.job_store.get(job_id=job.id)
                return BookingTaskResult(
                    job_id=job.id,
                    job_status=latest.status if latest else JobStatus.CANCELLED,
                    result=outcome.result,
                )
            if outcome.recoverable:
                return await self._return_to_watching(job=job, outcome=outcome)
            return await self._fail(job=job, result=outcome.result)

    async def _succeed(self, *, job: BookingJob, outcome: BookingFlowOutcome) -> BookingTaskResult:
        result = outcome.result
        await self.job_store.transition_status(
            job_id=job.id,
            from_statuses=[JobStatus.BOOKING],
            to_status=JobStatus.SUCCEEDED,
            booking_result=result,
        )
        Logger.base.info(f'✅ [BOOKING] Job {job.short_id} succeeded: {result.booking_id}')
        await self.notification_service.notify(
            job=job,
            type=NotificationType.BOOKING_SUCCEEDED,
            theatre=result.theatre,
            showtime=result.showtime,
            seats=list(result.seats),
            booking_id=result.booking_id,
            total_amount=result.total_amount,
            screenshot_path=result.diagnostic_artifact_path,
        )
        return BookingTaskResult(job_id=job.id, job_status=JobStatus.SUCCEEDED, result=result)

    async def _return_to_watching(
        self, *, job: BookingJob, outcome: BookingFlowOutcome
    ) -> BookingTaskResult:
        error = outcome.result.error or 'Recoverable booking failure'
        # Decide the target on a copy; the store applies it atomically
        planned = attrs.evolve(job).record_recoverable_failure(
            error=error, max_attempts=self.max_booking_attempts
        )

        updated = await self.job_store.transition_status(
            job_id=job.id,
            from_statuses=[JobStatus.BOOKING],
            to_status=planned.status,
            last_error=planned.last_error,
            booking_result=outcome.result if planned.status == JobStatus.FAILED else None,
            increment_attempts=True,
            require_uncommitted=True,
        )
        if updated is None:
            latest = await self.job_store.get(job_id=job.id)
            status = latest.status if latest else JobStatus.CANCELLED
            Logger.base.info(f'⏭️ [BOOKING] Job {job.short_id} moved to {status} meanwhile')
            return BookingTaskResult(job_id=job.id, job_status=status, result=outcome.result)

        Logger.base.warning(
            f'🔁 [BOOKING] Job {job.short_id} → {updated.status} '
            f'(attempt {updated.attempts}/{self.max_booking_attempts}): {error}'
        )
        # Back to WATCHING is not terminal; the user hears about it only once it gives up
        if updated.status == JobStatus.FAILED:
            await self.notification_service.notify(
                job=updated,
                type=NotificationType.BOOKING_FAILED,
                theatre=outcome.result.theatre,
                showtime=outcome.result.showtime,
                error=updated.last_error,
            )
        return BookingTaskResult(job_id=job.id, job_status=updated.status, result=outcome.result)

    async def _fail(self, *, job: BookingJob, result: BookingResult) -> BookingTaskResult:
        await self.job_store.transition_status(
            job_id=job.id,
            from_statuses=[JobStatus.BOOKING],
            to_status=JobStatus.FAILED,
            last_error=result.error,
            booking_result=result,
        )
        Logger.base.error(f'❌ [BOOKING] Job {job.short_id} failed: {result.error}')
        await self.notification_service.notify(
            job=job,
            type=NotificationType.BOOKING_FAILED,
            theatre=result.theatre,
            showtime=result.showtime,
            error=result.error,
            screenshot_path=result.diagnostic_artifact_path,
        )
        return BookingTaskResult(job_id=job.id, job_status=JobStatus.FAILED, result=result)

    async def _fail_interrupted(self, *, job: BookingJob) -> BookingTaskResult:
        Logger.base.error(
            f'🧾 [BOOKING] Job {job.short_id} committed at {job.committed_at} but never finalized'
        )
        return await self._fail(
            job=job, result=BookingResult(success=False, error=INTERRUPTED_AFTER_COMMIT)
        )
