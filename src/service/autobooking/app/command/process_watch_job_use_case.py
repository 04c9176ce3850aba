"""
Process Watch Job Use Case

One watch cycle for one job:
1. Skip jobs that are no longer PENDING/WATCHING
2. Switch the listing to the preferred day, when the job names one
3. Walk theatres × times in the user's order; stop at the first showtime whose
   live seat map the seat selector can satisfy with the job's preference
4. On match: claim the job (WATCHING → BOOKING, matched showtime recorded),
   then enqueue the booking task and notify

If the booking task cannot be enqueued the claim is undone before the error
propagates, so the queue's retry of this cycle finds the job WATCHING again.
Timeouts and site errors propagate so the watch queue's retry policy applies.
"""

import anyio
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.dto.booking_task import BookingTask
from src.service.autobooking.app.dto.watch_result import WatchResult
from src.service.autobooking.app.dto.watch_task import WatchTask
from src.service.autobooking.app.interface.i_booking_task_publisher import IBookingTaskPublisher
from src.service.autobooking.app.interface.i_browser_session import (
    IBrowserSessionFactory,
    IShowtimeScreen,
)
from src.service.autobooking.app.interface.i_job_store import IJobStore
from src.service.autobooking.app.service.notification_service import NotificationService
from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.enum.notification_type import NotificationType
from src.service.autobooking.domain.seat_selector import select_seats


class ProcessWatchJobUseCase:
    def __init__(
        self,
        *,
        job_store: IJobStore,
        browser_session_factory: IBrowserSessionFactory,
        booking_task_publisher: IBookingTaskPublisher,
        notification_service: NotificationService,
        step_timeout_seconds: float,
    ) -> None:
        self.job_store = job_store
        self.browser_session_factory = browser_session_factory
        self.booking_task_publisher = booking_task_publisher
        self.notification_service = notification_service
        self.step_timeout_seconds = step_timeout_seconds
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, task: WatchTask) -> WatchResult:
        with self.tracer.start_as_current_span(
            'use_case.process_watch_job',
            attributes={'job.id': task.job_id},
        ) as span:
            job = await self.job_store.get(job_id=task.job_id)
            if job is None or not job.status.is_watchable:
                Logger.base.info(
                    f'⏭️ [WATCH] Job {task.job_id} not watchable '
                    f'({job.status if job else "missing"}), skipping'
                )
                return WatchResult.not_found(job_id=task.job_id)

            result = await self._scan(task=task)
            span.set_attribute('watch.tickets_found', result.tickets_found)
            if not result.tickets_found:
                Logger.base.debug(f'🔍 [WATCH] No match for job {task.job_id}')
                return result

            assert result.matched_theatre is not None and result.matched_time is not None

            # Claim the job before handing off so the scheduler stops re-arming it
            booking_job = await self.job_store.claim_for_booking(
                job_id=task.job_id,
                matched_theatre=result.matched_theatre,
                matched_time=result.matched_time,
            )
            if booking_job is None:
                Logger.base.info(f'⏭️ [WATCH] Job {task.job_id} changed state during scan, dropping match')
                return WatchResult.not_found(job_id=task.job_id)

            await self._hand_off(job=booking_job, result=result)
            Logger.base.info(
                f'🎯 [WATCH] Job {task.job_id} matched {result.matched_theatre} @ {result.matched_time}'
            )

            await self.notification_service.notify(
                job=booking_job,
                type=NotificationType.TICKETS_FOUND,
                theatre=result.matched_theatre,
                showtime=result.matched_time,
            )
            return result

    async def _hand_off(self, *, job: BookingJob, result: WatchResult) -> None:
        assert result.matched_theatre is not None and result.matched_time is not None
        try:
            await self.booking_task_publisher.publish(
                task=BookingTask.from_job(
                    job, theatre=result.matched_theatre, time=result.matched_time
                )
            )
        except Exception as e:
            released = await self.job_store.transition_status(
                job_id=job.id,
                from_statuses=[JobStatus.BOOKING],
                to_status=JobStatus.WATCHING,
                require_uncommitted=True,
            )
            Logger.base.error(
                f'❌ [WATCH] Booking task for job {job.short_id} not enqueued: {e} '
                f'(claim {"released" if released else "kept"})'
            )
            raise

    async def _scan(self, *, task: WatchTask) -> WatchResult:
        async with self.browser_session_factory.open() as session:
            screen = session.showtime_screen

            with anyio.fail_after(self.step_timeout_seconds):
                listed = await screen.open_movie(city=task.city, movie_title=task.movie_title)
            if not listed:
                Logger.base.info(f'🎬 [WATCH] "{task.movie_title}" not listed in {task.city} yet')
                return WatchResult.not_found(job_id=task.job_id)

            if task.preferred_date is not None:
                with anyio.fail_after(self.step_timeout_seconds):
                    on_sale = await screen.select_date(day=task.preferred_date)
                if not on_sale:
                    Logger.base.info(
                        f'📅 [WATCH] {task.preferred_date} not open for "{task.movie_title}" yet'
                    )
                    return WatchResult.not_found(job_id=task.job_id)

            for theatre in task.theatres:
                for time in task.times:
                    result = await self._check_showtime(
                        screen=screen, task=task, theatre=theatre, time=time
                    )
                    if result.tickets_found:
                        return result

        return WatchResult.not_found(job_id=task.job_id)

    async def _check_showtime(
        self, *, screen: IShowtimeScreen, task: WatchTask, theatre: str, time: str
    ) -> WatchResult:
        with anyio.fail_after(self.step_timeout_seconds):
            if not await screen.find_showtime(theatre=theatre, time=time):
                return WatchResult.not_found(job_id=task.job_id)

        with anyio.fail_after(self.step_timeout_seconds):
            seat_map = await screen.read_seat_map(theatre=theatre, time=time)

        selection = select_seats(seat_map=seat_map, preference=task.seat_preference)
        if not selection.success:
            Logger.base.debug(
                f'🪑 [WATCH] {theatre} @ {time}: {seat_map.free_seat_count} free, '
                f'not bookable: {selection.error_message}'
            )
            return WatchResult.not_found(job_id=task.job_id)

        return WatchResult(
            job_id=task.job_id,
            tickets_found=True,
            matched_theatre=theatre,
            matched_time=time,
            seat_map=seat_map,
        )
