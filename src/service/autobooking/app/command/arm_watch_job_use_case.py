from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.dto.watch_task import WatchTask
from src.service.autobooking.app.interface.i_job_store import IJobStore
from src.service.autobooking.app.interface.i_watch_task_publisher import IWatchTaskPublisher
from src.service.autobooking.app.service.notification_service import NotificationService
from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.enum.notification_type import NotificationType


class ArmWatchJobUseCase:
    """
    Queue the next watch cycle for a job.

    PENDING jobs are moved to WATCHING first (emitting WatchStarted). A job that
    already has a watch task queued is left alone.

    Returns True when a new watch task was enqueued.
    """

    def __init__(
        self,
        *,
        job_store: IJobStore,
        watch_task_publisher: IWatchTaskPublisher,
        notification_service: NotificationService,
    ) -> None:
        self.job_store = job_store
        self.watch_task_publisher = watch_task_publisher
        self.notification_service = notification_service
        self.tracer = trace.get_tracer(__name__)

    async def execute(self, *, job: BookingJob, delay_seconds: float = 0.0) -> bool:
        with self.tracer.start_as_current_span(
            'use_case.arm_watch_job',
            attributes={'job.id': job.id},
        ):
            if job.status == JobStatus.PENDING:
                watching = await self.job_store.transition_status(
                    job_id=job.id,
                    from_statuses=[JobStatus.PENDING],
                    to_status=JobStatus.WATCHING,
                )
                if watching is None:
                    return False
                await self.notification_service.notify(
                    job=watching, type=NotificationType.WATCH_STARTED
                )
                job = watching
            elif job.status != JobStatus.WATCHING:
                return False

            published = await self.watch_task_publisher.publish(
                task=WatchTask.from_job(job), delay_seconds=delay_seconds
            )
            if published:
                Logger.base.debug(f'⏰ [ARM] Watch armed for job {job.short_id} (+{delay_seconds:g}s)')
            return published
