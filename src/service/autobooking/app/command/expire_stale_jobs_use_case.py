from datetime import datetime, timezone
from typing import Optional

from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.interface.i_job_store import IJobStore
from src.service.autobooking.app.service.notification_service import NotificationService
from src.service.autobooking.domain.enum.job_status import WATCHABLE_STATUSES, JobStatus
from src.service.autobooking.domain.enum.notification_type import NotificationType
from src.service.autobooking.domain.value_object.booking_result import BookingResult


WATCH_WINDOW_ENDED = 'Job expired - watch window ended'


class ExpireStaleJobsUseCase:
    """Fail PENDING/WATCHING jobs whose watch_until deadline has passed."""

    def __init__(self, *, job_store: IJobStore, notification_service: NotificationService) -> None:
        self.job_store = job_store
        self.notification_service = notification_service
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        with self.tracer.start_as_current_span('use_case.expire_stale_jobs'):
            expired = 0
            for job in await self.job_store.list_by_status(statuses=WATCHABLE_STATUSES):
                if not job.is_expired(now=now):
                    continue

                updated = await self.job_store.transition_status(
                    job_id=job.id,
                    from_statuses=WATCHABLE_STATUSES,
                    to_status=JobStatus.FAILED,
                    last_error=WATCH_WINDOW_ENDED,
                    booking_result=BookingResult(success=False, error=WATCH_WINDOW_ENDED),
                )
                if updated is None:
                    continue

                expired += 1
                await self.notification_service.notify(job=updated, type=NotificationType.JOB_EXPIRED)

            if expired:
                Logger.base.info(f'⌛ [EXPIRE] Expired {expired} jobs')
            return expired
