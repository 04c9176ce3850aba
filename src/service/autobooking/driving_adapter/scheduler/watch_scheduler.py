"""
Watch Scheduler

Every tick:
1. Expire PENDING/WATCHING jobs past their watch_until deadline
2. Arm PENDING jobs (PENDING → WATCHING, first watch task enqueued now)
3. Re-arm WATCHING jobs whose last arm is older than their re-arm delay:
       base interval after a clean cycle
       base × 2^errors (capped) after consecutive failed cycles
4. Drop tracking for jobs that left PENDING/WATCHING or were last armed > 24h ago
5. Re-enqueue booking tasks for jobs stranded in BOOKING

The queue's dedupe key keeps a job at one pending watch task even when the
scheduler re-arms early (e.g. after a restart with empty tracking).
"""

import time
from typing import Callable, Dict, Optional

import anyio

from src.platform.logging.loguru_io import Logger
from src.platform.metrics.autobooking_metrics import metrics
from src.service.autobooking.app.command.arm_watch_job_use_case import ArmWatchJobUseCase
from src.service.autobooking.app.command.expire_stale_jobs_use_case import (
    ExpireStaleJobsUseCase,
)
from src.service.autobooking.app.command.recover_stranded_bookings_use_case import (
    RecoverStrandedBookingsUseCase,
)
from src.service.autobooking.app.interface.i_job_store import IJobStore
from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.enum.job_status import WATCHABLE_STATUSES, JobStatus


class WatchScheduler:
    def __init__(
        self,
        *,
        job_store: IJobStore,
        arm_watch_job_use_case: ArmWatchJobUseCase,
        expire_stale_jobs_use_case: ExpireStaleJobsUseCase,
        recover_stranded_bookings_use_case: RecoverStrandedBookingsUseCase,
        tick_seconds: float,
        rearm_interval_seconds: float,
        max_backoff_seconds: float,
        tracking_ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.job_store = job_store
        self.arm_watch_job_use_case = arm_watch_job_use_case
        self.expire_stale_jobs_use_case = expire_stale_jobs_use_case
        self.recover_stranded_bookings_use_case = recover_stranded_bookings_use_case
        self.tick_seconds = tick_seconds
        self.rearm_interval_seconds = rearm_interval_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.tracking_ttl_seconds = tracking_ttl_seconds
        self.clock = clock

        self.running = False
        self.last_armed_at: Dict[str, float] = {}
        self._cancel_scope: Optional[anyio.CancelScope] = None

    async def run(self) -> None:
        """Tick immediately, then every tick_seconds until stop()."""
        if self.running:
            Logger.base.warning('⚠️ [SCHEDULER] Already running')
            return

        self.running = True
        Logger.base.info(f'⏰ [SCHEDULER] Started | tick={self.tick_seconds:g}s')
        try:
            with anyio.CancelScope() as scope:
                self._cancel_scope = scope
                while self.running:
                    await self.tick()
                    await anyio.sleep(self.tick_seconds)
        finally:
            self.running = False
            self._cancel_scope = None
            self.last_armed_at.clear()
            Logger.base.info('🛑 [SCHEDULER] Stopped')

    def stop(self) -> None:
        self.running = False
        if self._cancel_scope is not None:
            self._cancel_scope.cancel()

    def rearm_delay(self, *, consecutive_errors: int) -> float:
        if consecutive_errors <= 0:
            return self.rearm_interval_seconds
        return min(
            self.rearm_interval_seconds * 2**consecutive_errors,
            self.max_backoff_seconds,
        )

    async def tick(self) -> None:
        try:
            expired = await self.expire_stale_jobs_use_case.execute()
            if expired:
                metrics.jobs_expired.inc(expired)

            jobs = await self.job_store.list_by_status(statuses=WATCHABLE_STATUSES)
            now = self.clock()
            for job in jobs:
                if self._is_due(job=job, now=now):
                    await self._arm(job=job, now=now)

            self._prune(active_ids={job.id for job in jobs}, now=now)
        except Exception as e:
            Logger.base.exception(f'❌ [SCHEDULER] Tick failed: {e}')

        try:
            recovered = await self.recover_stranded_bookings_use_case.execute()
            if recovered:
                metrics.bookings_recovered.inc(recovered)
        except Exception as e:
            Logger.base.exception(f'❌ [SCHEDULER] Booking recovery failed: {e}')

    def _is_due(self, *, job: BookingJob, now: float) -> bool:
        if job.status == JobStatus.PENDING:
            return True
        last_armed = self.last_armed_at.get(job.id)
        if last_armed is None:
            return True
        delay = self.rearm_delay(consecutive_errors=job.consecutive_watch_errors)
        return now - last_armed >= delay

    async def _arm(self, *, job: BookingJob, now: float) -> None:
        try:
            armed = await self.arm_watch_job_use_case.execute(job=job)
        except Exception as e:
            Logger.base.error(f'❌ [SCHEDULER] Failed to arm job {job.short_id}: {e}')
            return

        # Tracked even when a watch task was already pending
        self.last_armed_at[job.id] = now
        if armed:
            metrics.watch_armed.inc()

    def _prune(self, *, active_ids: set[str], now: float) -> None:
        for job_id, armed_at in list(self.last_armed_at.items()):
            if job_id not in active_ids or now - armed_at > self.tracking_ttl_seconds:
                del self.last_armed_at[job_id]
