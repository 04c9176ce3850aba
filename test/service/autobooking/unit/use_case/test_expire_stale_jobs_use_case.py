"""
Unit tests for ExpireStaleJobsUseCase

Test Focus:
1. Watchable jobs past watch_until become FAILED and are notified
2. Jobs still in their window, without a window, or already booking are untouched
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.service.autobooking.app.command.expire_stale_jobs_use_case import (
    WATCH_WINDOW_ENDED,
    ExpireStaleJobsUseCase,
)
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.enum.notification_type import NotificationType
from test.service.autobooking.unit.test_helpers import (
    InMemoryJobStore,
    make_job,
    make_notification_service,
)


NOW = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestExpireStaleJobs:
    @pytest.mark.asyncio
    async def test_expires_only_watchable_jobs_past_window(self):
        # Given
        past = NOW - timedelta(minutes=1)
        store = InMemoryJobStore(
            [
                make_job(id='expired-watching', watch_until=past),
                make_job(id='expired-pending', status=JobStatus.PENDING, watch_until=past),
                make_job(id='in-window', watch_until=NOW + timedelta(hours=1)),
                make_job(id='no-window'),
                make_job(id='booking', status=JobStatus.BOOKING, watch_until=past),
            ]
        )
        notification_service = make_notification_service()
        use_case = ExpireStaleJobsUseCase(job_store=store, notification_service=notification_service)

        # When
        expired = await use_case.execute(now=NOW)

        # Then
        assert expired == 2
        for job_id in ('expired-watching', 'expired-pending'):
            job = store.jobs[job_id]
            assert job.status == JobStatus.FAILED
            assert job.last_error == WATCH_WINDOW_ENDED
            assert job.booking_result.error == WATCH_WINDOW_ENDED
        assert store.jobs['in-window'].status == JobStatus.WATCHING
        assert store.jobs['no-window'].status == JobStatus.WATCHING
        assert store.jobs['booking'].status == JobStatus.BOOKING

        types = {call.kwargs['type'] for call in notification_service.notify.call_args_list}
        assert types == {NotificationType.JOB_EXPIRED}
        assert notification_service.notify.await_count == 2

    @pytest.mark.asyncio
    async def test_nothing_to_expire(self):
        store = InMemoryJobStore([make_job()])
        notification_service = make_notification_service()
        use_case = ExpireStaleJobsUseCase(job_store=store, notification_service=notification_service)

        assert await use_case.execute(now=NOW) == 0
        notification_service.notify.assert_not_awaited()
