"""
Unit tests for CancelBookingJobUseCase

Test Focus:
1. Owner can cancel PENDING, WATCHING and uncommitted BOOKING jobs
2. A job cancelled while WATCHING is never armed again
3. Terminal, committed, foreign and missing jobs are rejected
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.platform.exception.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
)
from src.service.autobooking.app.command.arm_watch_job_use_case import ArmWatchJobUseCase
from src.service.autobooking.app.command.cancel_booking_job_use_case import CancelBookingJobUseCase
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.enum.notification_type import NotificationType
from test.service.autobooking.unit.test_helpers import (
    TEST_JOB_ID,
    TEST_USER_ID,
    InMemoryJobStore,
    make_job,
    make_notification_service,
)


@pytest.fixture
def store():
    return InMemoryJobStore([make_job(status=JobStatus.WATCHING)])


@pytest.fixture
def notification_service():
    return make_notification_service()


@pytest.fixture
def use_case(store, notification_service):
    return CancelBookingJobUseCase(job_store=store, notification_service=notification_service)


@pytest.mark.unit
class TestCancelBookingJob:
    @pytest.mark.asyncio
    async def test_cancel_while_watching_suppresses_next_arm(
        self, use_case, store, notification_service
    ):
        # Given
        publisher = AsyncMock()
        publisher.publish = AsyncMock(return_value=True)
        arm = ArmWatchJobUseCase(
            job_store=store,
            watch_task_publisher=publisher,
            notification_service=notification_service,
        )

        # When
        cancelled = await use_case.execute(job_id=TEST_JOB_ID, user_id=TEST_USER_ID)
        armed = await arm.execute(job=await store.get(job_id=TEST_JOB_ID))

        # Then
        assert cancelled.status == JobStatus.CANCELLED
        assert store.jobs[TEST_JOB_ID].status == JobStatus.CANCELLED
        assert armed is False
        publisher.publish.assert_not_awaited()
        notification_service.notify.assert_awaited_once()
        assert notification_service.notify.call_args.kwargs['type'] == NotificationType.JOB_CANCELLED

    @pytest.mark.asyncio
    @pytest.mark.parametrize('status', [JobStatus.PENDING, JobStatus.BOOKING])
    async def test_cancel_other_active_statuses(self, use_case, store, status):
        store.jobs[TEST_JOB_ID].status = status

        cancelled = await use_case.execute(job_id=TEST_JOB_ID, user_id=TEST_USER_ID)

        assert cancelled.status == JobStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_committed_booking_cannot_be_cancelled(self, use_case, store, notification_service):
        # Given: purchase already past the point of no return
        store.jobs[TEST_JOB_ID].status = JobStatus.BOOKING
        store.jobs[TEST_JOB_ID].committed_at = datetime.now(timezone.utc)

        # When / Then
        with pytest.raises(ConflictError):
            await use_case.execute(job_id=TEST_JOB_ID, user_id=TEST_USER_ID)
        assert store.jobs[TEST_JOB_ID].status == JobStatus.BOOKING
        notification_service.notify.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        'status', [JobStatus.CANCELLED, JobStatus.SUCCEEDED, JobStatus.FAILED]
    )
    async def test_terminal_job_cannot_be_cancelled(self, use_case, store, status):
        store.jobs[TEST_JOB_ID].status = status

        with pytest.raises(DomainError):
            await use_case.execute(job_id=TEST_JOB_ID, user_id=TEST_USER_ID)
        assert store.jobs[TEST_JOB_ID].status == status

    @pytest.mark.asyncio
    async def test_only_owner_can_cancel(self, use_case, store):
        with pytest.raises(ForbiddenError):
            await use_case.execute(job_id=TEST_JOB_ID, user_id='someone-else')
        assert store.jobs[TEST_JOB_ID].status == JobStatus.WATCHING

    @pytest.mark.asyncio
    async def test_missing_job(self, use_case):
        with pytest.raises(NotFoundError):
            await use_case.execute(job_id='missing', user_id=TEST_USER_ID)
