"""
Unit tests for ProcessWatchJobUseCase

Test Focus:
1. No matching showtime: job stays WATCHING, nothing enqueued
2. First match in user order claims the job and enqueues a booking task
3. Jobs that are no longer watchable are skipped without a browser
4. Site errors propagate so the queue retries the cycle
5. A booking task that cannot be enqueued releases the claim, the retry books
6. A match means the seat selector succeeds, not just enough free seats
7. A preferred day that is not open yet is no match
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from src.service.autobooking.app.command.process_watch_job_use_case import ProcessWatchJobUseCase
from src.service.autobooking.app.dto.watch_task import WatchTask
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.enum.notification_type import NotificationType
from src.service.autobooking.domain.value_object.seat_preference import SeatPreference
from test.service.autobooking.unit.test_helpers import (
    TEST_JOB_ID,
    InMemoryJobStore,
    make_job,
    make_notification_service,
    make_seat_map,
)


@pytest.fixture
def job():
    return make_job(theatres=['PVR Nexus', 'INOX GVK'], times=['07:30 PM', '10:00 PM'])


@pytest.fixture
def store(job):
    return InMemoryJobStore([job])


@pytest.fixture
def screen(browser_session_factory):
    return browser_session_factory.session.showtime_screen


@pytest.fixture
def publisher():
    publisher = AsyncMock()
    publisher.publish = AsyncMock(return_value=True)
    return publisher


@pytest.fixture
def notification_service():
    return make_notification_service()


@pytest.fixture
def use_case(store, browser_session_factory, publisher, notification_service):
    return ProcessWatchJobUseCase(
        job_store=store,
        browser_session_factory=browser_session_factory,
        booking_task_publisher=publisher,
        notification_service=notification_service,
        step_timeout_seconds=1.0,
    )


@pytest.mark.unit
class TestProcessWatchJob:
    @pytest.mark.asyncio
    async def test_zero_matches_leaves_job_watching(
        self, use_case, job, store, screen, publisher, browser_session_factory
    ):
        # Given: none of the candidate showtimes are on sale

        # When
        result = await use_case.execute(task=WatchTask.from_job(job))

        # Then
        assert result.tickets_found is False
        assert store.jobs[TEST_JOB_ID].status == JobStatus.WATCHING
        publisher.publish.assert_not_awaited()
        assert len(screen.visited) == 4
        assert browser_session_factory.closed == 1

    @pytest.mark.asyncio
    async def test_first_match_in_user_order_books(
        self, use_case, job, store, screen, publisher, notification_service
    ):
        # Given: two showtimes on sale, the user lists PVR first
        screen.seat_maps[('PVR Nexus', '10:00 PM')] = make_seat_map({'A': 'OOXX'})
        screen.seat_maps[('INOX GVK', '07:30 PM')] = make_seat_map({'A': 'OOOO'})

        # When
        result = await use_case.execute(task=WatchTask.from_job(job))

        # Then
        assert result.tickets_found is True
        assert (result.matched_theatre, result.matched_time) == ('PVR Nexus', '10:00 PM')
        assert store.jobs[TEST_JOB_ID].status == JobStatus.BOOKING

        booking_task = publisher.publish.call_args.kwargs['task']
        assert booking_task.job_id == TEST_JOB_ID
        assert booking_task.matched_theatre == 'PVR Nexus'
        assert booking_task.matched_time == '10:00 PM'
        assert booking_task.gift_card_ids == ['card-1']

        notification_service.notify.assert_awaited_once()
        assert notification_service.notify.call_args.kwargs['type'] == NotificationType.TICKETS_FOUND

    @pytest.mark.asyncio
    async def test_too_few_free_seats_is_not_a_match(self, use_case, job, store, screen, publisher):
        screen.seat_maps[('PVR Nexus', '07:30 PM')] = make_seat_map({'A': 'OXXX', 'B': 'XXXX'})

        result = await use_case.execute(task=WatchTask.from_job(job))

        assert result.tickets_found is False
        assert store.jobs[TEST_JOB_ID].status == JobStatus.WATCHING
        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_movie_not_listed(self, use_case, job, screen, publisher):
        screen.listed = False

        result = await use_case.execute(task=WatchTask.from_job(job))

        assert result.tickets_found is False
        assert screen.visited == []
        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancelled_job_is_skipped(
        self, use_case, job, store, publisher, browser_session_factory
    ):
        store.jobs[TEST_JOB_ID].status = JobStatus.CANCELLED

        result = await use_case.execute(task=WatchTask.from_job(job))

        assert result.tickets_found is False
        assert browser_session_factory.opened == 0
        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_job_cancelled_during_scan_drops_match(
        self, use_case, job, store, screen, publisher
    ):
        # Given: the seat map read races a cancel
        seat_map = make_seat_map({'A': 'OOOO'})
        screen.seat_maps[('PVR Nexus', '07:30 PM')] = seat_map

        async def read_and_cancel(*, theatre, time):
            store.jobs[TEST_JOB_ID].status = JobStatus.CANCELLED
            return seat_map

        screen.read_seat_map = read_and_cancel

        # When
        result = await use_case.execute(task=WatchTask.from_job(job))

        # Then
        assert result.tickets_found is False
        assert store.jobs[TEST_JOB_ID].status == JobStatus.CANCELLED
        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_site_error_propagates(self, use_case, job, screen, browser_session_factory):
        screen.find_error = ConnectionError('site unreachable')

        with pytest.raises(ConnectionError):
            await use_case.execute(task=WatchTask.from_job(job))
        assert browser_session_factory.closed == 1

    @pytest.mark.asyncio
    async def test_match_records_claimed_showtime(self, use_case, job, store, screen):
        screen.seat_maps[('INOX GVK', '07:30 PM')] = make_seat_map({'A': 'OOOO'})

        await use_case.execute(task=WatchTask.from_job(job))

        claimed = store.jobs[TEST_JOB_ID]
        assert claimed.status == JobStatus.BOOKING
        assert (claimed.matched_theatre, claimed.matched_time) == ('INOX GVK', '07:30 PM')


@pytest.mark.unit
class TestProcessWatchJobHandOff:
    @pytest.mark.asyncio
    async def test_enqueue_failure_releases_claim_and_retry_books(
        self, use_case, job, store, screen, publisher, notification_service
    ):
        # Given: Redis drops the first enqueue
        screen.seat_maps[('PVR Nexus', '07:30 PM')] = make_seat_map({'A': 'OOOO'})
        publisher.publish = AsyncMock(side_effect=[ConnectionError('blip'), True])

        # When: the first cycle fails
        with pytest.raises(ConnectionError):
            await use_case.execute(task=WatchTask.from_job(job))

        # Then: the job is watchable again and nobody was told tickets were found
        assert store.jobs[TEST_JOB_ID].status == JobStatus.WATCHING
        notification_service.notify.assert_not_awaited()

        # When: the queue retries the cycle
        result = await use_case.execute(task=WatchTask.from_job(job))

        # Then
        assert result.tickets_found is True
        assert store.jobs[TEST_JOB_ID].status == JobStatus.BOOKING
        assert publisher.publish.await_count == 2
        notification_service.notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_enqueue_failure_keeps_committed_claim(self, use_case, job, store, screen, publisher):
        screen.seat_maps[('PVR Nexus', '07:30 PM')] = make_seat_map({'A': 'OOOO'})

        async def commit_then_fail(*, task):
            await store.mark_committed(job_id=task.job_id)
            raise ConnectionError('blip')

        publisher.publish = commit_then_fail

        with pytest.raises(ConnectionError):
            await use_case.execute(task=WatchTask.from_job(job))

        assert store.jobs[TEST_JOB_ID].status == JobStatus.BOOKING


@pytest.mark.unit
class TestProcessWatchJobSeatRules:
    @pytest.mark.asyncio
    async def test_free_seats_only_in_excluded_rows_is_not_a_match(
        self, browser_session_factory, publisher, notification_service
    ):
        # Given: plenty of free seats, but all in the bottom row the user avoids
        job = make_job(seat_preference=SeatPreference(count=2, avoid_bottom_rows=1))
        store = InMemoryJobStore([job])
        screen = browser_session_factory.session.showtime_screen
        screen.seat_maps[('PVR Nexus', '07:30 PM')] = make_seat_map(
            {'A': 'XXXX', 'B': 'XXXX', 'E': 'OOOO'}
        )
        use_case = ProcessWatchJobUseCase(
            job_store=store,
            browser_session_factory=browser_session_factory,
            booking_task_publisher=publisher,
            notification_service=notification_service,
            step_timeout_seconds=1.0,
        )

        # When
        result = await use_case.execute(task=WatchTask.from_job(job))

        # Then
        assert result.tickets_found is False
        assert store.jobs[TEST_JOB_ID].status == JobStatus.WATCHING
        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scattered_free_seats_do_not_satisfy_adjacent_request(
        self, use_case, job, store, screen, publisher
    ):
        screen.seat_maps[('PVR Nexus', '07:30 PM')] = make_seat_map({'A': 'OXOX', 'B': 'XOXO'})

        result = await use_case.execute(task=WatchTask.from_job(job))

        assert result.tickets_found is False
        assert store.jobs[TEST_JOB_ID].status == JobStatus.WATCHING
        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_free_seats_of_other_category_is_not_a_match(
        self, browser_session_factory, publisher, notification_service
    ):
        job = make_job(seat_preference=SeatPreference(count=2, category='Recliner'))
        store = InMemoryJobStore([job])
        screen = browser_session_factory.session.showtime_screen
        screen.seat_maps[('PVR Nexus', '07:30 PM')] = make_seat_map({'A': 'OOOO'})
        use_case = ProcessWatchJobUseCase(
            job_store=store,
            browser_session_factory=browser_session_factory,
            booking_task_publisher=publisher,
            notification_service=notification_service,
            step_timeout_seconds=1.0,
        )

        result = await use_case.execute(task=WatchTask.from_job(job))

        assert result.tickets_found is False
        publisher.publish.assert_not_awaited()


@pytest.mark.unit
class TestProcessWatchJobPreferredDate:
    @pytest.mark.asyncio
    async def test_preferred_day_not_open_is_no_match(self, use_case, store, screen, publisher):
        # Given: the showtime is on sale, but only for another day
        job = make_job(preferred_date=date(2026, 11, 14))
        screen.open_dates = {date(2026, 11, 13)}
        screen.seat_maps[('PVR Nexus', '07:30 PM')] = make_seat_map({'A': 'OOOO'})

        # When
        result = await use_case.execute(task=WatchTask.from_job(job))

        # Then
        assert result.tickets_found is False
        assert screen.selected_dates == [date(2026, 11, 14)]
        assert screen.visited == []
        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_preferred_day_open_is_scanned(self, use_case, store, screen, publisher):
        job = make_job(preferred_date=date(2026, 11, 14))
        screen.open_dates = {date(2026, 11, 14)}
        store.jobs[TEST_JOB_ID].preferred_date = date(2026, 11, 14)
        screen.seat_maps[('PVR Nexus', '07:30 PM')] = make_seat_map({'A': 'OOOO'})

        result = await use_case.execute(task=WatchTask.from_job(job))

        assert result.tickets_found is True
        assert publisher.publish.call_args.kwargs['task'].preferred_date == date(2026, 11, 14)

    @pytest.mark.asyncio
    async def test_no_preferred_day_keeps_listing_default(self, use_case, job, screen):
        await use_case.execute(task=WatchTask.from_job(job))

        assert screen.selected_dates == []
