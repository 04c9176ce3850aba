"""
Unit tests for JobStoreRedisImpl

Test Focus:
1. Hash encoding keeps optional fields distinguishable from empty ones
2. transition_status passes the guard arguments to the Lua script
3. A rejected guard returns None without re-reading the job
4. claim_for_booking records the matched showtime through its own script
"""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.value_object.booking_result import BookingResult
from src.service.autobooking.driven_adapter.repo.job_store_redis_impl import (
    JobStoreRedisImpl,
    _from_hash,
    _to_hash,
)
from test.service.autobooking.unit.test_helpers import TEST_JOB_ID, make_job


STORE_MODULE = 'src.service.autobooking.driven_adapter.repo.job_store_redis_impl'


def _as_redis_hash(job) -> dict:
    # Redis hands every field back as a string
    return {key: str(value) for key, value in _to_hash(job).items()}


@pytest.mark.unit
class TestHashEncoding:
    def test_unset_optionals_decode_as_none(self):
        job = make_job()

        decoded = _from_hash(_as_redis_hash(job))

        assert decoded.notify_only_success is None
        assert decoded.last_error is None
        assert decoded.committed_at is None
        assert decoded.booking_result is None
        assert decoded.preferred_date is None
        assert decoded.matched_theatre is None
        assert decoded.matched_time is None
        assert decoded.gift_cards == job.gift_cards
        assert decoded.seat_preference == job.seat_preference

    def test_set_fields_survive(self):
        committed_at = datetime(2026, 3, 1, 18, 30, tzinfo=timezone.utc)
        job = make_job(
            status=JobStatus.FAILED,
            notify_only_success=False,
            committed_at=committed_at,
            attempts=3,
            booking_result=BookingResult(success=False, error='declined', seats=('A5', 'A6')),
        )

        decoded = _from_hash(_as_redis_hash(job))

        assert decoded.status == JobStatus.FAILED
        assert decoded.notify_only_success is False
        assert decoded.committed_at == committed_at
        assert decoded.attempts == 3
        assert decoded.booking_result.seats == ('A5', 'A6')

    def test_preferred_date_and_matched_showtime_survive(self):
        job = make_job(
            status=JobStatus.BOOKING,
            preferred_date=date(2026, 11, 14),
            matched_theatre='PVR Nexus',
            matched_time='07:30 PM',
        )

        decoded = _from_hash(_as_redis_hash(job))

        assert decoded.preferred_date == date(2026, 11, 14)
        assert (decoded.matched_theatre, decoded.matched_time) == ('PVR Nexus', '07:30 PM')
        assert decoded.has_matched_showtime is True


@pytest.mark.unit
class TestTransitionStatus:
    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.hgetall = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_guard_arguments(self, client):
        # Given: the script applies the transition
        client.hgetall.return_value = _as_redis_hash(make_job(status=JobStatus.WATCHING, attempts=1))
        store = JobStoreRedisImpl(client=client)

        with patch(f'{STORE_MODULE}.job_store_lua_scripts') as scripts:
            scripts.run = AsyncMock(return_value=1)

            # When
            job = await store.transition_status(
                job_id=TEST_JOB_ID,
                from_statuses=[JobStatus.BOOKING],
                to_status=JobStatus.WATCHING,
                last_error='No seats',
                increment_attempts=True,
                require_uncommitted=True,
            )

        # Then
        assert job.status == JobStatus.WATCHING
        name = scripts.run.call_args.args[0]
        kwargs = scripts.run.call_args.kwargs
        assert name == 'transition_status'
        assert kwargs['keys'][0].endswith(f'autobooking:job:{TEST_JOB_ID}')
        args = kwargs['args']
        assert args[0].endswith('autobooking:jobs:')
        assert args[1] == 'watching'
        assert args[3:] == ['1', 'No seats', '', '1', '1', 'booking']

    @pytest.mark.asyncio
    async def test_rejected_guard_returns_none(self, client):
        store = JobStoreRedisImpl(client=client)

        with patch(f'{STORE_MODULE}.job_store_lua_scripts') as scripts:
            scripts.run = AsyncMock(return_value=0)

            job = await store.transition_status(
                job_id=TEST_JOB_ID,
                from_statuses=[JobStatus.PENDING, JobStatus.WATCHING],
                to_status=JobStatus.BOOKING,
            )

        assert job is None
        client.hgetall.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_job_reads_as_none(self, client):
        client.hgetall.return_value = {}
        store = JobStoreRedisImpl(client=client)

        assert await store.get(job_id='missing') is None


@pytest.mark.unit
class TestClaimForBooking:
    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.hgetall = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_claim_passes_matched_showtime(self, client):
        client.hgetall.return_value = _as_redis_hash(
            make_job(status=JobStatus.BOOKING, matched_theatre='INOX GVK', matched_time='10:00 PM')
        )
        store = JobStoreRedisImpl(client=client)

        with patch(f'{STORE_MODULE}.job_store_lua_scripts') as scripts:
            scripts.run = AsyncMock(return_value=1)

            job = await store.claim_for_booking(
                job_id=TEST_JOB_ID, matched_theatre='INOX GVK', matched_time='10:00 PM'
            )

        assert job.status == JobStatus.BOOKING
        assert job.matched_theatre == 'INOX GVK'
        assert scripts.run.call_args.args[0] == 'claim_for_booking'
        kwargs = scripts.run.call_args.kwargs
        assert kwargs['keys'][0].endswith(f'autobooking:job:{TEST_JOB_ID}')
        args = kwargs['args']
        assert args[0].endswith('autobooking:jobs:')
        assert args[2:] == ['INOX GVK', '10:00 PM']

    @pytest.mark.asyncio
    async def test_claim_of_job_no_longer_watching_returns_none(self, client):
        store = JobStoreRedisImpl(client=client)

        with patch(f'{STORE_MODULE}.job_store_lua_scripts') as scripts:
            scripts.run = AsyncMock(return_value=0)

            job = await store.claim_for_booking(
                job_id=TEST_JOB_ID, matched_theatre='PVR Nexus', matched_time='07:30 PM'
            )

        assert job is None
        client.hgetall.assert_not_awaited()
