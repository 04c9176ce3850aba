"""
Unit tests for NotificationService

Test Focus:
1. notify_only_success filters milestones, never terminal events
2. Job-level preference overrides the user-level one
3. Delivery failures are reported as False and never raised
4. Screenshot delivery falls back to text
5. Message formatting escapes user text
"""

from unittest.mock import AsyncMock

import pytest

from src.service.autobooking.app.dto.notification_payload import (
    NotificationDetail,
    NotificationPayload,
)
from src.service.autobooking.app.service.notification_service import (
    NotificationService,
    format_message,
)
from src.service.autobooking.domain.enum.notification_type import NotificationType
from test.service.autobooking.unit.test_helpers import TEST_USER_ID, make_job


@pytest.fixture
def sender():
    sender = AsyncMock()
    sender.send = AsyncMock(return_value=None)
    return sender


@pytest.fixture
def preferences():
    query = AsyncMock()
    query.get_chat_id = AsyncMock(return_value='42')
    query.get_notify_only_success = AsyncMock(return_value=False)
    return query


@pytest.fixture
def service(sender, preferences):
    return NotificationService(sender=sender, user_preference_query=preferences)


@pytest.mark.unit
class TestFiltering:
    @pytest.mark.asyncio
    async def test_milestone_sent_by_default(self, service, sender):
        delivered = await service.notify(job=make_job(), type=NotificationType.WATCH_STARTED)

        assert delivered is True
        sender.send.assert_awaited_once()
        assert sender.send.call_args.kwargs['chat_id'] == '42'

    @pytest.mark.asyncio
    async def test_milestone_skipped_for_success_only_user(self, service, sender, preferences):
        # Given
        preferences.get_notify_only_success.return_value = True

        # When
        delivered = await service.notify(job=make_job(), type=NotificationType.TICKETS_FOUND)

        # Then: skipping is not a delivery failure
        assert delivered is True
        sender.send.assert_not_awaited()
        preferences.get_notify_only_success.assert_awaited_once_with(user_id=TEST_USER_ID)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        'type',
        [
            NotificationType.BOOKING_SUCCEEDED,
            NotificationType.BOOKING_FAILED,
            NotificationType.JOB_CANCELLED,
            NotificationType.JOB_EXPIRED,
        ],
    )
    async def test_terminal_events_always_sent(self, service, sender, preferences, type):
        preferences.get_notify_only_success.return_value = True

        await service.notify(job=make_job(), type=type)

        sender.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_job_level_preference_wins(self, service, sender, preferences):
        # Given: user wants success only, this job wants everything
        preferences.get_notify_only_success.return_value = True
        job = make_job(notify_only_success=False)

        # When
        await service.notify(job=job, type=NotificationType.BOOKING_STARTED)

        # Then
        sender.send.assert_awaited_once()
        preferences.get_notify_only_success.assert_not_awaited()


@pytest.mark.unit
class TestDelivery:
    @pytest.mark.asyncio
    async def test_no_chat_id_returns_false(self, service, sender, preferences):
        preferences.get_chat_id.return_value = None

        delivered = await service.notify(job=make_job(), type=NotificationType.BOOKING_FAILED)

        assert delivered is False
        sender.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_error_returns_false(self, service, sender):
        sender.send.side_effect = ConnectionError('telegram down')

        delivered = await service.notify(job=make_job(), type=NotificationType.BOOKING_SUCCEEDED)

        assert delivered is False

    @pytest.mark.asyncio
    async def test_screenshot_failure_falls_back_to_text(self, service, sender):
        # Given: the photo upload fails, plain text works
        sender.send.side_effect = [FileNotFoundError('gone'), None]

        # When
        delivered = await service.notify(
            job=make_job(),
            type=NotificationType.BOOKING_SUCCEEDED,
            booking_id='BMS-1',
            screenshot_path='/tmp/screenshots/missing.png',
        )

        # Then
        assert delivered is True
        first, second = sender.send.call_args_list
        assert first.kwargs['attachment_path'] == '/tmp/screenshots/missing.png'
        assert 'attachment_path' not in second.kwargs


@pytest.mark.unit
class TestFormatMessage:
    def test_success_message_lists_booking_details(self):
        payload = NotificationPayload(
            user_id=TEST_USER_ID,
            type=NotificationType.BOOKING_SUCCEEDED,
            detail=NotificationDetail(
                job_id='0192f0c1-aaaa-bbbb',
                movie_title='Interstellar',
                theatre='PVR Nexus',
                showtime='07:30 PM',
                seats=['A5', 'A6'],
                booking_id='BMS-123456',
                total_amount=1250.0,
            ),
        )

        message = format_message(payload)

        assert message.startswith('<b>Booking Successful!</b>')
        assert 'Job ID: <code>0192f0c1</code>' in message
        assert 'Seats: A5, A6' in message
        assert 'Booking ID: <code>BMS-123456</code>' in message
        assert 'Amount: ₹1,250.00' in message
        assert 'Error:' not in message

    def test_user_text_is_escaped(self):
        payload = NotificationPayload(
            user_id=TEST_USER_ID,
            type=NotificationType.BOOKING_FAILED,
            detail=NotificationDetail(
                job_id='job-1', movie_title='Fast & Furious', error='<script>'
            ),
        )

        message = format_message(payload)

        assert 'Movie: Fast &amp; Furious' in message
        assert 'Error: &lt;script&gt;' in message
        assert 'Amount:' not in message
