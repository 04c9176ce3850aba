"""
Unit tests for TelegramNotificationSenderImpl

Test Focus:
1. Text messages go to sendMessage with HTML parse mode
2. Screenshots go to sendPhoto with the message as caption
3. API errors and a missing token raise InfrastructureError
"""

from unittest.mock import patch

import httpx
import orjson
import pytest

from src.platform.exception.exceptions import InfrastructureError
from src.service.autobooking.driven_adapter.notification.telegram_notification_sender_impl import (
    TelegramNotificationSenderImpl,
)


SENDER_MODULE = (
    'src.service.autobooking.driven_adapter.notification.telegram_notification_sender_impl'
)


class RecordingTransport:
    def __init__(self, *, status_code: int = 200, body: dict | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.body = body if body is not None else {'ok': True}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


def _patched_client(transport: RecordingTransport):
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(transport), **kwargs)

    return patch(f'{SENDER_MODULE}.httpx.AsyncClient', side_effect=factory)


@pytest.mark.unit
class TestTelegramNotificationSender:
    @pytest.fixture
    def sender(self):
        return TelegramNotificationSenderImpl(bot_token='123:abc', api_base_url='https://tg.test/')

    @pytest.mark.asyncio
    async def test_send_message(self, sender):
        # Given
        transport = RecordingTransport()

        # When
        with _patched_client(transport):
            await sender.send(chat_id='42', html='<b>Booking Successful!</b>')

        # Then
        request = transport.requests[0]
        assert str(request.url) == 'https://tg.test/bot123:abc/sendMessage'
        payload = orjson.loads(request.content)
        assert payload['chat_id'] == '42'
        assert payload['text'] == '<b>Booking Successful!</b>'
        assert payload['parse_mode'] == 'HTML'

    @pytest.mark.asyncio
    async def test_send_photo_with_caption(self, sender, tmp_path):
        screenshot = tmp_path / 'job-confirmed.png'
        screenshot.write_bytes(b'\x89PNG fake')
        transport = RecordingTransport()

        with _patched_client(transport):
            await sender.send(chat_id='42', html='caption', attachment_path=str(screenshot))

        request = transport.requests[0]
        assert request.url.path == '/bot123:abc/sendPhoto'
        body = request.content
        assert b'job-confirmed.png' in body
        assert b'caption' in body

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        'status_code, body',
        [(400, {'ok': False, 'description': 'chat not found'}), (200, {'ok': False})],
    )
    async def test_api_error_raises(self, sender, status_code, body):
        transport = RecordingTransport(status_code=status_code, body=body)

        with _patched_client(transport):
            with pytest.raises(InfrastructureError):
                await sender.send(chat_id='42', html='hello')

    @pytest.mark.asyncio
    async def test_missing_token_raises_before_any_request(self):
        sender = TelegramNotificationSenderImpl(bot_token='')
        transport = RecordingTransport()

        with _patched_client(transport):
            with pytest.raises(InfrastructureError):
                await sender.send(chat_id='42', html='hello')

        assert transport.requests == []
