"""
Telegram Notification Sender

Bot API over httpx:
    sendMessage  text messages (parse_mode=HTML)
    sendPhoto    screenshot with the message as caption
"""

from pathlib import Path
from typing import Optional

import httpx

from src.platform.exception.exceptions import InfrastructureError
from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.interface.i_notification_sender import INotificationSender


class TelegramNotificationSenderImpl(INotificationSender):
    def __init__(
        self,
        *,
        bot_token: str,
        api_base_url: str = 'https://api.telegram.org',
        timeout_seconds: float = 10.0,
    ) -> None:
        self.bot_token = bot_token
        self.api_base_url = api_base_url.rstrip('/')
        self.timeout_seconds = timeout_seconds

    def _url(self, method: str) -> str:
        return f'{self.api_base_url}/bot{self.bot_token}/{method}'

    async def send(self, *, chat_id: str, html: str, attachment_path: Optional[str] = None) -> None:
        if not self.bot_token:
            raise InfrastructureError('TELEGRAM_BOT_TOKEN is not configured')

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            if attachment_path:
                photo = Path(attachment_path)
                response = await client.post(
                    self._url('sendPhoto'),
                    data={'chat_id': chat_id, 'caption': html, 'parse_mode': 'HTML'},
                    files={'photo': (photo.name, photo.read_bytes(), 'image/png')},
                )
            else:
                response = await client.post(
                    self._url('sendMessage'),
                    json={
                        'chat_id': chat_id,
                        'text': html,
                        'parse_mode': 'HTML',
                        'disable_web_page_preview': True,
                    },
                )

        if response.status_code != 200 or not response.json().get('ok', False):
            raise InfrastructureError(
                f'Telegram API error {response.status_code}: {response.text[:200]}'
            )
        Logger.base.debug(f'📤 [TELEGRAM] Delivered to chat {chat_id}')
