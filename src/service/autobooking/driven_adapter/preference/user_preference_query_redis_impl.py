"""
User Preference Query (Redis)

Read-only view of the user records owned by the chat front end.

Storage Format:
    Key: autobooking:user:{user_id}
    Type: Hash
    Fields:
        - telegram_chat_id: str
        - notify_only_success: '1' / '0'
"""

from typing import Optional

from redis.asyncio import Redis

from src.platform.config.core_setting import settings
from src.service.autobooking.app.interface.i_user_preference_query import IUserPreferenceQuery


_KEY_PREFIX = settings.REDIS_KEY_PREFIX


def _user_key(user_id: str) -> str:
    return f'{_KEY_PREFIX}autobooking:user:{user_id}'


class UserPreferenceQueryRedisImpl(IUserPreferenceQuery):
    def __init__(self, *, client: Redis) -> None:
        self.client = client

    async def get_chat_id(self, *, user_id: str) -> Optional[str]:
        chat_id = await self.client.hget(_user_key(user_id), 'telegram_chat_id')  # type: ignore
        if isinstance(chat_id, bytes):
            chat_id = chat_id.decode()
        return chat_id or None

    async def get_notify_only_success(self, *, user_id: str) -> bool:
        flag = await self.client.hget(_user_key(user_id), 'notify_only_success')  # type: ignore
        return flag in ('1', b'1')
