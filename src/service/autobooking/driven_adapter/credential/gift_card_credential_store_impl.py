"""
Gift Card Credential Store Implementation

Storage Format:
    Key: autobooking:gift_card:{card_id}
    Type: Hash
    Fields:
        - card_number: encrypted (iv:authTag:ciphertext)
        - pin: encrypted (iv:authTag:ciphertext)
        - exhausted: '1' when the balance is known to be used up
"""

from redis.asyncio import Redis

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.interface.i_gift_card_credential_store import (
    IGiftCardCredentialStore,
)
from src.service.autobooking.driven_adapter.credential.gift_card_cipher import GiftCardCipher
from src.service.autobooking.domain.value_object.gift_card_ref import (
    GiftCardCredential,
    GiftCardRef,
)


_KEY_PREFIX = settings.REDIS_KEY_PREFIX


def _card_key(card_id: str) -> str:
    return f'{_KEY_PREFIX}autobooking:gift_card:{card_id}'


class GiftCardCredentialStoreImpl(IGiftCardCredentialStore):
    def __init__(self, *, client: Redis, cipher: GiftCardCipher) -> None:
        self.client = client
        self.cipher = cipher

    @Logger.io
    async def resolve(self, *, ref: GiftCardRef) -> GiftCardCredential:
        raw = await self.client.hmget(_card_key(ref.card_id), ['card_number', 'pin'])  # type: ignore
        card_number, pin = raw
        if not card_number or not pin:
            raise NotFoundError(f'Gift card {ref.card_id} not found')

        return GiftCardCredential(
            card_id=ref.card_id,
            card_number=self.cipher.decrypt(card_number),
            pin=self.cipher.decrypt(pin),
        )

    async def is_exhausted(self, *, ref: GiftCardRef) -> bool:
        flag = await self.client.hget(_card_key(ref.card_id), 'exhausted')  # type: ignore
        return flag in ('1', b'1')
