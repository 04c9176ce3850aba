from abc import ABC, abstractmethod

from src.service.autobooking.domain.value_object.gift_card_ref import (
    GiftCardCredential,
    GiftCardRef,
)


class IGiftCardCredentialStore(ABC):
    @abstractmethod
    async def resolve(self, *, ref: GiftCardRef) -> GiftCardCredential:
        """
        Decrypt a stored card at point of use.

        Raises:
            NotFoundError: unknown reference
            MalformedSecretError: stored value cannot be decrypted
        """
        pass

    @abstractmethod
    async def is_exhausted(self, *, ref: GiftCardRef) -> bool:
        pass

