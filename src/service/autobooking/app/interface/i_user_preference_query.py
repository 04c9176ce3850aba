from abc import ABC, abstractmethod
from typing import Optional


class IUserPreferenceQuery(ABC):
    @abstractmethod
    async def get_chat_id(self, *, user_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def get_notify_only_success(self, *, user_id: str) -> bool:
        pass
