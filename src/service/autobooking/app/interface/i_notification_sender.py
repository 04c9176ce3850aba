from abc import ABC, abstractmethod
from typing import Optional


class INotificationSender(ABC):
    @abstractmethod
    async def send(self, *, chat_id: str, html: str, attachment_path: Optional[str] = None) -> None:
        """Deliver an HTML message; raises on transport failure."""
        pass
