from abc import ABC, abstractmethod

from src.service.autobooking.app.dto.watch_task import WatchTask


class IWatchTaskPublisher(ABC):
    @abstractmethod
    async def publish(self, *, task: WatchTask, delay_seconds: float = 0.0) -> bool:
        """
        Returns:
            False when a watch task for the same job is already queued
        """
        pass
