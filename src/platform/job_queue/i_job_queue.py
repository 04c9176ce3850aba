from abc import ABC, abstractmethod
from typing import Any, Optional

from src.platform.job_queue.queue_task import QueueTask


class IJobQueue(ABC):
    """Durable at-least-once work queue (wait → active → done, with delayed retries)."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def enqueue(
        self,
        *,
        name: str,
        data: dict[str, Any],
        dedupe_key: str = '',
        delay_seconds: float = 0.0,
    ) -> Optional[str]:
        """
        Returns:
            Task id, or None when a task with the same dedupe key is still pending
        """
        pass

    @abstractmethod
    async def dequeue(self, *, timeout: float) -> Optional[QueueTask]:
        """Move the oldest waiting task to active; None when nothing arrives within timeout."""
        pass

    @abstractmethod
    async def complete(self, *, task: QueueTask) -> None:
        pass

    @abstractmethod
    async def fail(self, *, task: QueueTask, error: str) -> None:
        """Drop the task from active and keep it in the bounded failed history."""
        pass

    @abstractmethod
    async def retry(self, *, task: QueueTask, delay_seconds: float) -> bool:
        """Move an active task to delayed with its updated envelope."""
        pass

    @abstractmethod
    async def promote_delayed(self) -> int:
        """Move due delayed tasks to wait; returns how many were moved."""
        pass

    @abstractmethod
    async def recover_active(self) -> int:
        """Move tasks left in active by a crashed worker back to wait."""
        pass
