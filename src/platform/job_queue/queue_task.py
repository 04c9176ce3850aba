from typing import Any

import attrs
import orjson


@attrs.define(frozen=True)
class QueueTask:
    """
    Envelope stored in the queue's task hash.

    `data` carries the stage payload (watch or booking task); everything else
    is delivery bookkeeping owned by the queue and its worker.
    """

    id: str
    name: str
    data: dict[str, Any]
    dedupe_key: str = ''
    attempts_made: int = 0
    max_attempts: int = 1
    backoff_seconds: float = 0.0
    enqueued_at: float = 0.0
    last_error: str = ''

    @property
    def attempts_left(self) -> int:
        return max(self.max_attempts - self.attempts_made, 0)

    def backoff_delay(self) -> float:
        """Exponential backoff for the attempt that just failed (1st → base, 2nd → 2x base...)."""
        if self.attempts_made <= 0:
            return self.backoff_seconds
        return self.backoff_seconds * (2 ** (self.attempts_made - 1))

    def to_json(self) -> str:
        return orjson.dumps(attrs.asdict(self)).decode()

    @classmethod
    def from_json(cls, raw: str | bytes) -> 'QueueTask':
        return cls(**orjson.loads(raw))


class TaskDeferredError(Exception):
    """
    Raised by a task handler to put the task back in the queue without
    spending an attempt (e.g. a shared resource is held elsewhere).
    """

    def __init__(self, *, delay_seconds: float, reason: str) -> None:
        self.delay_seconds = delay_seconds
        self.reason = reason
        super().__init__(reason)
