from collections import deque
import time
from typing import Callable

import anyio


class SlidingWindowRateLimiter:
    """
    At most `max_events` permits in any rolling `window_seconds`.

    Process-local: shared by all consumer loops of one worker, so the
    limit holds for the whole pool.
    """

    def __init__(
        self,
        *,
        max_events: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_events <= 0 or window_seconds <= 0:
            raise ValueError('max_events and window_seconds must be positive')
        self.max_events = max_events
        self.window_seconds = window_seconds
        self._clock = clock
        self._granted: deque[float] = deque()
        self._lock = anyio.Lock()

    def _evict(self, now: float) -> None:
        while self._granted and now - self._granted[0] >= self.window_seconds:
            self._granted.popleft()

    def try_acquire(self) -> float:
        """
        Returns:
            0.0 when a permit was granted, otherwise seconds until the oldest
            permit leaves the window
        """
        now = self._clock()
        self._evict(now)
        if len(self._granted) < self.max_events:
            self._granted.append(now)
            return 0.0
        return self.window_seconds - (now - self._granted[0])

    async def acquire(self) -> None:
        # Serialize waiters so permits are handed out in arrival order
        async with self._lock:
            while (wait := self.try_acquire()) > 0:
                await anyio.sleep(wait)

    @property
    def in_window(self) -> int:
        self._evict(self._clock())
        return len(self._granted)
