"""
Watch Task Publisher Implementation

Enqueues watch tasks on the Redis watch queue. The per-job dedupe key keeps
at most one watch task pending for a job.
"""

from src.platform.job_queue.i_job_queue import IJobQueue
from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.dto.watch_task import WatchTask
from src.service.autobooking.app.interface.i_watch_task_publisher import IWatchTaskPublisher


WATCH_TASK_NAME = 'process_watch_job'


class WatchTaskPublisherImpl(IWatchTaskPublisher):
    def __init__(self, *, queue: IJobQueue) -> None:
        self.queue = queue

    @Logger.io
    async def publish(self, *, task: WatchTask, delay_seconds: float = 0.0) -> bool:
        task_id = await self.queue.enqueue(
            name=WATCH_TASK_NAME,
            data=task.to_dict(),
            dedupe_key=task.dedupe_key,
            delay_seconds=delay_seconds,
        )
        return task_id is not None
