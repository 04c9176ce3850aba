from src.platform.job_queue.i_job_queue import IJobQueue
from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.dto.booking_task import BookingTask
from src.service.autobooking.app.interface.i_booking_task_publisher import IBookingTaskPublisher


BOOKING_TASK_NAME = 'process_booking_job'


class BookingTaskPublisherImpl(IBookingTaskPublisher):
    """Redis booking queue; one pending booking task per job."""

    def __init__(self, *, queue: IJobQueue) -> None:
        self.queue = queue

    @Logger.io
    async def publish(self, *, task: BookingTask) -> bool:
        task_id = await self.queue.enqueue(
            name=BOOKING_TASK_NAME,
            data=task.to_dict(),
            dedupe_key=task.dedupe_key,
        )
        if task_id is None:
            Logger.base.warning(f'⚠️ [BOOKING-PUB] Booking already queued for job {task.job_id}')
            return False
        return True
