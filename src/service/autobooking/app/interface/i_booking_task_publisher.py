from abc import ABC, abstractmethod

from src.service.autobooking.app.dto.booking_task import BookingTask


class IBookingTaskPublisher(ABC):
    @abstractmethod
    async def publish(self, *, task: BookingTask) -> bool:
        """
        Returns:
            False when a booking task for the same job is already queued
        """
        pass
