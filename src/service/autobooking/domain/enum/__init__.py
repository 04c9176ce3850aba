"""Autobooking Domain Enums"""

from src.service.autobooking.domain.enum.booking_state import BookingEvent, BookingState
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.enum.notification_type import NotificationType

__all__ = ['BookingEvent', 'BookingState', 'JobStatus', 'NotificationType']
