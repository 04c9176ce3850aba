from enum import StrEnum


class NotificationType(StrEnum):
    WATCH_STARTED = 'watch_started'
    TICKETS_FOUND = 'tickets_found'
    BOOKING_STARTED = 'booking_started'
    BOOKING_SUCCEEDED = 'booking_succeeded'
    BOOKING_FAILED = 'booking_failed'
    JOB_CANCELLED = 'job_cancelled'
    JOB_EXPIRED = 'job_expired'

    @property
    def is_terminal(self) -> bool:
        """Terminal events are delivered even when the user only wants success messages."""
        return self in {
            NotificationType.BOOKING_SUCCEEDED,
            NotificationType.BOOKING_FAILED,
            NotificationType.JOB_CANCELLED,
            NotificationType.JOB_EXPIRED,
        }
