"""
Notification Service

Maps job lifecycle events to HTML chat messages.

Filtering:
- Terminal events (succeeded, failed, cancelled, expired) are always delivered
- Milestones are skipped when notify_only_success is set
  (job-level value wins over the user-level one)

Delivery problems are logged and reported as False; they never propagate
into the worker pipeline.
"""

from html import escape
from typing import Optional

from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.dto.notification_payload import (
    NotificationDetail,
    NotificationPayload,
)
from src.service.autobooking.app.interface.i_notification_sender import INotificationSender
from src.service.autobooking.app.interface.i_user_preference_query import IUserPreferenceQuery
from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.enum.notification_type import NotificationType


_CAPTION_LIMIT = 1024  # Telegram photo caption limit

_TITLES = {
    NotificationType.WATCH_STARTED: 'Watching Started',
    NotificationType.TICKETS_FOUND: 'Tickets Available!',
    NotificationType.BOOKING_STARTED: 'Booking In Progress',
    NotificationType.BOOKING_SUCCEEDED: 'Booking Successful!',
    NotificationType.BOOKING_FAILED: 'Booking Failed',
    NotificationType.JOB_CANCELLED: 'Job Cancelled',
    NotificationType.JOB_EXPIRED: 'Job Expired',
}

_FOOTERS = {
    NotificationType.WATCH_STARTED: 'Now monitoring for ticket availability.',
    NotificationType.TICKETS_FOUND: 'Starting booking process...',
    NotificationType.BOOKING_STARTED: 'Selecting seats and proceeding to payment...',
    NotificationType.BOOKING_SUCCEEDED: 'Your tickets have been booked!',
    NotificationType.BOOKING_FAILED: 'Check the details above before creating a new job.',
    NotificationType.JOB_CANCELLED: 'No further attempts will be made.',
    NotificationType.JOB_EXPIRED: 'The watch window ended without finding tickets.',
}


def format_message(payload: NotificationPayload) -> str:
    detail = payload.detail
    lines = [
        f'<b>{_TITLES[payload.type]}</b>',
        '',
        f'Job ID: <code>{escape(detail.job_id[:8])}</code>',
        f'Movie: {escape(detail.movie_title)}',
    ]
    if detail.theatre:
        lines.append(f'Theatre: {escape(detail.theatre)}')
    if detail.showtime:
        lines.append(f'Showtime: {escape(detail.showtime)}')
    if detail.seats:
        lines.append(f'Seats: {escape(", ".join(detail.seats))}')
    if detail.booking_id:
        lines.append(f'Booking ID: <code>{escape(detail.booking_id)}</code>')
    if detail.total_amount is not None:
        lines.append(f'Amount: ₹{detail.total_amount:,.2f}')
    if detail.error:
        lines.append(f'Error: {escape(detail.error)}')
    lines.extend(['', _FOOTERS[payload.type]])
    return '\n'.join(lines)


class NotificationService:
    def __init__(
        self,
        *,
        sender: INotificationSender,
        user_preference_query: IUserPreferenceQuery,
    ) -> None:
        self.sender = sender
        self.user_preference_query = user_preference_query

    async def should_notify(self, *, job: BookingJob, type: NotificationType) -> bool:
        if type.is_terminal:
            return True

        notify_only_success = job.notify_only_success
        if notify_only_success is None:
            notify_only_success = await self.user_preference_query.get_notify_only_success(
                user_id=job.user_id
            )
        return not notify_only_success

    async def notify(
        self,
        *,
        job: BookingJob,
        type: NotificationType,
        theatre: Optional[str] = None,
        showtime: Optional[str] = None,
        seats: Optional[list[str]] = None,
        booking_id: Optional[str] = None,
        total_amount: Optional[float] = None,
        error: Optional[str] = None,
        screenshot_path: Optional[str] = None,
    ) -> bool:
        payload = NotificationPayload(
            user_id=job.user_id,
            type=type,
            detail=NotificationDetail(
                job_id=job.id,
                movie_title=job.movie_title,
                theatre=theatre,
                showtime=showtime,
                seats=list(seats or []),
                booking_id=booking_id,
                total_amount=total_amount,
                error=error,
                screenshot_path=screenshot_path,
            ),
        )
        return await self.deliver(job=job, payload=payload)

    async def deliver(self, *, job: BookingJob, payload: NotificationPayload) -> bool:
        try:
            if not await self.should_notify(job=job, type=payload.type):
                Logger.base.debug(
                    f'🔕 [NOTIFY] Skipped {payload.type} for job {job.short_id} (notify_only_success)'
                )
                return True

            chat_id = await self.user_preference_query.get_chat_id(user_id=payload.user_id)
            if not chat_id:
                Logger.base.warning(f'⚠️ [NOTIFY] No chat for user {payload.user_id}')
                return False

            message = format_message(payload)
            screenshot_path = payload.detail.screenshot_path

            if screenshot_path:
                try:
                    await self.sender.send(
                        chat_id=chat_id,
                        html=message[:_CAPTION_LIMIT],
                        attachment_path=screenshot_path,
                    )
                except Exception as e:
                    Logger.base.warning(
                        f'⚠️ [NOTIFY] Screenshot delivery failed, sending text only: {e}'
                    )
                    await self.sender.send(chat_id=chat_id, html=message)
            else:
                await self.sender.send(chat_id=chat_id, html=message)

            Logger.base.info(f'📨 [NOTIFY] Sent {payload.type} for job {job.short_id}')
            return True

        except Exception as e:
            Logger.base.error(
                f'❌ [NOTIFY] Failed to send {payload.type} for job {job.short_id}: {e}'
            )
            return False
