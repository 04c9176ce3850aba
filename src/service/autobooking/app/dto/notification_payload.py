from typing import Any, List, Optional

import attrs

from src.service.autobooking.domain.enum.notification_type import NotificationType


@attrs.define(frozen=True)
class NotificationDetail:
    job_id: str
    movie_title: str
    theatre: Optional[str] = None
    showtime: Optional[str] = None
    seats: List[str] = attrs.field(factory=list)
    booking_id: Optional[str] = None
    total_amount: Optional[float] = None
    error: Optional[str] = None
    screenshot_path: Optional[str] = None


@attrs.define(frozen=True)
class NotificationPayload:
    user_id: str
    type: NotificationType
    detail: NotificationDetail

    def to_dict(self) -> dict[str, Any]:
        return {'user_id': self.user_id, 'type': str(self.type), 'detail': attrs.asdict(self.detail)}
