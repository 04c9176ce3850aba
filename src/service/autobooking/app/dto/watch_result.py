from typing import Any, Optional

import attrs

from src.service.autobooking.domain.value_object.seat_map import SeatMap


@attrs.define(frozen=True)
class WatchResult:
    """Outcome of one watch cycle. Transient; only the job status change is persisted."""

    job_id: str
    tickets_found: bool
    matched_theatre: Optional[str] = None
    matched_time: Optional[str] = None
    seat_map: Optional[SeatMap] = None

    @classmethod
    def not_found(cls, *, job_id: str) -> 'WatchResult':
        return cls(job_id=job_id, tickets_found=False)

    def to_event(self) -> dict[str, Any]:
        event: dict[str, Any] = {'job_id': self.job_id, 'tickets_found': self.tickets_found}
        if self.matched_theatre is not None:
            event['matched_theatre'] = self.matched_theatre
        if self.matched_time is not None:
            event['matched_time'] = self.matched_time
        return event
