from datetime import date, datetime, timezone
from typing import List, Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.service.autobooking.domain.enum.job_status import ALLOWED_JOB_TRANSITIONS, JobStatus
from src.service.autobooking.domain.value_object.booking_result import BookingResult
from src.service.autobooking.domain.value_object.gift_card_ref import GiftCardRef
from src.service.autobooking.domain.value_object.seat_preference import SeatPreference


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@attrs.define
class BookingJob:
    id: str
    user_id: str
    movie_title: str
    city: str
    theatres: List[str]
    times: List[str]
    seat_preference: SeatPreference
    gift_cards: List[GiftCardRef] = attrs.field(factory=list)
    preferred_date: Optional[date] = None
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    watch_until: Optional[datetime] = None
    notify_only_success: Optional[bool] = None
    committed_at: Optional[datetime] = None
    booking_result: Optional[BookingResult] = None
    consecutive_watch_errors: int = 0
    # Showtime claimed by the last watch match; rebuilds a lost booking task
    matched_theatre: Optional[str] = None
    matched_time: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        id: str,
        user_id: str,
        movie_title: str,
        city: str,
        theatres: List[str],
        times: List[str],
        seat_preference: SeatPreference,
        gift_cards: List[GiftCardRef],
        preferred_date: Optional[date] = None,
        watch_until: Optional[datetime] = None,
        notify_only_success: Optional[bool] = None,
    ) -> 'BookingJob':
        if not movie_title.strip():
            raise DomainError('movie_title is required')
        if not theatres:
            raise DomainError('At least one theatre is required')
        if not times:
            raise DomainError('At least one showtime is required')

        now = _utc_now()
        return cls(
            id=id,
            user_id=user_id,
            movie_title=movie_title.strip(),
            city=city,
            theatres=list(theatres),
            times=list(times),
            seat_preference=seat_preference,
            gift_cards=list(gift_cards),
            preferred_date=preferred_date,
            watch_until=watch_until,
            notify_only_success=notify_only_success,
            created_at=now,
            updated_at=now,
        )

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def is_committed(self) -> bool:
        return self.committed_at is not None

    @property
    def has_matched_showtime(self) -> bool:
        return bool(self.matched_theatre and self.matched_time)

    def is_expired(self, *, now: Optional[datetime] = None) -> bool:
        if self.watch_until is None:
            return False
        return (now or _utc_now()) >= self.watch_until

    def can_transition_to(self, status: JobStatus) -> bool:
        if status not in ALLOWED_JOB_TRANSITIONS[self.status]:
            return False
        # Past the point of no return a purchase can only be finalized
        if self.is_committed and status in {JobStatus.WATCHING, JobStatus.CANCELLED}:
            return False
        return True

    def transition_to(self, status: JobStatus, *, error: Optional[str] = None) -> 'BookingJob':
        if not self.can_transition_to(status):
            raise DomainError(
                f'Job {self.short_id} cannot move from {self.status} to {status}', 409
            )
        self.status = status
        if error is not None:
            self.last_error = error
        self.updated_at = _utc_now()
        return self

    def cancel(self) -> 'BookingJob':
        return self.transition_to(JobStatus.CANCELLED)

    def record_recoverable_failure(self, *, error: str, max_attempts: int) -> 'BookingJob':
        """Count the failed attempt; back to WATCHING until the attempt budget is spent."""
        self.attempts += 1
        if self.attempts >= max_attempts:
            return self.transition_to(
                JobStatus.FAILED, error=f'{error} (gave up after {self.attempts} attempts)'
            )
        return self.transition_to(JobStatus.WATCHING, error=error)
