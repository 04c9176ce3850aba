"""Booking task payload carried by the booking queue."""

from datetime import date
from typing import Any, List, Optional

import attrs

from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.value_object.seat_preference import SeatPreference


@attrs.define(frozen=True)
class BookingTask:
    job_id: str
    matched_theatre: str
    matched_time: str
    seat_preference: SeatPreference
    gift_card_ids: List[str]
    preferred_date: Optional[date] = None

    @classmethod
    def from_job(cls, job: BookingJob, *, theatre: str, time: str) -> 'BookingTask':
        return cls(
            job_id=job.id,
            matched_theatre=theatre,
            matched_time=time,
            seat_preference=job.seat_preference,
            gift_card_ids=[ref.card_id for ref in job.gift_cards],
            preferred_date=job.preferred_date,
        )

    @property
    def dedupe_key(self) -> str:
        return f'booking:{self.job_id}'

    def to_dict(self) -> dict[str, Any]:
        return {
            'job_id': self.job_id,
            'matched_theatre': self.matched_theatre,
            'matched_time': self.matched_time,
            'seat_preference': self.seat_preference.to_dict(),
            'gift_card_ids': list(self.gift_card_ids),
            'preferred_date': self.preferred_date.isoformat() if self.preferred_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'BookingTask':
        preferred_date = data.get('preferred_date')
        return cls(
            job_id=data['job_id'],
            matched_theatre=data['matched_theatre'],
            matched_time=data['matched_time'],
            seat_preference=SeatPreference.from_dict(data['seat_preference']),
            gift_card_ids=list(data.get('gift_card_ids', [])),
            preferred_date=date.fromisoformat(preferred_date) if preferred_date else None,
        )
