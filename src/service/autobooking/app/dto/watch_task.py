"""Watch task payload carried by the watch queue."""

from datetime import date
from typing import Any, List, Optional

import attrs

from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.value_object.seat_preference import SeatPreference


@attrs.define(frozen=True)
class WatchTask:
    job_id: str
    movie_title: str
    city: str
    theatres: List[str]
    times: List[str]
    seat_preference: SeatPreference
    preferred_date: Optional[date] = None

    @classmethod
    def from_job(cls, job: BookingJob) -> 'WatchTask':
        return cls(
            job_id=job.id,
            movie_title=job.movie_title,
            city=job.city,
            theatres=list(job.theatres),
            times=list(job.times),
            seat_preference=job.seat_preference,
            preferred_date=job.preferred_date,
        )

    @property
    def dedupe_key(self) -> str:
        return f'watch:{self.job_id}'

    def to_dict(self) -> dict[str, Any]:
        return {
            'job_id': self.job_id,
            'movie_title': self.movie_title,
            'city': self.city,
            'theatres': list(self.theatres),
            'times': list(self.times),
            'seat_preference': self.seat_preference.to_dict(),
            'preferred_date': self.preferred_date.isoformat() if self.preferred_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'WatchTask':
        preferred_date = data.get('preferred_date')
        return cls(
            job_id=data['job_id'],
            movie_title=data['movie_title'],
            city=data['city'],
            theatres=list(data['theatres']),
            times=list(data['times']),
            seat_preference=SeatPreference.from_dict(data['seat_preference']),
            preferred_date=date.fromisoformat(preferred_date) if preferred_date else None,
        )
