"""
Job Store Interface

Persistence for BookingJob. Status changes go through compare-and-set
transitions so that concurrent actors (scheduler, workers, cancel) never
overwrite each other's decision.
"""

from abc import ABC, abstractmethod
from typing import Collection, List, Optional

from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.value_object.booking_result import BookingResult


class IJobStore(ABC):
    @abstractmethod
    async def save(self, *, job: BookingJob) -> BookingJob:
        """Create or fully overwrite a job (used on creation only)."""
        pass

    @abstractmethod
    async def get(self, *, job_id: str) -> Optional[BookingJob]:
        pass

    @abstractmethod
    async def delete(self, *, job_id: str) -> bool:
        pass

    @abstractmethod
    async def list_by_status(self, *, statuses: Collection[JobStatus]) -> List[BookingJob]:
        pass

    @abstractmethod
    async def transition_status(
        self,
        *,
        job_id: str,
        from_statuses: Collection[JobStatus],
        to_status: JobStatus,
        last_error: Optional[str] = None,
        booking_result: Optional[BookingResult] = None,
        increment_attempts: bool = False,
        require_uncommitted: bool = False,
    ) -> Optional[BookingJob]:
        """
        Atomically move a job to `to_status` if its current status is one of
        `from_statuses` (and, with require_uncommitted, it has not passed the
        point of no return).

        Returns:
            The updated job, or None when the guard did not hold
        """
        pass

    @abstractmethod
    async def claim_for_booking(
        self, *, job_id: str, matched_theatre: str, matched_time: str
    ) -> Optional[BookingJob]:
        """
        Move a WATCHING job to BOOKING and record the matched showtime
        in the same atomic step.

        Returns:
            The claimed job, or None when the job was no longer WATCHING
        """
        pass

    @abstractmethod
    async def mark_committed(self, *, job_id: str) -> bool:
        """
        Set `committed_at` if the job is still BOOKING and not yet committed.

        Returns:
            False when the job was cancelled (or otherwise moved) first
        """
        pass

    @abstractmethod
    async def record_watch_outcome(self, *, job_id: str, errored: bool) -> int:
        """
        Track consecutive failed watch cycles (reset on a clean cycle).

        Returns:
            The consecutive error count after this outcome
        """
        pass
