from typing import Any

import attrs

from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.value_object.booking_result import BookingResult


@attrs.define(frozen=True)
class BookingTaskResult:
    job_id: str
    job_status: JobStatus
    result: BookingResult

    def to_event(self) -> dict[str, Any]:
        event: dict[str, Any] = {'job_id': self.job_id, 'success': self.result.success}
        if self.result.booking_id:
            event['booking_id'] = self.result.booking_id
        if self.result.diagnostic_artifact_path:
            event['diagnostic_artifact_path'] = self.result.diagnostic_artifact_path
        if self.result.error:
            event['error'] = self.result.error
        return event
