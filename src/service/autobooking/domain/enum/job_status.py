from enum import StrEnum


class JobStatus(StrEnum):
    PENDING = 'pending'
    WATCHING = 'watching'
    BOOKING = 'booking'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    CANCELLED = 'cancelled'

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_watchable(self) -> bool:
        return self in WATCHABLE_STATUSES


WATCHABLE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.WATCHING})
ACTIVE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.WATCHING, JobStatus.BOOKING})
TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELLED})

# Job lifecycle; terminal statuses have no outgoing edges
ALLOWED_JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.WATCHING, JobStatus.FAILED, JobStatus.CANCELLED}),
    JobStatus.WATCHING: frozenset({JobStatus.BOOKING, JobStatus.FAILED, JobStatus.CANCELLED}),
    JobStatus.BOOKING: frozenset(
        {JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.WATCHING, JobStatus.CANCELLED}
    ),
    JobStatus.SUCCEEDED: frozenset(),
    JobStatus.FAILED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}
