"""
Booking flow failures.

`recoverable`: the attempt left no side effect; the job may go back to WATCHING.
`post_commit`: raised after the seat hold was committed; never retried.
"""

from typing import Optional

from src.platform.exception.exceptions import CustomBaseError


class BookingFlowError(CustomBaseError):
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        *,
        post_commit: bool = False,
        artifact_path: Optional[str] = None,
        status_code: int = 422,
    ) -> None:
        super().__init__(message, status_code)
        self.post_commit = post_commit
        self.artifact_path = artifact_path

    @property
    def is_retryable(self) -> bool:
        return self.recoverable and not self.post_commit


class ShowtimeNotFoundError(BookingFlowError):
    recoverable = True

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class SeatsUnavailableError(BookingFlowError):
    recoverable = True

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=409)


class StepTimeoutError(BookingFlowError):
    recoverable = True

    def __init__(self, message: str, *, post_commit: bool = False, artifact_path: Optional[str] = None) -> None:
        super().__init__(
            message, post_commit=post_commit, artifact_path=artifact_path, status_code=504
        )


class PaymentDeclinedError(BookingFlowError):
    """One card was rejected; the flow moves on to the next card."""

    def __init__(self, message: str, *, card_id: str = '') -> None:
        super().__init__(message, post_commit=True, status_code=402)
        self.card_id = card_id


class PaymentExhaustedError(BookingFlowError):
    def __init__(self, message: str, *, artifact_path: Optional[str] = None) -> None:
        super().__init__(message, post_commit=True, artifact_path=artifact_path, status_code=402)


class MalformedSecretError(BookingFlowError):
    """Stored credential cannot be decoded: data corruption, not a transient failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=500)


class BookingCancelledError(BookingFlowError):
    def __init__(self, message: str = 'Job was cancelled') -> None:
        super().__init__(message, status_code=409)


class IllegalTransitionError(BookingFlowError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=500)


class SiteInteractionError(BookingFlowError):
    """Unexpected page behaviour (element missing, navigation error)."""

    recoverable = True

    def __init__(self, message: str, *, post_commit: bool = False) -> None:
        super().__init__(message, post_commit=post_commit, status_code=502)
