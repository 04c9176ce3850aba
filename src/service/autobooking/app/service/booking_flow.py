"""
Booking Flow

Drives one purchase attempt through BookingStateMachine:

    INIT → SEARCH → SELECT_SHOWTIME → SELECT_SEATS → PAYMENT → CONFIRMED
                                           │
                             mark committed + commit hold (point of no return)

- A browser session is opened for the attempt and released on every exit path
- Cancellation is checked before each pre-commit transition
- Every site interaction runs under a per-step deadline (anyio.fail_after)
- Failures after the commit are never retried and carry a screenshot
- A confirmation page without a readable booking id still counts as confirmed;
  the id is recorded as BOOKING_ID_NOT_SHOWN and the screenshot is the receipt
"""

from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

import anyio
import attrs
from opentelemetry import trace

from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.dto.booking_task import BookingTask
from src.service.autobooking.app.interface.i_browser_session import (
    IBrowserSession,
    IBrowserSessionFactory,
)
from src.service.autobooking.app.interface.i_gift_card_credential_store import (
    IGiftCardCredentialStore,
)
from src.service.autobooking.app.interface.i_job_store import IJobStore
from src.service.autobooking.domain.booking_state_machine import BookingStateMachine
from src.service.autobooking.domain.enum.booking_state import BookingEvent, BookingState
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.exception.booking_flow_errors import (
    BookingCancelledError,
    BookingFlowError,
    PaymentDeclinedError,
    PaymentExhaustedError,
    SeatsUnavailableError,
    ShowtimeNotFoundError,
    SiteInteractionError,
    StepTimeoutError,
)
from src.service.autobooking.domain.seat_selector import select_seats
from src.service.autobooking.domain.value_object.booking_result import BookingResult
from src.service.autobooking.domain.value_object.gift_card_ref import GiftCardRef


_T = TypeVar('_T')

# Stored when the confirmation page renders without a readable booking id
BOOKING_ID_NOT_SHOWN = 'not shown (see screenshot)'


@attrs.define(frozen=True)
class BookingFlowOutcome:
    state: BookingState
    result: BookingResult
    error: Optional[BookingFlowError] = None
    committed: bool = False

    @property
    def recoverable(self) -> bool:
        return self.error is not None and self.error.is_retryable


class BookingFlow:
    def __init__(
        self,
        *,
        browser_session_factory: IBrowserSessionFactory,
        credential_store: IGiftCardCredentialStore,
        job_store: IJobStore,
        step_timeout_seconds: float,
    ) -> None:
        self.browser_session_factory = browser_session_factory
        self.credential_store = credential_store
        self.job_store = job_store
        self.step_timeout_seconds = step_timeout_seconds
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def run(self, *, task: BookingTask, movie_title: str, city: str) -> BookingFlowOutcome:
        machine = BookingStateMachine()

        with self.tracer.start_as_current_span(
            'booking_flow.run',
            attributes={'job.id': task.job_id, 'theatre': task.matched_theatre},
        ) as span:
            try:
                await self._ensure_not_cancelled(job_id=task.job_id)
                async with self.browser_session_factory.open() as session:
                    machine.fire(BookingEvent.SESSION_OPENED)
                    try:
                        outcome = await self._drive(
                            machine=machine,
                            session=session,
                            task=task,
                            movie_title=movie_title,
                            city=city,
                        )
                    except BookingFlowError as e:
                        if machine.committed and not e.artifact_path:
                            e.artifact_path = await self._capture(
                                session=session, label=f'{task.job_id}-{machine.state}-failed'
                            )
                        raise
                    span.set_attribute('booking.state', str(outcome.state))
                    return outcome

            except BookingCancelledError as e:
                machine.fire(BookingEvent.CANCEL)
                Logger.base.info(f'🚫 [FLOW] Job {task.job_id} cancelled at {machine.history[-1][0]}')
                return BookingFlowOutcome(
                    state=machine.state,
                    result=BookingResult(success=False, error=e.message),
                    error=e,
                )

            except BookingFlowError as e:
                return self._failed(machine=machine, task=task, error=e, span=span)

            except Exception as e:
                # Browser launch or job store failure outside a guarded step
                error = SiteInteractionError(
                    f'booking attempt aborted: {type(e).__name__}: {e}', post_commit=machine.committed
                )
                return self._failed(machine=machine, task=task, error=error, span=span)

    def _failed(
        self,
        *,
        machine: BookingStateMachine,
        task: BookingTask,
        error: BookingFlowError,
        span: trace.Span,
    ) -> BookingFlowOutcome:
        failed_at = machine.state
        machine.fire(BookingEvent.FAIL)
        span.set_attribute('booking.state', str(machine.state))
        Logger.base.warning(
            f'⚠️ [FLOW] Job {task.job_id} failed at {failed_at}: '
            f'{type(error).__name__}: {error.message} (committed={machine.committed})'
        )
        return BookingFlowOutcome(
            state=machine.state,
            result=BookingResult(
                success=False,
                error=error.message,
                diagnostic_artifact_path=error.artifact_path,
                theatre=task.matched_theatre,
                showtime=task.matched_time,
            ),
            error=error,
            committed=machine.committed,
        )

    async def _drive(
        self,
        *,
        machine: BookingStateMachine,
        session: IBrowserSession,
        task: BookingTask,
        movie_title: str,
        city: str,
    ) -> BookingFlowOutcome:
        showtime_screen = session.showtime_screen

        # SEARCH: the movie and the matched showtime must still be listed
        await self._ensure_not_cancelled(job_id=task.job_id)
        listed = await self._step(
            machine,
            lambda: showtime_screen.open_movie(city=city, movie_title=movie_title),
            label='open movie',
        )
        if not listed:
            raise ShowtimeNotFoundError(f'Movie "{movie_title}" is no longer listed in {city}')
        if task.preferred_date is not None:
            preferred_date = task.preferred_date
            on_sale = await self._step(
                machine,
                lambda: showtime_screen.select_date(day=preferred_date),
                label='select date',
            )
            if not on_sale:
                raise ShowtimeNotFoundError(f'{preferred_date} is no longer offered for "{movie_title}"')
        located = await self._step(
            machine,
            lambda: showtime_screen.find_showtime(theatre=task.matched_theatre, time=task.matched_time),
            label='find showtime',
        )
        if not located:
            raise ShowtimeNotFoundError(
                f'Showtime {task.matched_time} at {task.matched_theatre} is no longer available'
            )
        machine.fire(BookingEvent.SHOWTIME_LOCATED)

        # SELECT_SHOWTIME: live seat map, time has passed since the watch cycle
        await self._ensure_not_cancelled(job_id=task.job_id)
        seat_map = await self._step(
            machine,
            lambda: showtime_screen.read_seat_map(theatre=task.matched_theatre, time=task.matched_time),
            label='read seat map',
        )
        selection = select_seats(seat_map=seat_map, preference=task.seat_preference)
        if not selection.success:
            raise SeatsUnavailableError(selection.error_message)
        machine.fire(BookingEvent.SEATS_CHOSEN)

        # SELECT_SEATS: last point where cancel is honoured
        await self._ensure_not_cancelled(job_id=task.job_id)
        await self._step(
            machine,
            lambda: session.seat_screen.select_seats(seats=list(selection.seats)),
            label='select seats',
        )
        if not await self.job_store.mark_committed(job_id=task.job_id):
            raise BookingCancelledError('Job left BOOKING before the seat hold was committed')
        machine.fire(BookingEvent.HOLD_COMMITTED)
        Logger.base.info(f'🔐 [FLOW] Job {task.job_id} committed seats {selection.labels}')

        # PAYMENT
        await self._step(machine, session.seat_screen.commit_hold, label='commit seat hold')
        booking_id, total_amount = await self._pay(machine=machine, session=session, task=task)
        machine.fire(BookingEvent.PAYMENT_CONFIRMED)
        if not booking_id.strip():
            Logger.base.warning(f'⚠️ [FLOW] Job {task.job_id} confirmed without a readable booking id')
            booking_id = BOOKING_ID_NOT_SHOWN

        artifact_path = await self._capture(session=session, label=f'{task.job_id}-confirmed')
        Logger.base.info(f'🎉 [FLOW] Job {task.job_id} confirmed booking {booking_id}')
        return BookingFlowOutcome(
            state=machine.state,
            result=BookingResult(
                success=True,
                booking_id=booking_id,
                diagnostic_artifact_path=artifact_path,
                seats=tuple(selection.labels),
                theatre=task.matched_theatre,
                showtime=task.matched_time,
                total_amount=total_amount,
            ),
            committed=True,
        )

    async def _pay(
        self, *, machine: BookingStateMachine, session: IBrowserSession, task: BookingTask
    ) -> Tuple[str, Optional[float]]:
        """
        Try gift cards in order; a decline moves on to the next card.

        Returns:
            (booking id, amount payable read before confirming)
        """
        declined: List[str] = []

        for card_id in task.gift_card_ids:
            ref = GiftCardRef(card_id=card_id)
            if await self.credential_store.is_exhausted(ref=ref):
                Logger.base.info(f'⏭️ [FLOW] Gift card {card_id} exhausted, skipping')
                continue
            try:
                credential = await self.credential_store.resolve(ref=ref)
            except NotFoundError:
                Logger.base.warning(f'⚠️ [FLOW] Gift card {card_id} not found, skipping')
                continue

            try:
                accepted = await self._step(
                    machine,
                    lambda: session.payment_screen.apply_gift_card(credential=credential),
                    label='apply gift card',
                )
                if not accepted:
                    raise PaymentDeclinedError(
                        f'Gift card {credential.masked_number} declined', card_id=card_id
                    )
            except PaymentDeclinedError as e:
                Logger.base.warning(f'💳 [FLOW] {e.message}, trying next card')
                declined.append(credential.masked_number)
                continue

            total_amount = await self._read_total_amount(session=session)
            booking_id = await self._step(
                machine, session.payment_screen.confirm, label='confirm payment'
            )
            return booking_id, total_amount

        if declined:
            raise PaymentExhaustedError(f'All gift cards declined: {", ".join(declined)}')
        raise PaymentExhaustedError('No usable gift card for payment')

    async def _step(
        self, machine: BookingStateMachine, action: Callable[[], Awaitable[_T]], *, label: str
    ) -> _T:
        try:
            with anyio.fail_after(self.step_timeout_seconds):
                return await action()
        except TimeoutError:
            raise StepTimeoutError(
                f'{label} timed out after {self.step_timeout_seconds:g}s',
                post_commit=machine.committed,
            ) from None
        except BookingFlowError:
            raise
        except Exception as e:
            raise SiteInteractionError(
                f'{label} failed: {type(e).__name__}: {e}', post_commit=machine.committed
            ) from e

    async def _ensure_not_cancelled(self, *, job_id: str) -> None:
        job = await self.job_store.get(job_id=job_id)
        if job is None or job.status == JobStatus.CANCELLED:
            raise BookingCancelledError()
        if job.status != JobStatus.BOOKING:
            raise BookingCancelledError(f'Job is {job.status}, no longer booking')

    async def _read_total_amount(self, *, session: IBrowserSession) -> Optional[float]:
        try:
            with anyio.fail_after(self.step_timeout_seconds):
                return await session.payment_screen.read_total_amount()
        except Exception as e:
            Logger.base.warning(f'⚠️ [FLOW] Could not read total amount: {e}')
            return None

    async def _capture(self, *, session: IBrowserSession, label: str) -> Optional[str]:
        try:
            return await session.capture_evidence(label=label)
        except Exception as e:
            Logger.base.error(f'❌ [FLOW] Evidence capture failed ({label}): {e}')
            return None
