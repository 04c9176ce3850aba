"""
Booking State Machine

Explicit transition table for one purchase attempt:

    INIT ─session_opened→ SEARCH ─showtime_located→ SELECT_SHOWTIME
         ─seats_chosen→ SELECT_SEATS ─hold_committed→ PAYMENT ─payment_confirmed→ CONFIRMED

    fail   : any non-terminal state → FAILED
    cancel : INIT / SEARCH / SELECT_SHOWTIME / SELECT_SEATS → CANCELLED

PAYMENT is entered only after the seat hold is committed (point of no return),
so CANCELLED is unreachable from it.
"""

from typing import Dict, List, Tuple

import attrs

from src.service.autobooking.domain.enum.booking_state import BookingEvent, BookingState
from src.service.autobooking.domain.exception.booking_flow_errors import IllegalTransitionError


TERMINAL_STATES = frozenset({BookingState.CONFIRMED, BookingState.FAILED, BookingState.CANCELLED})
PRE_COMMIT_STATES = frozenset(
    {
        BookingState.INIT,
        BookingState.SEARCH,
        BookingState.SELECT_SHOWTIME,
        BookingState.SELECT_SEATS,
    }
)

TRANSITIONS: Dict[Tuple[BookingState, BookingEvent], BookingState] = {
    (BookingState.INIT, BookingEvent.SESSION_OPENED): BookingState.SEARCH,
    (BookingState.SEARCH, BookingEvent.SHOWTIME_LOCATED): BookingState.SELECT_SHOWTIME,
    (BookingState.SELECT_SHOWTIME, BookingEvent.SEATS_CHOSEN): BookingState.SELECT_SEATS,
    (BookingState.SELECT_SEATS, BookingEvent.HOLD_COMMITTED): BookingState.PAYMENT,
    (BookingState.PAYMENT, BookingEvent.PAYMENT_CONFIRMED): BookingState.CONFIRMED,
    **{
        (state, BookingEvent.FAIL): BookingState.FAILED
        for state in BookingState
        if state not in TERMINAL_STATES
    },
    **{(state, BookingEvent.CANCEL): BookingState.CANCELLED for state in PRE_COMMIT_STATES},
}


def next_state(state: BookingState, event: BookingEvent) -> BookingState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise IllegalTransitionError(f'No transition from {state} on {event}') from None


@attrs.define
class BookingStateMachine:
    state: BookingState = BookingState.INIT
    committed: bool = False
    history: List[Tuple[BookingState, BookingEvent, BookingState]] = attrs.field(factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def can_fire(self, event: BookingEvent) -> bool:
        return (self.state, event) in TRANSITIONS

    def fire(self, event: BookingEvent) -> BookingState:
        target = next_state(self.state, event)
        self.history.append((self.state, event, target))
        self.state = target
        if event == BookingEvent.HOLD_COMMITTED:
            # Seat hold committed: from here on nothing is retried
            self.committed = True
        return target
