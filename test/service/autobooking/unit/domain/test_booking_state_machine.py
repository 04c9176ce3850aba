"""
Unit tests for BookingStateMachine

Test Focus:
1. Happy path walks INIT to CONFIRMED and flags the commit
2. FAIL is accepted from every non-terminal state
3. CANCEL is rejected once the seat hold is committed
4. Terminal states have no outgoing transitions
"""

import pytest

from src.service.autobooking.domain.booking_state_machine import (
    PRE_COMMIT_STATES,
    TERMINAL_STATES,
    BookingStateMachine,
    next_state,
)
from src.service.autobooking.domain.enum.booking_state import BookingEvent, BookingState
from src.service.autobooking.domain.exception.booking_flow_errors import IllegalTransitionError


HAPPY_PATH = [
    BookingEvent.SESSION_OPENED,
    BookingEvent.SHOWTIME_LOCATED,
    BookingEvent.SEATS_CHOSEN,
    BookingEvent.HOLD_COMMITTED,
    BookingEvent.PAYMENT_CONFIRMED,
]


def _machine_at(state: BookingState) -> BookingStateMachine:
    machine = BookingStateMachine()
    for event in HAPPY_PATH:
        if machine.state == state:
            break
        machine.fire(event)
    assert machine.state == state
    return machine


@pytest.mark.unit
class TestBookingStateMachine:
    def test_happy_path_reaches_confirmed(self):
        # Given
        machine = BookingStateMachine()

        # When
        for event in HAPPY_PATH:
            machine.fire(event)

        # Then
        assert machine.state == BookingState.CONFIRMED
        assert machine.is_terminal is True
        assert machine.committed is True
        assert [target for _, _, target in machine.history] == [
            BookingState.SEARCH,
            BookingState.SELECT_SHOWTIME,
            BookingState.SELECT_SEATS,
            BookingState.PAYMENT,
            BookingState.CONFIRMED,
        ]

    def test_not_committed_before_hold(self):
        machine = _machine_at(BookingState.SELECT_SEATS)

        assert machine.committed is False

    @pytest.mark.parametrize(
        'state', [state for state in BookingState if state not in TERMINAL_STATES]
    )
    def test_fail_from_any_non_terminal_state(self, state):
        assert next_state(state, BookingEvent.FAIL) == BookingState.FAILED

    @pytest.mark.parametrize('state', sorted(PRE_COMMIT_STATES))
    def test_cancel_allowed_before_commit(self, state):
        assert next_state(state, BookingEvent.CANCEL) == BookingState.CANCELLED

    def test_cancel_rejected_in_payment(self):
        # Given: hold committed
        machine = _machine_at(BookingState.PAYMENT)

        # When / Then
        assert machine.can_fire(BookingEvent.CANCEL) is False
        with pytest.raises(IllegalTransitionError):
            machine.fire(BookingEvent.CANCEL)
        assert machine.state == BookingState.PAYMENT

    @pytest.mark.parametrize('state', sorted(TERMINAL_STATES))
    @pytest.mark.parametrize('event', list(BookingEvent))
    def test_terminal_states_are_absorbing(self, state, event):
        with pytest.raises(IllegalTransitionError):
            next_state(state, event)

    def test_skipping_a_step_is_illegal(self):
        machine = BookingStateMachine()

        with pytest.raises(IllegalTransitionError):
            machine.fire(BookingEvent.SEATS_CHOSEN)
        assert machine.history == []
