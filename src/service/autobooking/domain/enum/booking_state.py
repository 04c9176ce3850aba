from enum import StrEnum


class BookingState(StrEnum):
    INIT = 'init'
    SEARCH = 'search'
    SELECT_SHOWTIME = 'select_showtime'
    SELECT_SEATS = 'select_seats'
    PAYMENT = 'payment'
    CONFIRMED = 'confirmed'
    FAILED = 'failed'
    CANCELLED = 'cancelled'


class BookingEvent(StrEnum):
    SESSION_OPENED = 'session_opened'
    SHOWTIME_LOCATED = 'showtime_located'
    SEATS_CHOSEN = 'seats_chosen'
    HOLD_COMMITTED = 'hold_committed'
    PAYMENT_CONFIRMED = 'payment_confirmed'
    FAIL = 'fail'
    CANCEL = 'cancel'
