from src.service.autobooking.domain.value_object.booking_result import BookingResult
from src.service.autobooking.domain.value_object.gift_card_ref import (
    GiftCardCredential,
    GiftCardRef,
)
from src.service.autobooking.domain.value_object.seat_map import Seat, SeatMap, SeatRow
from src.service.autobooking.domain.value_object.seat_preference import SeatPreference

__all__ = [
    'BookingResult',
    'GiftCardCredential',
    'GiftCardRef',
    'Seat',
    'SeatMap',
    'SeatPreference',
    'SeatRow',
]
