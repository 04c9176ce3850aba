"""
Browser Session Capability

One session per booking attempt (or watch cycle). BookingFlow depends only on
these screen capabilities; a concrete binding exists per target site revision.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import List, Optional

from src.service.autobooking.domain.value_object.gift_card_ref import GiftCardCredential
from src.service.autobooking.domain.value_object.seat_map import Seat, SeatMap


class IShowtimeScreen(ABC):
    @abstractmethod
    async def open_movie(self, *, city: str, movie_title: str) -> bool:
        """Navigate to the movie's showtime listing. False when the movie is not listed."""
        pass

    @abstractmethod
    async def select_date(self, *, day: date) -> bool:
        """Switch the listing to the given day. False when the site offers no such day."""
        pass

    @abstractmethod
    async def find_showtime(self, *, theatre: str, time: str) -> bool:
        """True when a bookable showtime matching the theatre fragment and time exists."""
        pass

    @abstractmethod
    async def read_seat_map(self, *, theatre: str, time: str) -> SeatMap:
        """Open the showtime and read the live seat map."""
        pass


class ISeatScreen(ABC):
    @abstractmethod
    async def select_seats(self, *, seats: List[Seat]) -> None:
        pass

    @abstractmethod
    async def commit_hold(self) -> None:
        """Submit the selection; the site now holds the seats for this session."""
        pass


class IPaymentScreen(ABC):
    @abstractmethod
    async def apply_gift_card(self, *, credential: GiftCardCredential) -> bool:
        """False when the site rejects the card."""
        pass

    @abstractmethod
    async def read_total_amount(self) -> Optional[float]:
        """Amount payable shown on the payment page; None when it cannot be read."""
        pass

    @abstractmethod
    async def confirm(self) -> str:
        """Complete the purchase and return the booking confirmation id."""
        pass


class IBrowserSession(ABC):
    @property
    @abstractmethod
    def showtime_screen(self) -> IShowtimeScreen:
        pass

    @property
    @abstractmethod
    def seat_screen(self) -> ISeatScreen:
        pass

    @property
    @abstractmethod
    def payment_screen(self) -> IPaymentScreen:
        pass

    @abstractmethod
    async def capture_evidence(self, *, label: str) -> Optional[str]:
        """Save a screenshot of the current page; returns its path."""
        pass


class IBrowserSessionFactory(ABC):
    @abstractmethod
    def open(self) -> AbstractAsyncContextManager[IBrowserSession]:
        """Session released when the context exits, on every path."""
        pass
