"""
Seat map snapshot for one showtime.

Rows are kept in rendered order: index 0 is the first row drawn on the
map, the last row is the "bottom" of the map.
"""

from typing import Any

import attrs


@attrs.define(frozen=True)
class Seat:
    row: str
    number: int
    available: bool
    category: str = ''
    price: float = 0.0

    @property
    def label(self) -> str:
        return f'{self.row}{self.number}'


@attrs.define(frozen=True)
class SeatRow:
    label: str
    seats: tuple[Seat, ...] = ()

    @property
    def free_seats(self) -> tuple[Seat, ...]:
        return tuple(seat for seat in self.seats if seat.available)

    @property
    def center(self) -> float:
        """Horizontal centre of the row in seat-number units."""
        if not self.seats:
            return 0.0
        numbers = [seat.number for seat in self.seats]
        return (min(numbers) + max(numbers)) / 2


@attrs.define(frozen=True)
class SeatMap:
    rows: tuple[SeatRow, ...] = ()

    @property
    def free_seat_count(self) -> int:
        return sum(len(row.free_seats) for row in self.rows)

    def to_dict(self) -> dict[str, Any]:
        return {
            'rows': [
                {
                    'label': row.label,
                    'seats': [
                        {
                            'number': seat.number,
                            'available': seat.available,
                            'category': seat.category,
                            'price': seat.price,
                        }
                        for seat in row.seats
                    ],
                }
                for row in self.rows
            ]
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'SeatMap':
        return cls(
            rows=tuple(
                SeatRow(
                    label=row['label'],
                    seats=tuple(
                        Seat(
                            row=row['label'],
                            number=int(seat['number']),
                            available=bool(seat['available']),
                            category=seat.get('category', ''),
                            price=float(seat.get('price', 0.0)),
                        )
                        for seat in row.get('seats', [])
                    ),
                )
                for row in data.get('rows', [])
            )
        )
