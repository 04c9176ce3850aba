from typing import Any, Optional

import attrs


@attrs.define(frozen=True)
class BookingResult:
    """Terminal record of one booking attempt."""

    success: bool
    booking_id: Optional[str] = None
    diagnostic_artifact_path: Optional[str] = None
    error: Optional[str] = None
    seats: tuple[str, ...] = ()
    theatre: Optional[str] = None
    showtime: Optional[str] = None
    total_amount: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        data = attrs.asdict(self)
        data['seats'] = list(self.seats)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'BookingResult':
        total_amount = data.get('total_amount')
        return cls(
            success=bool(data['success']),
            booking_id=data.get('booking_id'),
            diagnostic_artifact_path=data.get('diagnostic_artifact_path'),
            error=data.get('error'),
            seats=tuple(data.get('seats') or ()),
            theatre=data.get('theatre'),
            showtime=data.get('showtime'),
            total_amount=float(total_amount) if total_amount is not None else None,
        )
