from typing import Any, Optional

import attrs

from src.platform.exception.exceptions import DomainError


MAX_SEATS_PER_BOOKING = 10
ANY_CATEGORY = 'any'


def _validate_count(instance: 'SeatPreference', attribute: 'attrs.Attribute[int]', value: int) -> None:
    if not 1 <= value <= MAX_SEATS_PER_BOOKING:
        raise DomainError(f'Seat count must be between 1 and {MAX_SEATS_PER_BOOKING}')


def _validate_avoid_bottom_rows(
    instance: 'SeatPreference', attribute: 'attrs.Attribute[int]', value: int
) -> None:
    if value < 0:
        raise DomainError('avoid_bottom_rows cannot be negative')


def _normalize_category(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip() or value.strip().lower() == ANY_CATEGORY:
        return None
    return value.strip()


@attrs.define(frozen=True)
class SeatPreference:
    count: int = attrs.field(validator=_validate_count)
    avoid_bottom_rows: int = attrs.field(default=0, validator=_validate_avoid_bottom_rows)
    prefer_center: bool = True
    need_adjacent: bool = True
    # None = any category; compared case-insensitively with Seat.category
    category: Optional[str] = attrs.field(default=None, converter=_normalize_category)

    def to_dict(self) -> dict[str, Any]:
        return attrs.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'SeatPreference':
        return cls(
            count=int(data['count']),
            avoid_bottom_rows=int(data.get('avoid_bottom_rows', 0)),
            prefer_center=bool(data.get('prefer_center', True)),
            need_adjacent=bool(data.get('need_adjacent', True)),
            category=data.get('category'),
        )
