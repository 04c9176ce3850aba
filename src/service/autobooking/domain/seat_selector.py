"""
Seat Selector
Pure seat selection logic: seat map + preference → chosen seats or infeasibility.
No browser, no Redis. Identical inputs always give identical output, so a retry
against an unchanged map picks the same seats.

Rules:
1. Drop the last `avoid_bottom_rows` rows of the rendered map
2. need_adjacent → only maximal contiguous free runs (consecutive seat numbers)
   of length >= count; each run contributes one window of exactly `count` seats
   (nearest the row centre when prefer_center, else leftmost)
3. Rank: prefer_center → |window centre - row centre|, then row index, then leftmost
         otherwise     → row index, then leftmost
4. Without adjacency single free seats are ranked the same way; best `count` win
5. A category, when set, limits every rule above to seats of that category
"""

from typing import List, Optional, Sequence, Tuple

import attrs

from src.platform.logging.loguru_io import Logger
from src.service.autobooking.domain.value_object.seat_map import Seat, SeatMap, SeatRow
from src.service.autobooking.domain.value_object.seat_preference import SeatPreference


RankKey = Tuple[float, ...]


@attrs.define(frozen=True)
class SeatSelectionResult:
    success: bool
    seats: Tuple[Seat, ...] = ()
    row_label: str = ''
    error_message: str = ''

    @property
    def labels(self) -> List[str]:
        return [seat.label for seat in self.seats]

    @classmethod
    def success_result(cls, seats: Sequence[Seat]) -> 'SeatSelectionResult':
        rows = {seat.row for seat in seats}
        return cls(
            success=True,
            seats=tuple(seats),
            row_label=next(iter(rows)) if len(rows) == 1 else '',
        )

    @classmethod
    def failure_result(cls, error: str) -> 'SeatSelectionResult':
        return cls(success=False, error_message=error)


def eligible_rows(*, seat_map: SeatMap, avoid_bottom_rows: int) -> Tuple[SeatRow, ...]:
    if avoid_bottom_rows <= 0:
        return seat_map.rows
    return seat_map.rows[: max(len(seat_map.rows) - avoid_bottom_rows, 0)]


def free_seats_of(row: SeatRow, *, category: Optional[str] = None) -> Tuple[Seat, ...]:
    if category is None:
        return row.free_seats
    return tuple(seat for seat in row.free_seats if seat.category.lower() == category.lower())


def free_runs(row: SeatRow, *, category: Optional[str] = None) -> List[List[Seat]]:
    """Maximal runs of free seats with consecutive seat numbers, left to right."""
    runs: List[List[Seat]] = []
    for seat in sorted(free_seats_of(row, category=category), key=lambda s: s.number):
        if runs and seat.number == runs[-1][-1].number + 1:
            runs[-1].append(seat)
        else:
            runs.append([seat])
    return runs


def _window_centre(window: Sequence[Seat]) -> float:
    return (window[0].number + window[-1].number) / 2


def _best_window(*, run: List[Seat], count: int, row_centre: float, prefer_center: bool) -> List[Seat]:
    if not prefer_center:
        return run[:count]
    # min() keeps the first (leftmost) offset on equal distance
    offset = min(
        range(len(run) - count + 1),
        key=lambda i: abs(_window_centre(run[i : i + count]) - row_centre),
    )
    return run[offset : offset + count]


def _rank(*, centre: float, row_centre: float, row_index: int, leftmost: int, prefer_center: bool) -> RankKey:
    if prefer_center:
        return (abs(centre - row_centre), row_index, leftmost)
    return (row_index, leftmost)


def _select_adjacent(*, rows: Sequence[SeatRow], preference: SeatPreference) -> SeatSelectionResult:
    count = preference.count
    candidates: List[Tuple[RankKey, List[Seat]]] = []

    for row_index, row in enumerate(rows):
        for run in free_runs(row, category=preference.category):
            if len(run) < count:
                continue
            window = _best_window(
                run=run, count=count, row_centre=row.center, prefer_center=preference.prefer_center
            )
            key = _rank(
                centre=_window_centre(window),
                row_centre=row.center,
                row_index=row_index,
                leftmost=window[0].number,
                prefer_center=preference.prefer_center,
            )
            candidates.append((key, window))

    if not candidates:
        return SeatSelectionResult.failure_result(f'No {count} adjacent free seats in eligible rows')

    _, window = min(candidates, key=lambda candidate: candidate[0])
    return SeatSelectionResult.success_result(window)


def _select_scattered(*, rows: Sequence[SeatRow], preference: SeatPreference) -> SeatSelectionResult:
    count = preference.count
    ranked: List[Tuple[RankKey, int, Seat]] = []

    for row_index, row in enumerate(rows):
        for seat in free_seats_of(row, category=preference.category):
            key = _rank(
                centre=seat.number,
                row_centre=row.center,
                row_index=row_index,
                leftmost=seat.number,
                prefer_center=preference.prefer_center,
            )
            ranked.append((key, row_index, seat))

    if len(ranked) < count:
        return SeatSelectionResult.failure_result(
            f'Not enough free seats in eligible rows. Need {count}, found {len(ranked)}'
        )

    chosen = sorted(ranked, key=lambda item: item[0])[:count]
    # Present in map order (row, then seat number)
    chosen.sort(key=lambda item: (item[1], item[2].number))
    return SeatSelectionResult.success_result([seat for _, _, seat in chosen])


@Logger.io
def select_seats(*, seat_map: SeatMap, preference: SeatPreference) -> SeatSelectionResult:
    rows = eligible_rows(seat_map=seat_map, avoid_bottom_rows=preference.avoid_bottom_rows)
    if not rows:
        return SeatSelectionResult.failure_result('All rows excluded by avoid_bottom_rows')

    if preference.need_adjacent:
        return _select_adjacent(rows=rows, preference=preference)
    return _select_scattered(rows=rows, preference=preference)
