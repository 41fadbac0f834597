from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from worktime.models import BookingCategory, ErrorCode, PairKind
from worktime.schemas import BookingEvent, BookingPair


@dataclass(frozen=True)
class PairingResult:
    work_pairs: tuple[BookingPair, ...]
    break_pairs: tuple[BookingPair, ...]
    errors: frozenset[ErrorCode]
    unpaired_ids: tuple[str, ...]

    @property
    def pairs(self) -> list[BookingPair]:
        return [*self.work_pairs, *self.break_pairs]


def _sorted_by_category(bookings: Iterable[BookingEvent], category: BookingCategory) -> list[BookingEvent]:
    selected = [booking for booking in bookings if booking.category == category]
    # The id tiebreak keeps identical instants in a stable order regardless of input order.
    return sorted(selected, key=lambda booking: (booking.effective_time, booking.id))


def _pair_sequence(
    starts: Sequence[BookingEvent],
    ends: Sequence[BookingEvent],
    kind: PairKind,
) -> tuple[list[BookingPair], list[BookingEvent], list[BookingEvent]]:
    pairs: list[BookingPair] = []
    unmatched_starts: list[BookingEvent] = []
    used_end_indexes: set[int] = set()

    cursor = 0
    for start in starts:
        # Ends at or before this start can never close a later start either.
        while cursor < len(ends) and ends[cursor].effective_time <= start.effective_time:
            cursor += 1
        if cursor >= len(ends):
            unmatched_starts.append(start)
            continue
        end = ends[cursor]
        pairs.append(
            BookingPair(
                kind=kind,
                start_id=start.id,
                end_id=end.id,
                start=start.effective_time,
                end=end.effective_time,
            )
        )
        used_end_indexes.add(cursor)
        cursor += 1

    unmatched_ends = [end for index, end in enumerate(ends) if index not in used_end_indexes]
    return pairs, unmatched_starts, unmatched_ends


def pair_bookings(bookings: Iterable[BookingEvent]) -> PairingResult:
    """Match a day's raw bookings into ordered work and break pairs.

    Each start is matched to the earliest unused end strictly after it. Unmatched
    starts and ends are reported as MISSING_* error codes.
    """
    events = list(bookings)
    comes = _sorted_by_category(events, BookingCategory.COME)
    goes = _sorted_by_category(events, BookingCategory.GO)
    break_starts = _sorted_by_category(events, BookingCategory.BREAK_START)
    break_ends = _sorted_by_category(events, BookingCategory.BREAK_END)

    work_pairs, open_comes, orphan_goes = _pair_sequence(comes, goes, PairKind.WORK)
    break_pairs, open_breaks, orphan_break_ends = _pair_sequence(break_starts, break_ends, PairKind.BREAK)

    errors: set[ErrorCode] = set()
    if open_comes:
        errors.add(ErrorCode.MISSING_GO)
    if orphan_goes:
        errors.add(ErrorCode.MISSING_COME)
    if open_breaks:
        errors.add(ErrorCode.MISSING_BREAK_END)
    if orphan_break_ends:
        errors.add(ErrorCode.MISSING_BREAK_START)

    unpaired = sorted(item.id for item in (*open_comes, *orphan_goes, *open_breaks, *orphan_break_ends))
    return PairingResult(
        work_pairs=tuple(work_pairs),
        break_pairs=tuple(break_pairs),
        errors=frozenset(errors),
        unpaired_ids=tuple(unpaired),
    )


def first_come(bookings: Iterable[BookingEvent]) -> int | None:
    times = [booking.effective_time for booking in bookings if booking.category == BookingCategory.COME]
    return min(times) if times else None


def last_go(bookings: Iterable[BookingEvent]) -> int | None:
    times = [booking.effective_time for booking in bookings if booking.category == BookingCategory.GO]
    return max(times) if times else None


def overlap_minutes(start_a: int, end_a: int, start_b: int, end_b: int) -> int:
    start = max(start_a, start_b)
    end = min(end_a, end_b)
    return max(0, end - start)


def sum_durations(pairs: Iterable[BookingPair]) -> int:
    # Negative pairs are reported as NEGATIVE_DURATION and never contribute time.
    return sum(pair.duration for pair in pairs if pair.duration > 0)
