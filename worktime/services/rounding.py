from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from worktime.models import CappingSource, PlanKind, RoundingMode
from worktime.schemas import MINUTES_PER_DAY, BookingPair, CappedTime, RoundingPolicy, ScheduleConfig, Tolerance


@dataclass(frozen=True)
class NormalizedPairs:
    pairs: tuple[BookingPair, ...]
    first_come: int | None
    last_go: int | None


@dataclass(frozen=True)
class CappedPairs:
    pairs: tuple[BookingPair, ...]
    items: tuple[CappedTime, ...]

    @property
    def capped_minutes(self) -> int:
        return sum(item.minutes for item in self.items)


def _clamp_to_day(minutes: int) -> int:
    return min(max(minutes, 0), MINUTES_PER_DAY)


def apply_rounding(minutes: int, mode: RoundingMode | str | None, interval: int | None) -> int:
    """Round a clock value to a multiple of ``interval``.

    ``up`` and ``down`` leave exact multiples untouched; ``nearest`` rounds up when
    the remainder is at least half the interval. Unset mode, ``none`` and a
    non-positive interval are no-ops.
    """
    if mode is None or interval is None or interval <= 0:
        return minutes
    resolved = RoundingMode(mode)
    if resolved == RoundingMode.NONE:
        return minutes

    remainder = minutes % interval
    if remainder == 0:
        return minutes
    if resolved == RoundingMode.UP:
        return minutes + (interval - remainder)
    if resolved == RoundingMode.DOWN:
        return minutes - remainder
    if remainder * 2 >= interval:
        return minutes + (interval - remainder)
    return minutes - remainder


def apply_offset(minutes: int, offset: int | None) -> int:
    if not offset:
        return minutes
    return minutes + offset


def round_boundary(minutes: int, policy: RoundingPolicy) -> int:
    rounded = apply_rounding(minutes, policy.mode, policy.interval)
    return _clamp_to_day(apply_offset(rounded, policy.offset))


def apply_come_tolerance(minutes: int, come_from: int | None, tolerance: Tolerance) -> int:
    if come_from is None:
        return minutes
    if come_from - tolerance.come_minus <= minutes <= come_from + tolerance.come_plus:
        return come_from
    return minutes


def apply_go_tolerance(minutes: int, expected_go: int | None, tolerance: Tolerance) -> int:
    if expected_go is None:
        return minutes
    if expected_go - tolerance.go_minus <= minutes <= expected_go + tolerance.go_plus:
        return expected_go
    return minutes


def normalize_work_pairs(pairs: Sequence[BookingPair], schedule: ScheduleConfig) -> NormalizedPairs:
    """Apply tolerance, then rounding, to the boundaries of a day's work pairs.

    Tolerance only touches the first come and the last go. Rounding touches the
    same two boundaries unless the plan rounds every booking.
    """
    ordered = sorted(pairs, key=lambda pair: (pair.start, pair.end, pair.start_id or ""))
    if not ordered:
        return NormalizedPairs(pairs=(), first_come=None, last_go=None)

    first_index = 0
    last_index = max(range(len(ordered)), key=lambda index: (ordered[index].end, index))

    normalized: list[BookingPair] = []
    for index, pair in enumerate(ordered):
        start = pair.start
        end = pair.end

        if index == first_index:
            start = apply_come_tolerance(start, schedule.come_from, schedule.tolerance)
        if index == first_index or schedule.round_all_bookings:
            start = round_boundary(start, schedule.rounding_come)

        if index == last_index:
            end = apply_go_tolerance(end, schedule.expected_go, schedule.tolerance)
        if index == last_index or schedule.round_all_bookings:
            end = round_boundary(end, schedule.rounding_go)

        if start != pair.start or end != pair.end:
            pair = pair.model_copy(update={"start": start, "end": end})
        normalized.append(pair)

    return NormalizedPairs(
        pairs=tuple(normalized),
        first_come=normalized[first_index].start,
        last_go=normalized[last_index].end,
    )


def evaluation_window(schedule: ScheduleConfig) -> tuple[int | None, int | None]:
    """Return the ``(start, end)`` bounds outside which worked time is not counted.

    The start is ``come_from``, widened by ``come_minus`` on flextime plans. The
    end is ``go_to`` widened by ``go_plus``. A missing bound leaves that side open.
    """
    start = schedule.come_from
    if start is not None and schedule.kind == PlanKind.FLEXTIME:
        start -= schedule.tolerance.come_minus
    end = schedule.go_to
    if end is not None:
        end += schedule.tolerance.go_plus
    return start, end


def cap_to_evaluation_window(pairs: Sequence[BookingPair], schedule: ScheduleConfig) -> CappedPairs:
    window_start, window_end = evaluation_window(schedule)
    if window_start is None and window_end is None:
        return CappedPairs(pairs=tuple(pairs), items=())

    early = 0
    late = 0
    capped: list[BookingPair] = []
    for pair in pairs:
        if pair.duration <= 0:
            capped.append(pair)
            continue

        start = pair.start
        end = pair.end
        if window_start is not None and start < window_start:
            early += min(end, window_start) - start
            start = min(window_start, end)
        if window_end is not None and end > window_end:
            late += end - max(start, window_end)
            end = max(window_end, start)

        if start != pair.start or end != pair.end:
            pair = pair.model_copy(update={"start": start, "end": end})
        capped.append(pair)

    items: list[CappedTime] = []
    if early > 0:
        items.append(CappedTime(source=CappingSource.EARLY_ARRIVAL, minutes=early))
    if late > 0:
        items.append(CappedTime(source=CappingSource.LATE_LEAVE, minutes=late))
    return CappedPairs(pairs=tuple(capped), items=tuple(items))
