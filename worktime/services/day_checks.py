from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from worktime.models import ErrorCode, PairKind, PlanKind, WarningCode
from worktime.schemas import BookingEvent, BookingPair, DailyResult, DayInput, ScheduleConfig
from worktime.services.pairing import first_come, last_go
from worktime.settings import get_settings


def covers_window(pairs: Sequence[BookingPair], window_start: int, window_end: int) -> bool:
    cursor = window_start
    for pair in sorted(pairs, key=lambda item: (item.start, item.end)):
        if pair.duration <= 0:
            continue
        if pair.start > cursor:
            break
        cursor = max(cursor, pair.end)
        if cursor >= window_end:
            return True
    return cursor >= window_end


def has_overlapping_bookings(bookings: Iterable[BookingEvent]) -> bool:
    counts = Counter((booking.category, booking.effective_time) for booking in bookings)
    return any(count > 1 for count in counts.values())


def _late_arrival_limit(schedule: ScheduleConfig) -> int | None:
    if schedule.kind == PlanKind.FLEXTIME:
        latest = schedule.come_to if schedule.come_to is not None else schedule.come_from
    else:
        latest = schedule.come_from
    if latest is None:
        return None
    return latest + schedule.tolerance.come_plus


def _early_departure_limit(schedule: ScheduleConfig) -> int | None:
    earliest = schedule.go_from if schedule.kind == PlanKind.FLEXTIME else schedule.expected_go
    if earliest is None:
        return None
    return earliest - schedule.tolerance.go_minus


def detect_day_issues(
    result: DailyResult,
    day_input: DayInput,
    schedule: ScheduleConfig,
    *,
    grace_minutes: int | None = None,
    long_work_day_minutes: int | None = None,
) -> DailyResult:
    """Annotate a normal working day with window, core time and booking checks.

    Window checks look at the raw first come and last go so tolerance and rounding
    never hide a violation. The codes are merged as sets, so running the detector
    twice gives the same result.
    """
    settings = get_settings()
    grace = settings.window_grace_minutes if grace_minutes is None else grace_minutes
    long_day = settings.long_work_day_minutes if long_work_day_minutes is None else long_work_day_minutes

    errors: set[ErrorCode] = set()
    warnings: set[WarningCode] = set()

    raw_come = first_come(day_input.bookings)
    raw_go = last_go(day_input.bookings)

    if raw_come is not None and schedule.come_from is not None and raw_come < schedule.come_from - grace:
        errors.add(ErrorCode.CAME_BEFORE_ALLOWED)
    if raw_go is not None and schedule.expected_go is not None and raw_go > schedule.expected_go + grace:
        errors.add(ErrorCode.LEFT_AFTER_ALLOWED)

    work_pairs = [pair for pair in result.pairs if pair.kind == PairKind.WORK]
    if (
        schedule.kind == PlanKind.FLEXTIME
        and schedule.core_start is not None
        and schedule.core_end is not None
        and not covers_window(work_pairs, schedule.core_start, schedule.core_end)
    ):
        errors.add(ErrorCode.MISSED_CORE_TIME)

    if has_overlapping_bookings(day_input.bookings):
        errors.add(ErrorCode.OVERLAPPING_BOOKINGS)
    if any(pair.duration < 0 for pair in result.pairs):
        errors.add(ErrorCode.NEGATIVE_DURATION)

    late_limit = _late_arrival_limit(schedule)
    if raw_come is not None and late_limit is not None and raw_come > late_limit:
        warnings.add(WarningCode.LATE_ARRIVAL)
    early_limit = _early_departure_limit(schedule)
    if raw_go is not None and early_limit is not None and raw_go < early_limit:
        warnings.add(WarningCode.EARLY_DEPARTURE)
    if result.gross_minutes > long_day:
        warnings.add(WarningCode.LONG_WORK_DAY)

    return result.with_codes(errors=errors, warnings=warnings)
