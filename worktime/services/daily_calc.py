from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from worktime.models import CappingSource, ErrorCode, NoBookingPolicy, WarningCode
from worktime.schemas import AbsenceFact, CappedTime, DailyResult, DayInput, ScheduleConfig
from worktime.services.breaks import calculate_break_deduction, calculate_net_time, calculate_overtime_undertime
from worktime.services.day_checks import detect_day_issues
from worktime.services.pairing import first_come, last_go, pair_bookings, sum_durations
from worktime.services.rounding import cap_to_evaluation_window, normalize_work_pairs
from worktime.services.shift_detection import detect_shift
from worktime.services.surcharges import calculate_surcharges
from worktime.settings import get_settings

logger = logging.getLogger("worktime.daily_calc")


def _base_result(day_input: DayInput, schedule: ScheduleConfig | None) -> DailyResult:
    return DailyResult(
        employee_id=day_input.employee_id,
        value_date=day_input.value_date,
        plan_id=schedule.plan_id if schedule is not None else None,
        target_minutes=schedule.target_minutes if schedule is not None else 0,
        booking_count=len(day_input.bookings),
    )


def absence_credit_minutes(target_minutes: int, absence: AbsenceFact) -> int:
    if not absence.credits_hours:
        return 0
    credit = (Decimal(target_minutes) * absence.duration_fraction).to_integral_value(rounding=ROUND_HALF_UP)
    return int(credit)


def _absence_day(
    day_input: DayInput,
    schedule: ScheduleConfig | None,
    absence: AbsenceFact,
    warnings: set[WarningCode],
) -> DailyResult:
    result = _base_result(day_input, schedule)
    credit = absence_credit_minutes(result.target_minutes, absence)
    return result.model_copy(
        update={
            "gross_minutes": credit,
            "net_minutes": credit,
            "absence_kind": absence.kind,
            "absence_days": absence.duration_fraction,
            "warning_codes": set(warnings),
        }
    )


def _holiday_day(
    day_input: DayInput,
    schedule: ScheduleConfig | None,
    *,
    category2_percent: int,
) -> DailyResult:
    result = _base_result(day_input, schedule)
    category = day_input.holiday_category or 1
    credit = schedule.holiday_credit(category, category2_percent=category2_percent) if schedule is not None else 0
    return result.model_copy(
        update={
            "gross_minutes": credit,
            "net_minutes": credit,
            "undertime_minutes": max(0, result.target_minutes - credit),
            "warning_codes": {WarningCode.HOLIDAY},
        }
    )


def _off_day(day_input: DayInput) -> DailyResult:
    warnings = {WarningCode.OFF_DAY}
    if day_input.bookings:
        warnings.add(WarningCode.BOOKINGS_ON_OFF_DAY)
    return _base_result(day_input, None).model_copy(update={"warning_codes": warnings})


def _no_booking_day(day_input: DayInput, schedule: ScheduleConfig) -> DailyResult | None:
    policy = schedule.no_booking_policy
    if policy == NoBookingPolicy.SKIP:
        return None
    if policy == NoBookingPolicy.USE_ABSENCE and schedule.no_booking_absence is not None:
        return _absence_day(day_input, schedule, schedule.no_booking_absence, set())

    result = _base_result(day_input, schedule)
    target = result.target_minutes
    if policy == NoBookingPolicy.CREDIT_TARGET:
        return result.model_copy(
            update={
                "gross_minutes": target,
                "net_minutes": target,
                "warning_codes": {WarningCode.NO_BOOKINGS_CREDITED},
            }
        )
    if policy == NoBookingPolicy.CREDIT_ZERO:
        return result.model_copy(
            update={
                "undertime_minutes": target,
                "warning_codes": {WarningCode.NO_BOOKINGS_DEDUCTED},
            }
        )
    return result.model_copy(
        update={
            "undertime_minutes": target,
            "error_codes": {ErrorCode.NO_BOOKINGS},
        }
    )


def _worked_day(
    day_input: DayInput,
    assigned: ScheduleConfig,
    *,
    grace_minutes: int | None,
    long_work_day_minutes: int | None,
) -> DailyResult:
    detection = detect_shift(assigned, first_come(day_input.bookings), last_go(day_input.bookings))
    schedule = detection.matched_plan or assigned

    errors: set[ErrorCode] = set()
    warnings: set[WarningCode] = set()
    if detection.has_error:
        errors.add(ErrorCode.NO_MATCHING_SHIFT)
    if not detection.is_original:
        warnings.add(WarningCode.SHIFT_ALTERNATIVE_USED)
    if day_input.is_holiday:
        warnings.add(WarningCode.WORKED_ON_HOLIDAY)

    pairing = pair_bookings(day_input.bookings)
    errors |= pairing.errors

    normalized = normalize_work_pairs(pairing.work_pairs, schedule)
    windowed = cap_to_evaluation_window(normalized.pairs, schedule)
    gross = sum_durations(windowed.pairs)

    deduction = calculate_break_deduction(windowed.pairs, pairing.break_pairs, gross, schedule.breaks)
    warnings |= deduction.warnings

    capping = list(windowed.items)
    net, capped = calculate_net_time(gross, deduction.deducted_minutes, schedule.max_net_work_time)
    if capped:
        warnings.add(WarningCode.NET_TIME_CAPPED)
        uncapped_net = max(0, gross - deduction.deducted_minutes)
        capping.append(CappedTime(source=CappingSource.MAX_NET_TIME, minutes=uncapped_net - net))
    if schedule.min_net_work_time is not None and net < schedule.min_net_work_time:
        errors.add(ErrorCode.BELOW_MIN_WORK_TIME)

    overtime, undertime = calculate_overtime_undertime(net, schedule.target_minutes)
    surcharges = calculate_surcharges(
        windowed.pairs,
        schedule.surcharge_rules,
        is_holiday=day_input.is_holiday,
        holiday_category=day_input.holiday_category,
    )

    result = _base_result(day_input, schedule).model_copy(
        update={
            "gross_minutes": gross,
            "net_minutes": net,
            "overtime_minutes": overtime,
            "undertime_minutes": undertime,
            "break_minutes": deduction.deducted_minutes,
            "first_come": normalized.first_come,
            "last_go": normalized.last_go,
            "pairs": [*windowed.pairs, *pairing.break_pairs],
            "error_codes": errors,
            "warning_codes": warnings,
            "surcharges": surcharges,
            "capped_minutes": sum(item.minutes for item in capping),
            "capping": capping,
            "shift": detection,
        }
    )
    return detect_day_issues(
        result,
        day_input,
        schedule,
        grace_minutes=grace_minutes,
        long_work_day_minutes=long_work_day_minutes,
    )


def calculate_day(
    day_input: DayInput,
    *,
    grace_minutes: int | None = None,
    long_work_day_minutes: int | None = None,
    holiday_category2_percent: int | None = None,
    default_holiday_priority: int | None = None,
) -> DailyResult | None:
    """Calculate one employee day from its plan, bookings and absence/holiday facts.

    Dispatch order: absence, holiday without bookings, off day, no bookings, worked
    day. On a holiday an absence only wins when its priority is higher than the
    holiday's. Returns ``None`` only for the ``skip`` no-booking policy.
    """
    settings = get_settings()
    category2_percent = (
        settings.holiday_category2_percent if holiday_category2_percent is None else holiday_category2_percent
    )
    holiday_priority = day_input.holiday_priority
    if holiday_priority is None:
        holiday_priority = (
            settings.default_holiday_priority if default_holiday_priority is None else default_holiday_priority
        )

    schedule = day_input.schedule
    absence = day_input.absence

    if absence is not None and (not day_input.is_holiday or absence.priority > holiday_priority):
        warnings = {WarningCode.ABSENCE_ON_HOLIDAY} if day_input.is_holiday else set()
        result = _absence_day(day_input, schedule, absence, warnings)
        branch = "absence"
    elif day_input.is_holiday and not day_input.bookings:
        result = _holiday_day(day_input, schedule, category2_percent=category2_percent)
        branch = "holiday"
    elif schedule is None:
        result = _off_day(day_input)
        branch = "off_day"
    elif not day_input.bookings:
        result = _no_booking_day(day_input, schedule)
        branch = "no_bookings"
    else:
        result = _worked_day(
            day_input,
            schedule,
            grace_minutes=grace_minutes,
            long_work_day_minutes=long_work_day_minutes,
        )
        branch = "worked"

    if result is None:
        logger.debug(
            "daily_calc_skipped",
            extra={"employee_id": day_input.employee_id, "value_date": day_input.value_date},
        )
        return None

    logger.debug(
        "daily_calc_completed",
        extra={
            "employee_id": result.employee_id,
            "value_date": result.value_date,
            "branch": branch,
            "plan_id": result.plan_id,
            "net_minutes": result.net_minutes,
            "error_codes": sorted(code.value for code in result.error_codes),
        },
    )
    return result
