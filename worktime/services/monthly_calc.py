from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from worktime.models import AbsenceKind, CreditType, WarningCode
from worktime.schemas import MonthlyEvaluationRules


@dataclass(frozen=True)
class MonthlyComputation:
    total_gross_minutes: int
    total_net_minutes: int
    total_target_minutes: int
    total_overtime_minutes: int
    total_undertime_minutes: int
    total_break_minutes: int
    flextime_start: int
    flextime_change: int
    flextime_credited: int
    flextime_forfeited: int
    flextime_end: int
    vacation_days: Decimal
    sick_days: Decimal
    other_absence_days: Decimal
    work_days: int
    error_days: int
    warnings: tuple[WarningCode, ...] = field(default_factory=tuple)

    @property
    def flextime_carryover(self) -> int:
        return self.flextime_end


def apply_flextime_caps(
    balance: int,
    cap_positive: int | None,
    cap_negative: int | None,
) -> tuple[int, int]:
    """Clamp a balance to ``[-cap_negative, cap_positive]``.

    Returns the capped balance and the minutes forfeited above the positive cap.
    """
    forfeited = 0
    if cap_positive is not None and balance > cap_positive:
        forfeited = balance - cap_positive
        balance = cap_positive
    if cap_negative is not None and balance < -cap_negative:
        balance = -cap_negative
    return balance, forfeited


def calculate_annual_carryover(balance: int | Decimal | None, annual_floor: int | None) -> int | Decimal:
    """Floor a year-end flextime balance at ``-annual_floor``; positive balances pass through."""
    if balance is None:
        return 0
    if annual_floor is not None and balance < -annual_floor:
        return -annual_floor
    return balance


def _credit_flextime(
    start: int,
    change: int,
    rules: MonthlyEvaluationRules,
) -> tuple[int, int, int, list[WarningCode]]:
    warnings: list[WarningCode] = []

    if rules.credit_type == CreditType.NO_CARRYOVER:
        return 0, change, 0, [WarningCode.NO_CARRYOVER]
    if rules.credit_type == CreditType.NO_EVALUATION:
        return change, 0, start + change, warnings

    forfeited = 0
    credited = change
    if rules.credit_type == CreditType.AFTER_THRESHOLD:
        threshold = rules.flextime_threshold or 0
        if change > threshold:
            credited = change - threshold
            forfeited = threshold
        elif change > 0:
            credited = 0
            forfeited = change
            warnings.append(WarningCode.BELOW_THRESHOLD)

    if rules.max_flextime_per_month is not None and credited > rules.max_flextime_per_month:
        forfeited += credited - rules.max_flextime_per_month
        credited = rules.max_flextime_per_month
        warnings.append(WarningCode.MONTHLY_CAP_REACHED)

    uncapped_end = start + credited
    end, capped_away = apply_flextime_caps(uncapped_end, rules.flextime_cap_positive, rules.flextime_cap_negative)
    forfeited += capped_away
    if end != uncapped_end:
        warnings.append(WarningCode.FLEXTIME_CAPPED)
    return credited, forfeited, end, warnings


def calculate_month(
    *,
    daily_values: Iterable[Any],
    previous_carryover: int = 0,
    rules: MonthlyEvaluationRules | None = None,
) -> MonthlyComputation:
    """Sum a month of daily values and move the flextime balance forward.

    ``daily_values`` may be ``DailyResult`` models or ``DailyValue`` rows; only
    the minute totals, ``has_error`` and the absence fields are read.
    """
    totals = {
        "gross": 0,
        "net": 0,
        "target": 0,
        "overtime": 0,
        "undertime": 0,
        "break": 0,
    }
    absence_days = {kind: Decimal("0") for kind in AbsenceKind}
    work_days = 0
    error_days = 0

    for value in daily_values:
        totals["gross"] += value.gross_minutes
        totals["net"] += value.net_minutes
        totals["target"] += value.target_minutes
        totals["overtime"] += value.overtime_minutes
        totals["undertime"] += value.undertime_minutes
        totals["break"] += value.break_minutes
        if value.gross_minutes > 0 or value.net_minutes > 0:
            work_days += 1
        if value.has_error:
            error_days += 1
        if value.absence_kind is not None:
            absence_days[AbsenceKind(value.absence_kind)] += Decimal(value.absence_days or 0)

    change = totals["overtime"] - totals["undertime"]
    credited, forfeited, end, warnings = _credit_flextime(
        previous_carryover,
        change,
        rules or MonthlyEvaluationRules(),
    )

    return MonthlyComputation(
        total_gross_minutes=totals["gross"],
        total_net_minutes=totals["net"],
        total_target_minutes=totals["target"],
        total_overtime_minutes=totals["overtime"],
        total_undertime_minutes=totals["undertime"],
        total_break_minutes=totals["break"],
        flextime_start=previous_carryover,
        flextime_change=change,
        flextime_credited=credited,
        flextime_forfeited=forfeited,
        flextime_end=end,
        vacation_days=absence_days[AbsenceKind.VACATION],
        sick_days=absence_days[AbsenceKind.SICK],
        other_absence_days=absence_days[AbsenceKind.OTHER],
        work_days=work_days,
        error_days=error_days,
        warnings=tuple(warnings),
    )
