from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from worktime.models import SpecialBonusKind, VacationBasis
from worktime.schemas import VacationCalcInput, VacationCalcOutput

MONTHS_PER_YEAR = 12
_HALF = Decimal("0.5")


def _add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _anniversary(entry_date: date, year: int) -> date:
    # Feb 29 entries fall back to Feb 28 in non-leap years.
    day = min(entry_date.day, calendar.monthrange(year, entry_date.month)[1])
    return date(year, entry_date.month, day)


def full_years_between(start: date, reference: date) -> int:
    if reference < start:
        return 0
    years = reference.year - start.year
    if (reference.month, reference.day) < (start.month, start.day):
        years -= 1
    return max(0, years)


def vacation_period(entry_date: date, year: int, basis: VacationBasis) -> tuple[date, date]:
    if basis == VacationBasis.ENTRY_DATE:
        start = _anniversary(entry_date, year)
        end = date.fromordinal(_anniversary(entry_date, year + 1).toordinal() - 1)
        return start, end
    return date(year, 1, 1), date(year, 12, 31)


def months_employed_in_year(
    entry_date: date,
    exit_date: date | None,
    year: int,
    basis: VacationBasis = VacationBasis.CALENDAR_YEAR,
) -> int:
    """Count started months of employment inside the vacation year, capped at 12.

    A partially worked month counts as a full month.
    """
    period_start, period_end = vacation_period(entry_date, year, basis)
    effective_start = max(period_start, entry_date)
    effective_end = period_end if exit_date is None else min(period_end, exit_date)
    if effective_start > effective_end:
        return 0

    months = 0
    current = effective_start
    while current <= effective_end and months < MONTHS_PER_YEAR:
        months += 1
        current = _add_months(effective_start, months)
    return months


def round_to_half_day(value: Decimal) -> Decimal:
    doubled = (value * 2).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return (doubled * _HALF).quantize(Decimal("0.1"))


def calculate_vacation(payload: VacationCalcInput) -> VacationCalcOutput:
    reference = payload.reference_date or date(payload.year, 12, 31)
    age = full_years_between(payload.birth_date, reference)
    tenure = full_years_between(payload.entry_date, reference)
    months = months_employed_in_year(payload.entry_date, payload.exit_date, payload.year, payload.basis)

    base = payload.base_entitlement
    if months < MONTHS_PER_YEAR:
        pro_rated = base * Decimal(months) / Decimal(MONTHS_PER_YEAR)
    else:
        pro_rated = base

    if payload.standard_weekly_hours > 0:
        part_time = pro_rated * payload.weekly_hours / payload.standard_weekly_hours
    else:
        part_time = pro_rated

    age_bonus = Decimal("0")
    tenure_bonus = Decimal("0")
    disability_bonus = Decimal("0")
    for rule in payload.special_rules:
        if rule.kind == SpecialBonusKind.AGE and age >= rule.threshold:
            age_bonus += rule.bonus_days
        elif rule.kind == SpecialBonusKind.TENURE and tenure >= rule.threshold:
            tenure_bonus += rule.bonus_days
        elif rule.kind == SpecialBonusKind.DISABILITY and payload.has_disability:
            disability_bonus += rule.bonus_days

    total = round_to_half_day(part_time + age_bonus + tenure_bonus + disability_bonus)
    return VacationCalcOutput(
        months_employed=months,
        age_at_reference=age,
        tenure_years=tenure,
        base_entitlement=base,
        pro_rated_entitlement=pro_rated,
        part_time_entitlement=part_time,
        age_bonus=age_bonus,
        tenure_bonus=tenure_bonus,
        disability_bonus=disability_bonus,
        total_entitlement=total,
    )


def calculate_carryover(available: Decimal, max_carryover: Decimal | None = None) -> Decimal:
    if available <= 0:
        return Decimal("0")
    if max_carryover is not None and available > max_carryover:
        return max_carryover
    return available


def vacation_deduction(deduction_value: Decimal, duration_days: Decimal) -> Decimal:
    return deduction_value * duration_days
