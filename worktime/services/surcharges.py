from __future__ import annotations

from collections.abc import Sequence

from pydantic import ValidationError

from worktime.errors import ConfigurationError
from worktime.schemas import MINUTES_PER_DAY, BookingPair, SurchargeResult, SurchargeRule
from worktime.services.pairing import overlap_minutes


def validate_surcharge_window(time_from: int, time_to: int) -> list[str]:
    errors: list[str] = []
    if not 0 <= time_from <= MINUTES_PER_DAY:
        errors.append(f"time_from {time_from} is outside 0..{MINUTES_PER_DAY}")
    if not 0 <= time_to <= MINUTES_PER_DAY:
        errors.append(f"time_to {time_to} is outside 0..{MINUTES_PER_DAY}")
    if time_from >= time_to:
        errors.append(
            "time_from must be less than time_to; split windows crossing midnight at 00:00"
        )
    return errors


def split_overnight_window(
    account: str,
    time_from: int,
    time_to: int,
    *,
    applies_on_workday: bool = True,
    applies_on_holiday: bool = False,
    holiday_categories: Sequence[int] = (),
) -> list[SurchargeRule]:
    """Turn a window such as 22:00-06:00 into rules that never cross midnight.

    Windows that do not cross midnight come back as a single rule.
    """
    for bound in (time_from, time_to):
        if not 0 <= bound <= MINUTES_PER_DAY:
            raise ConfigurationError([f"surcharge bound {bound} is outside 0..{MINUTES_PER_DAY}"])
    if time_from == time_to:
        raise ConfigurationError(["surcharge window must not be empty"])

    if time_from < time_to:
        windows = [(time_from, time_to)]
    else:
        windows = [(time_from, MINUTES_PER_DAY), (0, time_to)]

    rules: list[SurchargeRule] = []
    for start, end in windows:
        if start >= end:
            continue
        try:
            rules.append(
                SurchargeRule(
                    account=account,
                    time_from=start,
                    time_to=end,
                    applies_on_workday=applies_on_workday,
                    applies_on_holiday=applies_on_holiday,
                    holiday_categories=list(holiday_categories),
                )
            )
        except ValidationError as exc:
            raise ConfigurationError([error["msg"] for error in exc.errors()]) from exc
    return rules


def rule_applies(rule: SurchargeRule, *, is_holiday: bool, holiday_category: int | None) -> bool:
    if is_holiday:
        if not rule.applies_on_holiday:
            return False
        if rule.holiday_categories and holiday_category not in rule.holiday_categories:
            return False
        return True
    return rule.applies_on_workday


def calculate_surcharges(
    work_pairs: Sequence[BookingPair],
    rules: Sequence[SurchargeRule],
    *,
    is_holiday: bool = False,
    holiday_category: int | None = None,
) -> list[SurchargeResult]:
    results: list[SurchargeResult] = []
    for rule in rules:
        if not rule_applies(rule, is_holiday=is_holiday, holiday_category=holiday_category):
            continue
        minutes = sum(
            overlap_minutes(pair.start, pair.end, rule.time_from, rule.time_to)
            for pair in work_pairs
            if pair.duration > 0
        )
        if minutes > 0:
            results.append(SurchargeResult(account=rule.account, minutes=minutes))
    return results
