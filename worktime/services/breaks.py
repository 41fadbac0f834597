from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from worktime.models import BreakKind, WarningCode
from worktime.schemas import BookingPair, BreakRule
from worktime.services.pairing import overlap_minutes, sum_durations


@dataclass(frozen=True)
class BreakDeduction:
    deducted_minutes: int
    recorded_minutes: int
    paid_break_minutes: int
    warnings: frozenset[WarningCode]


def fixed_break_minutes(work_pairs: Sequence[BookingPair], rule: BreakRule) -> int:
    if rule.start is None or rule.end is None:
        return 0
    overlap = sum(
        overlap_minutes(pair.start, pair.end, rule.start, rule.end)
        for pair in work_pairs
        if pair.duration > 0
    )
    return min(overlap, rule.duration)


def minimum_break_floor(gross_minutes: int, rule: BreakRule) -> int:
    if rule.after_work_minutes is None or gross_minutes < rule.after_work_minutes:
        return 0
    if rule.proportional:
        return min(rule.duration, gross_minutes - rule.after_work_minutes)
    return rule.duration


def calculate_break_deduction(
    work_pairs: Sequence[BookingPair],
    break_pairs: Sequence[BookingPair],
    gross_minutes: int,
    rules: Sequence[BreakRule],
) -> BreakDeduction:
    """Compute the break minutes to subtract from gross time.

    Rules are evaluated in configured order. Fixed rules deduct the part of their
    window covered by work, up to the rule duration, whether or not a break was
    booked. The first variable rule takes the booked break minutes; without
    bookings it deducts its duration only when auto-deduct is set. Minimum rules
    raise the total accumulated so far to their floor once gross time reaches
    ``after_work_minutes``. Booked breaks add to fixed deductions even inside the
    fixed window. Paid rules are reported but never deducted.
    """
    recorded = sum_durations(break_pairs)
    has_variable_rule = any(rule.kind == BreakKind.VARIABLE for rule in rules)

    warnings: set[WarningCode] = set()
    if recorded > 0:
        warnings.add(WarningCode.MANUAL_BREAK)

    deducted = 0 if has_variable_rule else recorded
    paid = 0
    recorded_attributed = False

    for rule in rules:
        amount = 0
        if rule.kind == BreakKind.FIXED:
            amount = fixed_break_minutes(work_pairs, rule)
        elif rule.kind == BreakKind.VARIABLE:
            if recorded > 0:
                if not recorded_attributed:
                    amount = recorded
                    recorded_attributed = True
            elif rule.auto_deduct:
                amount = rule.duration
                warnings.update({WarningCode.AUTO_BREAK_APPLIED, WarningCode.NO_BREAK_RECORDED})
        elif rule.kind == BreakKind.MINIMUM:
            if rule.is_paid:
                continue
            floor = minimum_break_floor(gross_minutes, rule)
            if floor > deducted:
                if recorded == 0:
                    warnings.update({WarningCode.AUTO_BREAK_APPLIED, WarningCode.NO_BREAK_RECORDED})
                deducted = floor
            continue

        if rule.is_paid:
            paid += amount
        else:
            deducted += amount

    return BreakDeduction(
        deducted_minutes=deducted,
        recorded_minutes=recorded,
        paid_break_minutes=paid,
        warnings=frozenset(warnings),
    )


def calculate_net_time(gross_minutes: int, break_minutes: int, max_net_work_time: int | None) -> tuple[int, bool]:
    net = max(0, gross_minutes - max(0, break_minutes))
    if max_net_work_time is not None and net > max_net_work_time:
        return max_net_work_time, True
    return net, False


def calculate_overtime_undertime(net_minutes: int, target_minutes: int) -> tuple[int, int]:
    return max(0, net_minutes - target_minutes), max(0, target_minutes - net_minutes)
