from __future__ import annotations

import unittest

from worktime.models import BreakKind, PairKind, WarningCode
from worktime.schemas import BookingPair, BreakRule
from worktime.services.breaks import calculate_break_deduction, calculate_net_time, calculate_overtime_undertime


def _work(start: int, end: int) -> BookingPair:
    return BookingPair(kind=PairKind.WORK, start=start, end=end)


def _break(start: int, end: int) -> BookingPair:
    return BookingPair(kind=PairKind.BREAK, start=start, end=end)


LUNCH = BreakRule(kind=BreakKind.FIXED, start=720, end=750, duration=30)


class BreakDeductionTests(unittest.TestCase):
    def test_fixed_break_inside_work_span(self) -> None:
        deduction = calculate_break_deduction([_work(480, 1020)], [], 540, [LUNCH])

        self.assertEqual(deduction.deducted_minutes, 30)
        self.assertEqual(deduction.warnings, frozenset())

    def test_fixed_break_outside_work_span(self) -> None:
        deduction = calculate_break_deduction([_work(780, 1020)], [], 240, [LUNCH])

        self.assertEqual(deduction.deducted_minutes, 0)

    def test_fixed_break_partial_overlap(self) -> None:
        deduction = calculate_break_deduction([_work(480, 735)], [], 255, [LUNCH])

        self.assertEqual(deduction.deducted_minutes, 15)

    def test_booked_break_adds_to_fixed_break(self) -> None:
        deduction = calculate_break_deduction([_work(480, 1020)], [_break(720, 765)], 540, [LUNCH])

        self.assertEqual(deduction.deducted_minutes, 75)
        self.assertEqual(deduction.recorded_minutes, 45)
        self.assertIn(WarningCode.MANUAL_BREAK, deduction.warnings)

    def test_fixed_window_covered_by_longer_booked_break(self) -> None:
        rule = BreakRule(kind=BreakKind.FIXED, start=720, end=780, duration=30)

        deduction = calculate_break_deduction([_work(480, 1020)], [_break(720, 780)], 540, [rule])

        self.assertEqual(deduction.deducted_minutes, 90)

    def test_variable_break_uses_booking(self) -> None:
        rule = BreakRule(kind=BreakKind.VARIABLE, duration=45, auto_deduct=True)

        deduction = calculate_break_deduction([_work(480, 1020)], [_break(700, 725)], 540, [rule])

        self.assertEqual(deduction.deducted_minutes, 25)
        self.assertEqual(deduction.recorded_minutes, 25)
        self.assertEqual(deduction.warnings, frozenset({WarningCode.MANUAL_BREAK}))

    def test_variable_break_auto_deducts_without_booking(self) -> None:
        rule = BreakRule(kind=BreakKind.VARIABLE, duration=45, auto_deduct=True)

        deduction = calculate_break_deduction([_work(480, 1020)], [], 540, [rule])

        self.assertEqual(deduction.deducted_minutes, 45)
        self.assertEqual(
            deduction.warnings,
            frozenset({WarningCode.AUTO_BREAK_APPLIED, WarningCode.NO_BREAK_RECORDED}),
        )

    def test_variable_break_without_auto_deduct(self) -> None:
        rule = BreakRule(kind=BreakKind.VARIABLE, duration=45)

        deduction = calculate_break_deduction([_work(480, 1020)], [], 540, [rule])

        self.assertEqual(deduction.deducted_minutes, 0)

    def test_booked_breaks_count_without_rules(self) -> None:
        deduction = calculate_break_deduction([_work(480, 1020)], [_break(700, 720)], 540, [])

        self.assertEqual(deduction.deducted_minutes, 20)

    def test_minimum_break_is_a_floor(self) -> None:
        rule = BreakRule(kind=BreakKind.MINIMUM, duration=30, after_work_minutes=360)

        none_booked = calculate_break_deduction([_work(480, 1020)], [], 540, [rule])
        short_booked = calculate_break_deduction([_work(480, 1020)], [_break(700, 715)], 540, [rule])
        long_booked = calculate_break_deduction([_work(480, 1020)], [_break(700, 745)], 540, [rule])

        self.assertEqual(none_booked.deducted_minutes, 30)
        self.assertIn(WarningCode.AUTO_BREAK_APPLIED, none_booked.warnings)
        self.assertEqual(short_booked.deducted_minutes, 30)
        self.assertEqual(long_booked.deducted_minutes, 45)

    def test_minimum_break_exactly_at_threshold(self) -> None:
        rule = BreakRule(kind=BreakKind.MINIMUM, duration=30, after_work_minutes=360)
        proportional = BreakRule(kind=BreakKind.MINIMUM, duration=30, after_work_minutes=360, proportional=True)

        full = calculate_break_deduction([_work(480, 840)], [], 360, [rule])
        scaled = calculate_break_deduction([_work(480, 840)], [], 360, [proportional])

        self.assertEqual(full.deducted_minutes, 30)
        self.assertEqual(scaled.deducted_minutes, 0)

    def test_minimum_break_below_threshold(self) -> None:
        rule = BreakRule(kind=BreakKind.MINIMUM, duration=30, after_work_minutes=360)

        deduction = calculate_break_deduction([_work(480, 780)], [], 300, [rule])

        self.assertEqual(deduction.deducted_minutes, 0)

    def test_minimum_break_proportional(self) -> None:
        rule = BreakRule(kind=BreakKind.MINIMUM, duration=30, after_work_minutes=360, proportional=True)

        deduction = calculate_break_deduction([_work(480, 850)], [], 370, [rule])

        self.assertEqual(deduction.deducted_minutes, 10)

    def test_fixed_then_minimum_floor(self) -> None:
        minimum = BreakRule(kind=BreakKind.MINIMUM, duration=45, after_work_minutes=540)

        deduction = calculate_break_deduction([_work(480, 1080)], [], 600, [LUNCH, minimum])

        self.assertEqual(deduction.deducted_minutes, 45)

    def test_paid_break_is_not_deducted(self) -> None:
        paid = BreakRule(kind=BreakKind.FIXED, start=600, end=615, duration=15, is_paid=True)

        deduction = calculate_break_deduction([_work(480, 1020)], [], 540, [paid, LUNCH])

        self.assertEqual(deduction.deducted_minutes, 30)
        self.assertEqual(deduction.paid_break_minutes, 15)


class NetTimeTests(unittest.TestCase):
    def test_net_time(self) -> None:
        self.assertEqual(calculate_net_time(540, 30, None), (510, False))
        self.assertEqual(calculate_net_time(540, 0, 480), (480, True))
        self.assertEqual(calculate_net_time(20, 60, None), (0, False))

    def test_overtime_undertime(self) -> None:
        self.assertEqual(calculate_overtime_undertime(540, 480), (60, 0))
        self.assertEqual(calculate_overtime_undertime(400, 480), (0, 80))


if __name__ == "__main__":
    unittest.main()
