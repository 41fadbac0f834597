from __future__ import annotations

from decimal import Decimal
import unittest

from worktime.models import AbsenceKind, CreditType, ErrorCode, WarningCode
from worktime.schemas import DailyResult, MonthlyEvaluationRules
from worktime.services.monthly_calc import apply_flextime_caps, calculate_annual_carryover, calculate_month


def _worked(net: int, target: int = 480, *, errors: set[ErrorCode] | None = None) -> DailyResult:
    return DailyResult(
        gross_minutes=net,
        net_minutes=net,
        target_minutes=target,
        overtime_minutes=max(0, net - target),
        undertime_minutes=max(0, target - net),
        error_codes=errors or set(),
    )


class MonthlyAggregationTests(unittest.TestCase):
    def test_totals_and_flextime_without_rules(self) -> None:
        days = [_worked(540), _worked(540), _worked(450)]

        month = calculate_month(daily_values=days, previous_carryover=100)

        self.assertEqual(month.total_net_minutes, 1530)
        self.assertEqual(month.total_target_minutes, 1440)
        self.assertEqual(month.total_overtime_minutes, 120)
        self.assertEqual(month.total_undertime_minutes, 30)
        self.assertEqual(month.flextime_start, 100)
        self.assertEqual(month.flextime_change, 90)
        self.assertEqual(month.flextime_end, 190)
        self.assertEqual(month.flextime_carryover, 190)
        self.assertEqual(month.work_days, 3)
        self.assertEqual(month.warnings, ())

    def test_error_days_and_absence_counts(self) -> None:
        vacation = DailyResult(
            gross_minutes=480,
            net_minutes=480,
            target_minutes=480,
            absence_kind=AbsenceKind.VACATION,
            absence_days=Decimal("1.0"),
        )
        half_sick = DailyResult(
            gross_minutes=240,
            net_minutes=240,
            target_minutes=480,
            absence_kind=AbsenceKind.SICK,
            absence_days=Decimal("0.5"),
        )
        broken = _worked(0, errors={ErrorCode.MISSING_GO})

        month = calculate_month(daily_values=[vacation, half_sick, broken])

        self.assertEqual(month.vacation_days, Decimal("1.0"))
        self.assertEqual(month.sick_days, Decimal("0.5"))
        self.assertEqual(month.other_absence_days, Decimal("0"))
        self.assertEqual(month.error_days, 1)
        self.assertEqual(month.work_days, 2)

    def test_complete_carryover_with_monthly_cap(self) -> None:
        rules = MonthlyEvaluationRules(credit_type=CreditType.COMPLETE_CARRYOVER, max_flextime_per_month=60)

        month = calculate_month(daily_values=[_worked(570)], previous_carryover=100, rules=rules)

        self.assertEqual(month.flextime_credited, 60)
        self.assertEqual(month.flextime_forfeited, 30)
        self.assertEqual(month.flextime_end, 160)
        self.assertIn(WarningCode.MONTHLY_CAP_REACHED, month.warnings)

    def test_positive_balance_cap(self) -> None:
        rules = MonthlyEvaluationRules(credit_type=CreditType.COMPLETE_CARRYOVER, flextime_cap_positive=120)

        month = calculate_month(daily_values=[_worked(570)], previous_carryover=100, rules=rules)

        self.assertEqual(month.flextime_end, 120)
        self.assertEqual(month.flextime_forfeited, 70)
        self.assertIn(WarningCode.FLEXTIME_CAPPED, month.warnings)

    def test_negative_balance_cap(self) -> None:
        rules = MonthlyEvaluationRules(credit_type=CreditType.COMPLETE_CARRYOVER, flextime_cap_negative=120)

        month = calculate_month(daily_values=[_worked(430)], previous_carryover=-100, rules=rules)

        self.assertEqual(month.flextime_end, -120)
        self.assertIn(WarningCode.FLEXTIME_CAPPED, month.warnings)

    def test_after_threshold(self) -> None:
        rules = MonthlyEvaluationRules(credit_type=CreditType.AFTER_THRESHOLD, flextime_threshold=30)

        above = calculate_month(daily_values=[_worked(570)], rules=rules)
        below = calculate_month(daily_values=[_worked(500)], rules=rules)
        negative = calculate_month(daily_values=[_worked(440)], rules=rules)

        self.assertEqual((above.flextime_credited, above.flextime_end), (60, 60))
        self.assertEqual((below.flextime_credited, below.flextime_forfeited), (0, 20))
        self.assertIn(WarningCode.BELOW_THRESHOLD, below.warnings)
        self.assertEqual(negative.flextime_end, -40)

    def test_no_carryover(self) -> None:
        rules = MonthlyEvaluationRules(credit_type=CreditType.NO_CARRYOVER)

        month = calculate_month(daily_values=[_worked(570)], previous_carryover=300, rules=rules)

        self.assertEqual(month.flextime_end, 0)
        self.assertEqual(month.flextime_forfeited, 90)
        self.assertEqual(month.warnings, (WarningCode.NO_CARRYOVER,))

    def test_empty_month(self) -> None:
        month = calculate_month(daily_values=[], previous_carryover=45)

        self.assertEqual(month.total_net_minutes, 0)
        self.assertEqual(month.flextime_end, 45)


class FlextimeCapTests(unittest.TestCase):
    def test_apply_flextime_caps(self) -> None:
        self.assertEqual(apply_flextime_caps(500, 300, None), (300, 200))
        self.assertEqual(apply_flextime_caps(-500, None, 300), (-300, 0))
        self.assertEqual(apply_flextime_caps(100, 300, 300), (100, 0))

    def test_annual_carryover_floor(self) -> None:
        self.assertEqual(calculate_annual_carryover(-500, 300), -300)
        self.assertEqual(calculate_annual_carryover(200, 300), 200)
        self.assertEqual(calculate_annual_carryover(None, 300), 0)
        self.assertEqual(calculate_annual_carryover(-500, None), -500)


if __name__ == "__main__":
    unittest.main()
