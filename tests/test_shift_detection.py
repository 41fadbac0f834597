from __future__ import annotations

import unittest

from pydantic import ValidationError

from worktime.models import ShiftMatchKind
from worktime.schemas import ScheduleConfig
from worktime.services.shift_detection import detect_shift, match_plan


def _plan(plan_id: str, **kwargs) -> ScheduleConfig:  # type: ignore[no-untyped-def]
    return ScheduleConfig(plan_id=plan_id, target_minutes=480, **kwargs)


class ShiftDetectionTests(unittest.TestCase):
    def test_plan_without_windows_is_used_unconditionally(self) -> None:
        plan = _plan("day")

        result = detect_shift(plan, 300, 1300)

        self.assertEqual(result.matched_plan_id, "day")
        self.assertTrue(result.is_original)
        self.assertEqual(result.match_kind, ShiftMatchKind.NONE)
        self.assertFalse(result.has_error)

    def test_assigned_plan_matches_arrival(self) -> None:
        plan = _plan("day", shift_detect_arrive_from=480, shift_detect_arrive_to=600)

        result = detect_shift(plan, 500, 1000)

        self.assertEqual(result.matched_plan_id, "day")
        self.assertTrue(result.is_original)
        self.assertEqual(result.match_kind, ShiftMatchKind.ARRIVAL)

    def test_alternative_matches_early_arrival(self) -> None:
        early = _plan("early", shift_detect_arrive_from=360, shift_detect_arrive_to=480)
        plan = _plan("day", shift_detect_arrive_from=480, shift_detect_arrive_to=600, alternatives=[early])

        result = detect_shift(plan, 420, 900)

        self.assertEqual(result.matched_plan_id, "early")
        self.assertFalse(result.is_original)
        self.assertEqual(result.match_kind, ShiftMatchKind.ARRIVAL)
        self.assertFalse(result.has_error)

    def test_window_end_is_exclusive(self) -> None:
        plan = _plan("day", shift_detect_arrive_from=480, shift_detect_arrive_to=600)

        self.assertEqual(match_plan(plan, 600, None), ShiftMatchKind.NONE)
        self.assertEqual(match_plan(plan, 480, None), ShiftMatchKind.ARRIVAL)

    def test_departure_at_window_end_falls_to_next_plan(self) -> None:
        late = _plan("late", shift_detect_depart_from=1080, shift_detect_depart_to=1200)
        plan = _plan("day", shift_detect_depart_from=960, shift_detect_depart_to=1080, alternatives=[late])

        self.assertEqual(match_plan(plan, None, 1080), ShiftMatchKind.NONE)
        self.assertEqual(match_plan(plan, None, 1079), ShiftMatchKind.DEPARTURE)
        self.assertEqual(detect_shift(plan, 480, 1080).matched_plan_id, "late")

    def test_both_windows_must_match(self) -> None:
        plan = _plan(
            "day",
            shift_detect_arrive_from=480,
            shift_detect_arrive_to=600,
            shift_detect_depart_from=960,
            shift_detect_depart_to=1080,
        )

        self.assertEqual(match_plan(plan, 500, 1000), ShiftMatchKind.BOTH)
        self.assertEqual(match_plan(plan, 500, 900), ShiftMatchKind.NONE)
        self.assertEqual(match_plan(plan, 700, 1000), ShiftMatchKind.NONE)

    def test_departure_only_alternative(self) -> None:
        late = _plan("late", shift_detect_depart_from=1320, shift_detect_depart_to=1440)
        plan = _plan("day", shift_detect_depart_from=960, shift_detect_depart_to=1080, alternatives=[late])

        result = detect_shift(plan, 840, 1350)

        self.assertEqual(result.matched_plan_id, "late")
        self.assertEqual(result.match_kind, ShiftMatchKind.DEPARTURE)

    def test_first_matching_alternative_wins(self) -> None:
        first = _plan("first", shift_detect_arrive_from=300, shift_detect_arrive_to=480)
        second = _plan("second", shift_detect_arrive_from=360, shift_detect_arrive_to=480)
        plan = _plan(
            "day",
            shift_detect_arrive_from=480,
            shift_detect_arrive_to=600,
            alternatives=[first, second],
        )

        self.assertEqual(detect_shift(plan, 400, 900).matched_plan_id, "first")

    def test_no_match_keeps_assigned_plan_with_error(self) -> None:
        other = _plan("night", shift_detect_arrive_from=1200, shift_detect_arrive_to=1320)
        plan = _plan("day", shift_detect_arrive_from=480, shift_detect_arrive_to=600, alternatives=[other])

        result = detect_shift(plan, 300, 800)

        self.assertEqual(result.matched_plan_id, "day")
        self.assertTrue(result.is_original)
        self.assertTrue(result.has_error)
        self.assertIsNotNone(result.message)

    def test_no_times_uses_assigned_plan(self) -> None:
        plan = _plan("day", shift_detect_arrive_from=480, shift_detect_arrive_to=600)

        result = detect_shift(plan, None, None)

        self.assertEqual(result.matched_plan_id, "day")
        self.assertFalse(result.has_error)

    def test_at_most_six_alternatives(self) -> None:
        alternatives = [_plan(f"alt{index}") for index in range(7)]

        with self.assertRaises(ValidationError):
            _plan("day", alternatives=alternatives)


if __name__ == "__main__":
    unittest.main()
