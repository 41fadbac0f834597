from __future__ import annotations

from itertools import permutations
import unittest

from worktime.models import BookingCategory, ErrorCode, PairKind
from worktime.schemas import BookingEvent
from worktime.services.pairing import first_come, last_go, pair_bookings


def _booking(booking_id: str, category: BookingCategory, minutes: int, edited: int | None = None) -> BookingEvent:
    return BookingEvent(id=booking_id, category=category, original_time=minutes, edited_time=edited)


class BookingPairingTests(unittest.TestCase):
    def test_single_come_go_pair(self) -> None:
        result = pair_bookings(
            [
                _booking("c1", BookingCategory.COME, 480),
                _booking("g1", BookingCategory.GO, 1020),
            ]
        )

        self.assertEqual(len(result.work_pairs), 1)
        pair = result.work_pairs[0]
        self.assertEqual((pair.start, pair.end, pair.duration), (480, 1020, 540))
        self.assertEqual((pair.start_id, pair.end_id), ("c1", "g1"))
        self.assertEqual(result.errors, frozenset())

    def test_only_come_reports_missing_go(self) -> None:
        result = pair_bookings([_booking("c1", BookingCategory.COME, 480)])

        self.assertEqual(result.work_pairs, ())
        self.assertIn(ErrorCode.MISSING_GO, result.errors)
        self.assertEqual(result.unpaired_ids, ("c1",))

    def test_only_go_reports_missing_come(self) -> None:
        result = pair_bookings([_booking("g1", BookingCategory.GO, 1020)])

        self.assertEqual(result.work_pairs, ())
        self.assertEqual(result.errors, frozenset({ErrorCode.MISSING_COME}))

    def test_unmatched_break_bookings(self) -> None:
        open_break = pair_bookings([_booking("b1", BookingCategory.BREAK_START, 720)])
        orphan_end = pair_bookings([_booking("b2", BookingCategory.BREAK_END, 750)])

        self.assertEqual(open_break.errors, frozenset({ErrorCode.MISSING_BREAK_END}))
        self.assertEqual(orphan_end.errors, frozenset({ErrorCode.MISSING_BREAK_START}))

    def test_multiple_cycles_in_one_day(self) -> None:
        result = pair_bookings(
            [
                _booking("c2", BookingCategory.COME, 780),
                _booking("g1", BookingCategory.GO, 720),
                _booking("c1", BookingCategory.COME, 480),
                _booking("g2", BookingCategory.GO, 1020),
            ]
        )

        self.assertEqual([(pair.start, pair.end) for pair in result.work_pairs], [(480, 720), (780, 1020)])
        self.assertEqual(result.errors, frozenset())

    def test_break_pairs_are_separate(self) -> None:
        result = pair_bookings(
            [
                _booking("c1", BookingCategory.COME, 480),
                _booking("b1", BookingCategory.BREAK_START, 720),
                _booking("b2", BookingCategory.BREAK_END, 750),
                _booking("g1", BookingCategory.GO, 1020),
            ]
        )

        self.assertEqual(len(result.work_pairs), 1)
        self.assertEqual(len(result.break_pairs), 1)
        self.assertEqual(result.break_pairs[0].kind, PairKind.BREAK)
        self.assertEqual(result.break_pairs[0].duration, 30)
        self.assertEqual(len(result.pairs), 2)

    def test_end_at_same_minute_is_not_paired(self) -> None:
        result = pair_bookings(
            [
                _booking("c1", BookingCategory.COME, 480),
                _booking("g1", BookingCategory.GO, 480),
            ]
        )

        self.assertEqual(result.work_pairs, ())
        self.assertEqual(result.errors, frozenset({ErrorCode.MISSING_GO, ErrorCode.MISSING_COME}))

    def test_edited_time_wins_over_original(self) -> None:
        come = _booking("c1", BookingCategory.COME, 470, edited=480)
        result = pair_bookings([come, _booking("g1", BookingCategory.GO, 1020)])

        self.assertEqual(result.work_pairs[0].start, 480)
        self.assertEqual(come.original_time, 470)

    def test_pairing_is_independent_of_input_order(self) -> None:
        bookings = [
            _booking("c1", BookingCategory.COME, 480),
            _booking("b1", BookingCategory.BREAK_START, 720),
            _booking("b2", BookingCategory.BREAK_END, 750),
            _booking("g1", BookingCategory.GO, 1020),
            _booking("c2", BookingCategory.COME, 1030),
        ]
        expected = pair_bookings(bookings)

        for ordering in permutations(bookings):
            result = pair_bookings(ordering)
            self.assertEqual(result.work_pairs, expected.work_pairs)
            self.assertEqual(result.break_pairs, expected.break_pairs)
            self.assertEqual(result.errors, expected.errors)

        self.assertEqual(expected.errors, frozenset({ErrorCode.MISSING_GO}))

    def test_first_come_and_last_go_use_raw_times(self) -> None:
        bookings = [
            _booking("c1", BookingCategory.COME, 500),
            _booking("c2", BookingCategory.COME, 480),
            _booking("g1", BookingCategory.GO, 700),
            _booking("g2", BookingCategory.GO, 1010),
        ]

        self.assertEqual(first_come(bookings), 480)
        self.assertEqual(last_go(bookings), 1010)
        self.assertIsNone(first_come([]))


if __name__ == "__main__":
    unittest.main()
