from __future__ import annotations

import logging

from worktime.models import ShiftMatchKind
from worktime.schemas import ScheduleConfig, ShiftDetectionResult

logger = logging.getLogger("worktime.shift_detection")


def _in_window(minutes: int | None, start: int | None, end: int | None) -> bool:
    if minutes is None or start is None or end is None:
        return False
    return start <= minutes < end


def match_plan(plan: ScheduleConfig, first_come: int | None, last_go: int | None) -> ShiftMatchKind:
    """Return how ``plan`` matches the observed times.

    A plan with both windows configured needs both to match. ``NONE`` means no hit.
    """
    arrival_hit = plan.has_arrival_window and _in_window(
        first_come, plan.shift_detect_arrive_from, plan.shift_detect_arrive_to
    )
    departure_hit = plan.has_departure_window and _in_window(
        last_go, plan.shift_detect_depart_from, plan.shift_detect_depart_to
    )

    if plan.has_arrival_window and plan.has_departure_window:
        return ShiftMatchKind.BOTH if arrival_hit and departure_hit else ShiftMatchKind.NONE
    if arrival_hit:
        return ShiftMatchKind.ARRIVAL
    if departure_hit:
        return ShiftMatchKind.DEPARTURE
    return ShiftMatchKind.NONE


def detect_shift(
    assigned: ScheduleConfig,
    first_come: int | None,
    last_go: int | None,
) -> ShiftDetectionResult:
    if not assigned.has_shift_detection:
        return ShiftDetectionResult(matched_plan=assigned)
    if first_come is None and last_go is None:
        return ShiftDetectionResult(matched_plan=assigned)

    kind = match_plan(assigned, first_come, last_go)
    if kind != ShiftMatchKind.NONE:
        return ShiftDetectionResult(matched_plan=assigned, match_kind=kind)

    for alternative in assigned.alternatives:
        kind = match_plan(alternative, first_come, last_go)
        if kind != ShiftMatchKind.NONE:
            logger.debug(
                "shift_detection_alternative_matched",
                extra={
                    "assigned_plan_id": assigned.plan_id,
                    "matched_plan_id": alternative.plan_id,
                    "match_kind": kind.value,
                },
            )
            return ShiftDetectionResult(matched_plan=alternative, is_original=False, match_kind=kind)

    message = (
        f"No shift plan matches arrival {first_come} / departure {last_go}; "
        f"kept assigned plan {assigned.plan_id}"
    )
    logger.debug(
        "shift_detection_no_match",
        extra={
            "assigned_plan_id": assigned.plan_id,
            "first_come": first_come,
            "last_go": last_go,
            "alternatives": len(assigned.alternatives),
        },
    )
    return ShiftDetectionResult(matched_plan=assigned, has_error=True, message=message)
