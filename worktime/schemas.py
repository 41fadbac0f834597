from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from worktime.models import (
    AbsenceKind,
    AccountKind,
    BookingCategory,
    BreakKind,
    CappingSource,
    CreditType,
    ErrorCode,
    NoBookingPolicy,
    PairKind,
    PlanKind,
    RoundingMode,
    ShiftMatchKind,
    SpecialBonusKind,
    VacationBasis,
    WarningCode,
)

MINUTES_PER_DAY = 1440
MAX_ALTERNATIVE_PLANS = 6


def _window_errors(name: str, start: int | None, end: int | None, *, required_together: bool = False) -> list[str]:
    if start is None and end is None:
        return []
    if start is None or end is None:
        if required_together:
            return [f"both {name}_from and {name}_to must be set together"]
        return []
    if start >= end:
        return [f"{name}_from must be less than {name}_to"]
    return []


class Tolerance(BaseModel):
    come_minus: int = Field(default=0, ge=0)
    come_plus: int = Field(default=0, ge=0)
    go_minus: int = Field(default=0, ge=0)
    go_plus: int = Field(default=0, ge=0)


class RoundingPolicy(BaseModel):
    mode: RoundingMode = RoundingMode.NONE
    interval: int | None = None
    offset: int | None = None


class BreakRule(BaseModel):
    kind: BreakKind
    start: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    end: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    duration: int = Field(default=0, ge=0)
    after_work_minutes: int | None = Field(default=None, ge=0)
    auto_deduct: bool = False
    is_paid: bool = False
    proportional: bool = False

    @model_validator(mode="after")
    def _check_window(self) -> BreakRule:
        errors: list[str] = []
        if self.kind == BreakKind.FIXED:
            if self.start is None or self.end is None:
                errors.append("fixed break requires start and end")
            elif self.start >= self.end:
                errors.append("break start must be less than break end")
        if errors:
            raise ValueError("; ".join(errors))
        return self


class SurchargeRule(BaseModel):
    account: str = Field(min_length=1)
    time_from: int = Field(ge=0, le=MINUTES_PER_DAY)
    time_to: int = Field(ge=0, le=MINUTES_PER_DAY)
    applies_on_workday: bool = True
    applies_on_holiday: bool = False
    holiday_categories: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_window(self) -> SurchargeRule:
        if self.time_from >= self.time_to:
            raise ValueError("time_from must be less than time_to (split windows crossing midnight at 00:00)")
        return self


class SurchargeResult(BaseModel):
    account: str
    minutes: int


class CappedTime(BaseModel):
    source: CappingSource
    minutes: int


class AbsenceFact(BaseModel):
    type_code: str
    kind: AbsenceKind = AbsenceKind.OTHER
    credits_hours: bool = True
    duration_fraction: Decimal = Field(default=Decimal("1.0"), ge=0, le=1)
    priority: int = 0


class ScheduleConfig(BaseModel):
    """Day plan: the declarative work-time policy applied to one calendar day."""

    plan_id: str
    code: str | None = None
    kind: PlanKind = PlanKind.FIXED
    target_minutes: int = Field(default=0, ge=0, le=MINUTES_PER_DAY)

    come_from: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    come_to: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    go_from: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    go_to: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    core_start: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    core_end: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)

    tolerance: Tolerance = Field(default_factory=Tolerance)
    rounding_come: RoundingPolicy = Field(default_factory=RoundingPolicy)
    rounding_go: RoundingPolicy = Field(default_factory=RoundingPolicy)
    round_all_bookings: bool = False

    breaks: list[BreakRule] = Field(default_factory=list)
    min_net_work_time: int | None = Field(default=None, ge=0)
    max_net_work_time: int | None = Field(default=None, ge=0)
    holiday_credits: dict[int, int] = Field(default_factory=dict)

    no_booking_policy: NoBookingPolicy = NoBookingPolicy.ERROR
    no_booking_absence: AbsenceFact | None = None

    shift_detect_arrive_from: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    shift_detect_arrive_to: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    shift_detect_depart_from: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    shift_detect_depart_to: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    alternatives: list[ScheduleConfig] = Field(default_factory=list, max_length=MAX_ALTERNATIVE_PLANS)

    surcharge_rules: list[SurchargeRule] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_windows(self) -> ScheduleConfig:
        errors: list[str] = []
        errors += _window_errors("come", self.come_from, self.come_to)
        errors += _window_errors("go", self.go_from, self.go_to)
        errors += _window_errors("core", self.core_start, self.core_end, required_together=True)
        errors += _window_errors(
            "shift_detect_arrive",
            self.shift_detect_arrive_from,
            self.shift_detect_arrive_to,
            required_together=True,
        )
        errors += _window_errors(
            "shift_detect_depart",
            self.shift_detect_depart_from,
            self.shift_detect_depart_to,
            required_together=True,
        )
        if (
            self.min_net_work_time is not None
            and self.max_net_work_time is not None
            and self.min_net_work_time > self.max_net_work_time
        ):
            errors.append("min_net_work_time must not exceed max_net_work_time")
        for category in self.holiday_credits:
            if category not in (1, 2, 3):
                errors.append(f"holiday credit category {category} is not one of 1, 2, 3")
        if errors:
            raise ValueError("; ".join(errors))
        return self

    @property
    def has_arrival_window(self) -> bool:
        return self.shift_detect_arrive_from is not None and self.shift_detect_arrive_to is not None

    @property
    def has_departure_window(self) -> bool:
        return self.shift_detect_depart_from is not None and self.shift_detect_depart_to is not None

    @property
    def has_shift_detection(self) -> bool:
        return self.has_arrival_window or self.has_departure_window

    @property
    def expected_go(self) -> int | None:
        return self.go_to if self.go_to is not None else self.go_from

    def holiday_credit(self, category: int | None, *, category2_percent: int = 50) -> int:
        if category is None:
            return 0
        if category in self.holiday_credits:
            return self.holiday_credits[category]
        if category == 1:
            return self.target_minutes
        if category == 2:
            return self.target_minutes * category2_percent // 100
        return 0


class BookingEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    category: BookingCategory
    original_time: int = Field(ge=0, lt=MINUTES_PER_DAY)
    edited_time: int | None = Field(default=None, ge=0, lt=MINUTES_PER_DAY)

    @property
    def effective_time(self) -> int:
        return self.edited_time if self.edited_time is not None else self.original_time


class BookingPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: PairKind
    start_id: str | None = None
    end_id: str | None = None
    start: int
    end: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration(self) -> int:
        return self.end - self.start


class DayInput(BaseModel):
    employee_id: int | None = None
    value_date: date | None = None
    schedule: ScheduleConfig | None = None
    bookings: list[BookingEvent] = Field(default_factory=list)
    absence: AbsenceFact | None = None
    is_holiday: bool = False
    holiday_category: int | None = None
    holiday_priority: int | None = None


class ShiftDetectionResult(BaseModel):
    matched_plan: ScheduleConfig | None = None
    is_original: bool = True
    match_kind: ShiftMatchKind = ShiftMatchKind.NONE
    has_error: bool = False
    message: str | None = None

    @property
    def matched_plan_id(self) -> str | None:
        return self.matched_plan.plan_id if self.matched_plan is not None else None


class DailyResult(BaseModel):
    employee_id: int | None = None
    value_date: date | None = None
    plan_id: str | None = None

    gross_minutes: int = 0
    net_minutes: int = 0
    target_minutes: int = 0
    overtime_minutes: int = 0
    undertime_minutes: int = 0
    break_minutes: int = 0

    first_come: int | None = None
    last_go: int | None = None
    pairs: list[BookingPair] = Field(default_factory=list)
    booking_count: int = 0

    error_codes: set[ErrorCode] = Field(default_factory=set)
    warning_codes: set[WarningCode] = Field(default_factory=set)

    absence_kind: AbsenceKind | None = None
    absence_days: Decimal = Decimal("0")
    surcharges: list[SurchargeResult] = Field(default_factory=list)
    capped_minutes: int = 0
    capping: list[CappedTime] = Field(default_factory=list)
    shift: ShiftDetectionResult | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_error(self) -> bool:
        return bool(self.error_codes)

    def with_codes(
        self,
        *,
        errors: set[ErrorCode] | frozenset[ErrorCode] = frozenset(),
        warnings: set[WarningCode] | frozenset[WarningCode] = frozenset(),
    ) -> DailyResult:
        return self.model_copy(
            update={
                "error_codes": self.error_codes | set(errors),
                "warning_codes": self.warning_codes | set(warnings),
            }
        )


class MonthlyEvaluationRules(BaseModel):
    credit_type: CreditType = CreditType.NO_EVALUATION
    flextime_threshold: int | None = Field(default=None, ge=0)
    max_flextime_per_month: int | None = Field(default=None, ge=0)
    flextime_cap_positive: int | None = Field(default=None, ge=0)
    flextime_cap_negative: int | None = Field(default=None, ge=0)
    annual_floor_balance: int | None = Field(default=None, ge=0)


class MonthlyResult(BaseModel):
    employee_id: int
    year: int
    month: int
    total_gross_minutes: int = 0
    total_net_minutes: int = 0
    total_target_minutes: int = 0
    total_overtime_minutes: int = 0
    total_undertime_minutes: int = 0
    total_break_minutes: int = 0
    flextime_start: int = 0
    flextime_change: int = 0
    flextime_end: int = 0
    flextime_carryover: int = 0
    vacation_days: Decimal = Decimal("0")
    sick_days: Decimal = Decimal("0")
    other_absence_days: Decimal = Decimal("0")
    work_days: int = 0
    error_days: int = 0
    warnings: list[str] = Field(default_factory=list)
    is_closed: bool = False
    closed_at: datetime | None = None
    closed_by: str | None = None
    reopened_at: datetime | None = None
    reopened_by: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AccountLedgerEntry(BaseModel):
    employee_id: int
    account_kind: AccountKind
    year: int
    opening_balance: Decimal = Decimal("0")
    current_balance: Decimal = Decimal("0")
    closing_balance: Decimal | None = None
    entitlement: Decimal = Decimal("0")
    used: Decimal = Decimal("0")
    is_closed: bool = False

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def available(self) -> Decimal:
        if self.account_kind == AccountKind.VACATION:
            return self.entitlement + self.opening_balance - self.used
        return self.current_balance


class BalanceCaps(BaseModel):
    positive: Decimal | None = Field(default=None, ge=0)
    negative: Decimal | None = Field(default=None, ge=0)


class VacationSpecialRule(BaseModel):
    kind: SpecialBonusKind
    threshold: int = Field(default=0, ge=0)
    bonus_days: Decimal = Field(ge=0)


class VacationCalcInput(BaseModel):
    year: int = Field(ge=1900, le=2200)
    birth_date: date
    entry_date: date
    exit_date: date | None = None
    weekly_hours: Decimal = Field(ge=0)
    has_disability: bool = False
    base_entitlement: Decimal = Field(ge=0)
    standard_weekly_hours: Decimal = Field(default=Decimal("40"), ge=0)
    basis: VacationBasis = VacationBasis.CALENDAR_YEAR
    special_rules: list[VacationSpecialRule] = Field(default_factory=list)
    reference_date: date | None = None


class VacationCalcOutput(BaseModel):
    months_employed: int
    age_at_reference: int
    tenure_years: int
    base_entitlement: Decimal
    pro_rated_entitlement: Decimal
    part_time_entitlement: Decimal
    age_bonus: Decimal = Decimal("0")
    tenure_bonus: Decimal = Decimal("0")
    disability_bonus: Decimal = Decimal("0")
    total_entitlement: Decimal
