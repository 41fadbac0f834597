from __future__ import annotations

import enum
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    false,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from worktime.db import Base


class BookingCategory(str, enum.Enum):
    COME = "come"
    GO = "go"
    BREAK_START = "break_start"
    BREAK_END = "break_end"


class PairKind(str, enum.Enum):
    WORK = "work"
    BREAK = "break"


class CappingSource(str, enum.Enum):
    EARLY_ARRIVAL = "early_arrival"
    LATE_LEAVE = "late_leave"
    MAX_NET_TIME = "max_net_time"


class PlanKind(str, enum.Enum):
    FIXED = "fixed"
    FLEXTIME = "flextime"


class RoundingMode(str, enum.Enum):
    NONE = "none"
    UP = "up"
    DOWN = "down"
    NEAREST = "nearest"


class BreakKind(str, enum.Enum):
    FIXED = "fixed"
    VARIABLE = "variable"
    MINIMUM = "minimum"


class NoBookingPolicy(str, enum.Enum):
    ERROR = "error"
    CREDIT_TARGET = "credit_target"
    CREDIT_ZERO = "credit_zero"
    SKIP = "skip"
    USE_ABSENCE = "use_absence"


class ShiftMatchKind(str, enum.Enum):
    NONE = "none"
    ARRIVAL = "arrival"
    DEPARTURE = "departure"
    BOTH = "both"


class AbsenceKind(str, enum.Enum):
    VACATION = "vacation"
    SICK = "sick"
    OTHER = "other"


class VacationBasis(str, enum.Enum):
    CALENDAR_YEAR = "calendar_year"
    ENTRY_DATE = "entry_date"


class SpecialBonusKind(str, enum.Enum):
    AGE = "age"
    TENURE = "tenure"
    DISABILITY = "disability"


class CreditType(str, enum.Enum):
    NO_EVALUATION = "no_evaluation"
    COMPLETE_CARRYOVER = "complete_carryover"
    AFTER_THRESHOLD = "after_threshold"
    NO_CARRYOVER = "no_carryover"


class AccountKind(str, enum.Enum):
    FLEXTIME = "flextime"
    VACATION = "vacation"
    BONUS = "bonus"


class AuditActorType(str, enum.Enum):
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class ErrorCode(str, enum.Enum):
    MISSING_COME = "MISSING_COME"
    MISSING_GO = "MISSING_GO"
    MISSING_BREAK_START = "MISSING_BREAK_START"
    MISSING_BREAK_END = "MISSING_BREAK_END"
    NO_BOOKINGS = "NO_BOOKINGS"
    CAME_BEFORE_ALLOWED = "CAME_BEFORE_ALLOWED"
    LEFT_AFTER_ALLOWED = "LEFT_AFTER_ALLOWED"
    MISSED_CORE_TIME = "MISSED_CORE_TIME"
    OVERLAPPING_BOOKINGS = "OVERLAPPING_BOOKINGS"
    NEGATIVE_DURATION = "NEGATIVE_DURATION"
    BELOW_MIN_WORK_TIME = "BELOW_MIN_WORK_TIME"
    NO_MATCHING_SHIFT = "NO_MATCHING_SHIFT"


class WarningCode(str, enum.Enum):
    LATE_ARRIVAL = "LATE_ARRIVAL"
    EARLY_DEPARTURE = "EARLY_DEPARTURE"
    LONG_WORK_DAY = "LONG_WORK_DAY"
    NET_TIME_CAPPED = "NET_TIME_CAPPED"
    MANUAL_BREAK = "MANUAL_BREAK"
    NO_BREAK_RECORDED = "NO_BREAK_RECORDED"
    AUTO_BREAK_APPLIED = "AUTO_BREAK_APPLIED"
    OFF_DAY = "OFF_DAY"
    BOOKINGS_ON_OFF_DAY = "BOOKINGS_ON_OFF_DAY"
    HOLIDAY = "HOLIDAY"
    ABSENCE_ON_HOLIDAY = "ABSENCE_ON_HOLIDAY"
    WORKED_ON_HOLIDAY = "WORKED_ON_HOLIDAY"
    NO_BOOKINGS_CREDITED = "NO_BOOKINGS_CREDITED"
    NO_BOOKINGS_DEDUCTED = "NO_BOOKINGS_DEDUCTED"
    SHIFT_ALTERNATIVE_USED = "SHIFT_ALTERNATIVE_USED"
    MONTHLY_CAP_REACHED = "MONTHLY_CAP_REACHED"
    FLEXTIME_CAPPED = "FLEXTIME_CAPPED"
    BELOW_THRESHOLD = "BELOW_THRESHOLD"
    NO_CARRYOVER = "NO_CARRYOVER"


class DailyValue(Base):
    __tablename__ = "daily_values"
    __table_args__ = (UniqueConstraint("employee_id", "value_date", name="uq_daily_values_employee_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    value_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    gross_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    net_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overtime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    undertime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    break_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_come: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_go: Mapped[int | None] = mapped_column(Integer, nullable=True)
    booking_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    absence_kind: Mapped[AbsenceKind | None] = mapped_column(
        Enum(AbsenceKind, name="absence_kind"),
        nullable=True,
    )
    absence_days: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    has_error: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    error_codes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    warning_codes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class MonthlyValue(Base):
    __tablename__ = "monthly_values"
    __table_args__ = (
        UniqueConstraint("employee_id", "year", "month", name="uq_monthly_values_employee_month"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    total_gross_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_net_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_target_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_overtime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_undertime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_break_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flextime_start: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flextime_change: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flextime_end: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flextime_carryover: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vacation_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    sick_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    other_absence_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    work_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    warnings: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reopened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reopened_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class AccountBalance(Base):
    __tablename__ = "account_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "account_kind", "year", name="uq_account_balances_employee_kind_year"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    account_kind: Mapped[AccountKind] = mapped_column(Enum(AccountKind, name="account_kind"), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    opening_balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    current_balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    closing_balance: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    entitlement: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    used: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ts_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )
    actor_type: Mapped[AuditActorType] = mapped_column(
        Enum(AuditActorType, name="audit_actor_type"),
        nullable=False,
    )
    actor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
