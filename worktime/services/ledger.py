from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from worktime.audit import log_audit
from worktime.errors import LedgerError
from worktime.models import AccountBalance, AccountKind, AuditActorType, DailyValue, MonthlyValue
from worktime.schemas import AccountLedgerEntry, BalanceCaps, DailyResult, MonthlyEvaluationRules
from worktime.services.monthly_calc import MonthlyComputation, calculate_annual_carryover, calculate_month
from worktime.services.vacation import calculate_carryover

logger = logging.getLogger("worktime.ledger")


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _fail(db: Session, code: str, message: str) -> LedgerError:
    db.rollback()
    return LedgerError(code, message)


def _validate_year_month(db: Session, year: int, month: int) -> None:
    if month < 1 or month > 12 or year < 1900 or year > 2200:
        raise _fail(db, "INVALID_YEAR_MONTH", f"Invalid period {year}-{month:02d}")


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    start_date = date(year, month, 1)
    if month == 12:
        end_date = date(year + 1, 1, 1)
    else:
        end_date = date(year, month + 1, 1)
    return start_date, end_date


def _previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def get_monthly_value(db: Session, *, employee_id: int, year: int, month: int) -> MonthlyValue | None:
    return db.scalar(
        select(MonthlyValue).where(
            MonthlyValue.employee_id == employee_id,
            MonthlyValue.year == year,
            MonthlyValue.month == month,
        )
    )


def is_month_closed(db: Session, *, employee_id: int, year: int, month: int) -> bool:
    closed = db.scalar(
        select(MonthlyValue.is_closed).where(
            MonthlyValue.employee_id == employee_id,
            MonthlyValue.year == year,
            MonthlyValue.month == month,
        )
    )
    return bool(closed)


def is_year_closed(db: Session, *, employee_id: int, year: int) -> bool:
    closed_id = db.scalar(
        select(AccountBalance.id).where(
            AccountBalance.employee_id == employee_id,
            AccountBalance.year == year,
            AccountBalance.is_closed.is_(True),
        )
    )
    return closed_id is not None


def _ensure_period_open(db: Session, *, employee_id: int, year: int, month: int) -> None:
    if is_year_closed(db, employee_id=employee_id, year=year):
        raise _fail(db, "YEAR_CLOSED", f"Year {year} is closed for employee {employee_id}")
    if is_month_closed(db, employee_id=employee_id, year=year, month=month):
        raise _fail(db, "MONTH_CLOSED", f"Month {year}-{month:02d} is closed for employee {employee_id}")


def upsert_daily_value(
    db: Session,
    result: DailyResult,
    *,
    rules: MonthlyEvaluationRules | None = None,
) -> DailyValue:
    """Store a calculated day and refresh its month's running sums.

    Rejected with ``MONTH_CLOSED`` or ``YEAR_CLOSED`` while the period is frozen.
    """
    if result.employee_id is None or result.value_date is None:
        raise _fail(db, "MISSING_DAY_KEY", "Daily result needs employee_id and value_date to be stored")

    employee_id = result.employee_id
    value_date = result.value_date
    _ensure_period_open(db, employee_id=employee_id, year=value_date.year, month=value_date.month)

    daily_value = db.scalar(
        select(DailyValue).where(
            DailyValue.employee_id == employee_id,
            DailyValue.value_date == value_date,
        )
    )
    if daily_value is None:
        daily_value = DailyValue(employee_id=employee_id, value_date=value_date)
        db.add(daily_value)

    daily_value.gross_minutes = result.gross_minutes
    daily_value.net_minutes = result.net_minutes
    daily_value.target_minutes = result.target_minutes
    daily_value.overtime_minutes = result.overtime_minutes
    daily_value.undertime_minutes = result.undertime_minutes
    daily_value.break_minutes = result.break_minutes
    daily_value.first_come = result.first_come
    daily_value.last_go = result.last_go
    daily_value.booking_count = result.booking_count
    daily_value.absence_kind = result.absence_kind
    daily_value.absence_days = result.absence_days
    daily_value.has_error = result.has_error
    daily_value.error_codes = sorted(code.value for code in result.error_codes)
    daily_value.warning_codes = sorted(code.value for code in result.warning_codes)
    daily_value.calculated_at = _now_utc()
    db.flush()

    _store_month(db, employee_id=employee_id, year=value_date.year, month=value_date.month, rules=rules)
    db.commit()
    db.refresh(daily_value)
    return daily_value


def _compute_month(
    db: Session,
    *,
    employee_id: int,
    year: int,
    month: int,
    rules: MonthlyEvaluationRules | None,
) -> MonthlyComputation:
    start_date, end_date = _month_bounds(year, month)
    daily_values = db.scalars(
        select(DailyValue)
        .where(
            DailyValue.employee_id == employee_id,
            DailyValue.value_date >= start_date,
            DailyValue.value_date < end_date,
        )
        .order_by(DailyValue.value_date.asc())
    ).all()

    previous_year, previous_month = _previous_month(year, month)
    previous = get_monthly_value(db, employee_id=employee_id, year=previous_year, month=previous_month)
    previous_carryover = previous.flextime_end if previous is not None else 0

    return calculate_month(daily_values=daily_values, previous_carryover=previous_carryover, rules=rules)


def _store_month(
    db: Session,
    *,
    employee_id: int,
    year: int,
    month: int,
    rules: MonthlyEvaluationRules | None,
) -> MonthlyValue:
    computation = _compute_month(db, employee_id=employee_id, year=year, month=month, rules=rules)

    monthly_value = get_monthly_value(db, employee_id=employee_id, year=year, month=month)
    if monthly_value is None:
        monthly_value = MonthlyValue(employee_id=employee_id, year=year, month=month)
        db.add(monthly_value)

    monthly_value.total_gross_minutes = computation.total_gross_minutes
    monthly_value.total_net_minutes = computation.total_net_minutes
    monthly_value.total_target_minutes = computation.total_target_minutes
    monthly_value.total_overtime_minutes = computation.total_overtime_minutes
    monthly_value.total_undertime_minutes = computation.total_undertime_minutes
    monthly_value.total_break_minutes = computation.total_break_minutes
    monthly_value.flextime_start = computation.flextime_start
    monthly_value.flextime_change = computation.flextime_change
    monthly_value.flextime_end = computation.flextime_end
    monthly_value.flextime_carryover = computation.flextime_carryover
    monthly_value.vacation_days = computation.vacation_days
    monthly_value.sick_days = computation.sick_days
    monthly_value.other_absence_days = computation.other_absence_days
    monthly_value.work_days = computation.work_days
    monthly_value.error_days = computation.error_days
    monthly_value.warnings = [warning.value for warning in computation.warnings]
    monthly_value.updated_at = _now_utc()
    db.flush()
    return monthly_value


def recalculate_month(
    db: Session,
    *,
    employee_id: int,
    year: int,
    month: int,
    rules: MonthlyEvaluationRules | None = None,
) -> MonthlyValue:
    _validate_year_month(db, year, month)
    _ensure_period_open(db, employee_id=employee_id, year=year, month=month)
    monthly_value = _store_month(db, employee_id=employee_id, year=year, month=month, rules=rules)
    db.commit()
    db.refresh(monthly_value)
    return monthly_value


def close_month(
    db: Session,
    *,
    employee_id: int,
    year: int,
    month: int,
    actor_id: str,
    actor_type: AuditActorType = AuditActorType.ADMIN,
    rules: MonthlyEvaluationRules | None = None,
) -> MonthlyValue:
    """Recompute a month from its daily values and freeze it."""
    _validate_year_month(db, year, month)
    _ensure_period_open(db, employee_id=employee_id, year=year, month=month)

    monthly_value = _store_month(db, employee_id=employee_id, year=year, month=month, rules=rules)
    closed_at = _now_utc()
    outcome = db.execute(
        update(MonthlyValue)
        .where(MonthlyValue.id == monthly_value.id, MonthlyValue.is_closed.is_(False))
        .values(is_closed=True, closed_at=closed_at, closed_by=actor_id)
        .execution_options(synchronize_session=False)
    )
    if outcome.rowcount != 1:
        raise _fail(db, "MONTH_CLOSED", f"Month {year}-{month:02d} is already closed for employee {employee_id}")
    db.commit()
    db.refresh(monthly_value)

    logger.info(
        "month_closed",
        extra={"employee_id": employee_id, "year": year, "month": month, "actor_id": actor_id},
    )
    log_audit(
        db,
        actor_type=actor_type,
        actor_id=actor_id,
        action="MONTH_CLOSED",
        success=True,
        entity_type="monthly_value",
        entity_id=str(monthly_value.id),
        details={"employee_id": employee_id, "year": year, "month": month},
    )
    return monthly_value


def reopen_month(
    db: Session,
    *,
    employee_id: int,
    year: int,
    month: int,
    actor_id: str,
    actor_type: AuditActorType = AuditActorType.ADMIN,
) -> MonthlyValue:
    _validate_year_month(db, year, month)
    monthly_value = get_monthly_value(db, employee_id=employee_id, year=year, month=month)
    if monthly_value is None:
        raise _fail(db, "MONTHLY_VALUE_NOT_FOUND", f"No monthly value for {year}-{month:02d}")
    if is_year_closed(db, employee_id=employee_id, year=year):
        raise _fail(db, "YEAR_CLOSED", f"Year {year} is closed for employee {employee_id}")

    outcome = db.execute(
        update(MonthlyValue)
        .where(MonthlyValue.id == monthly_value.id, MonthlyValue.is_closed.is_(True))
        .values(is_closed=False, reopened_at=_now_utc(), reopened_by=actor_id)
        .execution_options(synchronize_session=False)
    )
    if outcome.rowcount != 1:
        raise _fail(db, "MONTH_NOT_CLOSED", f"Month {year}-{month:02d} is not closed for employee {employee_id}")
    db.commit()
    db.refresh(monthly_value)

    logger.info(
        "month_reopened",
        extra={"employee_id": employee_id, "year": year, "month": month, "actor_id": actor_id},
    )
    log_audit(
        db,
        actor_type=actor_type,
        actor_id=actor_id,
        action="MONTH_REOPENED",
        success=True,
        entity_type="monthly_value",
        entity_id=str(monthly_value.id),
        details={"employee_id": employee_id, "year": year, "month": month},
    )
    return monthly_value


def _get_balance_row(db: Session, *, employee_id: int, account_kind: AccountKind, year: int) -> AccountBalance | None:
    return db.scalar(
        select(AccountBalance).where(
            AccountBalance.employee_id == employee_id,
            AccountBalance.account_kind == account_kind,
            AccountBalance.year == year,
        )
    )


def get_ledger_entry(
    db: Session,
    *,
    employee_id: int,
    account_kind: AccountKind,
    year: int,
) -> AccountLedgerEntry | None:
    row = _get_balance_row(db, employee_id=employee_id, account_kind=account_kind, year=year)
    if row is None:
        return None
    return AccountLedgerEntry.model_validate(row)


def upsert_ledger_entry(
    db: Session,
    *,
    employee_id: int,
    account_kind: AccountKind,
    year: int,
    opening_balance: Decimal | None = None,
    current_balance: Decimal | None = None,
    entitlement: Decimal | None = None,
    used: Decimal | None = None,
) -> AccountLedgerEntry:
    row = _get_balance_row(db, employee_id=employee_id, account_kind=account_kind, year=year)
    if row is not None and row.is_closed:
        raise _fail(db, "YEAR_CLOSED", f"Account {account_kind.value} {year} is closed for employee {employee_id}")
    if row is None:
        row = AccountBalance(
            employee_id=employee_id,
            account_kind=account_kind,
            year=year,
            opening_balance=Decimal("0"),
            current_balance=Decimal("0"),
            entitlement=Decimal("0"),
            used=Decimal("0"),
        )
        db.add(row)

    if opening_balance is not None:
        row.opening_balance = opening_balance
    if current_balance is not None:
        row.current_balance = current_balance
    if entitlement is not None:
        row.entitlement = entitlement
    if used is not None:
        row.used = used
    db.commit()
    db.refresh(row)
    return AccountLedgerEntry.model_validate(row)


def _cap_balance(balance: Decimal, caps: BalanceCaps | None) -> Decimal:
    if caps is None:
        return balance
    if caps.positive is not None and balance > caps.positive:
        balance = caps.positive
    if caps.negative is not None and balance < -caps.negative:
        balance = -caps.negative
    return balance


def _closing_balance(entry: AccountLedgerEntry, caps: BalanceCaps | None, annual_floor: int | None = None) -> Decimal:
    if entry.account_kind == AccountKind.VACATION:
        max_carryover = caps.positive if caps is not None else None
        return calculate_carryover(entry.available, max_carryover)
    if entry.account_kind == AccountKind.FLEXTIME:
        capped = _cap_balance(entry.current_balance, caps)
        return Decimal(calculate_annual_carryover(capped, annual_floor))
    return entry.current_balance


def close_year(
    db: Session,
    *,
    employee_id: int,
    year: int,
    actor_id: str,
    actor_type: AuditActorType = AuditActorType.ADMIN,
    caps: dict[AccountKind, BalanceCaps] | None = None,
    rules: MonthlyEvaluationRules | None = None,
) -> list[AccountLedgerEntry]:
    """Freeze every account of ``year`` and open ``year + 1`` with the closing balances.

    Flextime closes at its current balance clamped to the configured caps and then
    floored at ``rules.annual_floor_balance``. Vacation closes at the carryover of
    its available days, limited by the positive cap. A year without any account
    rows is rejected with ``NO_ACCOUNTS``.
    """
    if year < 1900 or year > 2200:
        raise _fail(db, "INVALID_YEAR_MONTH", f"Invalid year {year}")
    if is_year_closed(db, employee_id=employee_id, year=year):
        raise _fail(db, "YEAR_CLOSED", f"Year {year} is already closed for employee {employee_id}")

    rows = db.scalars(
        select(AccountBalance)
        .where(AccountBalance.employee_id == employee_id, AccountBalance.year == year)
        .order_by(AccountBalance.account_kind.asc())
    ).all()
    if not rows:
        raise _fail(db, "NO_ACCOUNTS", f"No accounts to close in {year} for employee {employee_id}")

    annual_floor = rules.annual_floor_balance if rules is not None else None

    closed_at = _now_utc()
    closed_entries: list[AccountLedgerEntry] = []
    for row in rows:
        entry = AccountLedgerEntry.model_validate(row)
        closing = _closing_balance(entry, (caps or {}).get(row.account_kind), annual_floor)

        outcome = db.execute(
            update(AccountBalance)
            .where(AccountBalance.id == row.id, AccountBalance.is_closed.is_(False))
            .values(is_closed=True, closing_balance=closing, closed_at=closed_at, closed_by=actor_id)
            .execution_options(synchronize_session=False)
        )
        if outcome.rowcount != 1:
            raise _fail(db, "YEAR_CLOSED", f"Account {row.account_kind.value} {year} was closed concurrently")

        next_row = _get_balance_row(db, employee_id=employee_id, account_kind=row.account_kind, year=year + 1)
        if next_row is None:
            next_row = AccountBalance(
                employee_id=employee_id,
                account_kind=row.account_kind,
                year=year + 1,
                opening_balance=closing,
                current_balance=closing if row.account_kind != AccountKind.VACATION else Decimal("0"),
                entitlement=Decimal("0"),
                used=Decimal("0"),
            )
            db.add(next_row)
        else:
            if row.account_kind != AccountKind.VACATION:
                next_row.current_balance = next_row.current_balance - next_row.opening_balance + closing
            next_row.opening_balance = closing
        db.flush()

    db.commit()
    for row in rows:
        db.refresh(row)
        closed_entries.append(AccountLedgerEntry.model_validate(row))

    logger.info(
        "year_closed",
        extra={"employee_id": employee_id, "year": year, "accounts": len(closed_entries), "actor_id": actor_id},
    )
    log_audit(
        db,
        actor_type=actor_type,
        actor_id=actor_id,
        action="YEAR_CLOSED",
        success=True,
        entity_type="account_balance",
        entity_id=f"{employee_id}:{year}",
        details={"employee_id": employee_id, "year": year, "accounts": [e.account_kind.value for e in closed_entries]},
    )
    return closed_entries
