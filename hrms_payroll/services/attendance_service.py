"""
HRMS Payroll - Attendance Aggregator

Reduces one employee's daily attendance rows and approved leave for a
payroll month into the counters the salary calculator prorates on.

Counting rules:
- present: +1 present, +1 working
- half-day: +0.5 present, +1 working
- absent: +1 absent, +1 loss-of-pay
- holiday / weekend / on_leave rows: ignored
- approved leave: overlapping days added to both leave and working

A date covered by both an attendance row and an approved leave counts in
both places. Payroll totals depend on this, so it is kept as-is.
"""

import calendar
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Tuple

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_payroll.models.attendance import (
    AttendanceRecord,
    AttendanceStatus,
    EmployeeLeave,
    LeaveStatus,
)


@dataclass
class AttendanceSummary:
    """Attendance counters for one employee and payroll month."""
    working_days: Decimal = Decimal("0")
    present_days: Decimal = Decimal("0")
    absent_days: Decimal = Decimal("0")
    leave_days: Decimal = Decimal("0")
    lop_days: Decimal = Decimal("0")

    @property
    def days_in_month(self) -> Decimal:
        """Denominator of the attendance ratio."""
        return self.working_days + self.absent_days + self.leave_days


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    """First and last calendar day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def overlap_days(start: date, end: date, period_start: date, period_end: date) -> int:
    """Inclusive day count of the intersection of two date ranges (0 if disjoint)."""
    days = (min(end, period_end) - max(start, period_start)).days + 1
    return max(days, 0)


def summarize_attendance(
    records: Iterable[AttendanceRecord],
    leaves: Iterable[EmployeeLeave],
    period_start: date,
    period_end: date,
) -> AttendanceSummary:
    """Apply the counting rules to already-fetched rows."""
    summary = AttendanceSummary()

    for record in records:
        if record.status == AttendanceStatus.PRESENT:
            summary.present_days += 1
            summary.working_days += 1
        elif record.status == AttendanceStatus.HALF_DAY:
            summary.present_days += Decimal("0.5")
            summary.working_days += 1
        elif record.status == AttendanceStatus.ABSENT:
            summary.absent_days += 1
            summary.lop_days += 1

    for leave in leaves:
        if leave.status != LeaveStatus.APPROVED:
            continue
        days = overlap_days(leave.start_date, leave.end_date, period_start, period_end)
        summary.leave_days += days
        summary.working_days += days

    return summary


class AttendanceAggregator:
    """Read-only attendance summary for the payroll engine."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_summary(
        self,
        employee_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> AttendanceSummary:
        records_result = await self.db.execute(
            select(AttendanceRecord).where(
                and_(
                    AttendanceRecord.employee_id == employee_id,
                    AttendanceRecord.attendance_date >= period_start,
                    AttendanceRecord.attendance_date <= period_end,
                )
            )
        )
        leaves_result = await self.db.execute(
            select(EmployeeLeave).where(
                and_(
                    EmployeeLeave.employee_id == employee_id,
                    EmployeeLeave.status == LeaveStatus.APPROVED,
                    EmployeeLeave.start_date <= period_end,
                    EmployeeLeave.end_date >= period_start,
                )
            )
        )

        return summarize_attendance(
            records_result.scalars().all(),
            leaves_result.scalars().all(),
            period_start,
            period_end,
        )
