"""
HRMS Payroll - Attendance Aggregator Tests

Counting rules for daily attendance rows and approved leave.
"""

import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from hrms_payroll.models.attendance import (
    AttendanceRecord,
    AttendanceStatus,
    EmployeeLeave,
    LeaveStatus,
)
from hrms_payroll.models.employee import Company
from hrms_payroll.services.attendance_service import (
    AttendanceAggregator,
    AttendanceSummary,
    month_bounds,
    overlap_days,
    summarize_attendance,
)

from conftest import add_attendance, add_employee


MARCH_START, MARCH_END = date(2026, 3, 1), date(2026, 3, 31)


def record(day: int, status: AttendanceStatus) -> AttendanceRecord:
    return AttendanceRecord(attendance_date=date(2026, 3, day), status=status)


def leave(start: date, end: date, status: LeaveStatus = LeaveStatus.APPROVED) -> EmployeeLeave:
    return EmployeeLeave(start_date=start, end_date=end, status=status)


class TestPeriodHelpers:
    """Month bounds and range overlap."""

    def test_month_bounds_leap_february(self):
        assert month_bounds(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_month_bounds_december(self):
        assert month_bounds(12, 2025) == (date(2025, 12, 1), date(2025, 12, 31))

    def test_overlap_inside_period(self):
        assert overlap_days(date(2026, 3, 10), date(2026, 3, 12), MARCH_START, MARCH_END) == 3

    def test_overlap_clipped_to_period(self):
        assert overlap_days(date(2026, 2, 25), date(2026, 3, 3), MARCH_START, MARCH_END) == 3

    def test_disjoint_ranges(self):
        assert overlap_days(date(2026, 4, 1), date(2026, 4, 5), MARCH_START, MARCH_END) == 0


class TestSummarizeAttendance:
    """Counting rules over already-fetched rows."""

    def test_present_and_absent(self):
        records = [record(d, AttendanceStatus.PRESENT) for d in range(1, 19)]
        records += [record(d, AttendanceStatus.ABSENT) for d in (19, 20)]

        summary = summarize_attendance(records, [], MARCH_START, MARCH_END)

        assert summary.present_days == Decimal("18")
        assert summary.working_days == Decimal("18")
        assert summary.absent_days == Decimal("2")
        assert summary.lop_days == Decimal("2")
        assert summary.days_in_month == Decimal("20")

    def test_half_day_counts_half_present_full_working(self):
        summary = summarize_attendance(
            [record(2, AttendanceStatus.HALF_DAY)], [], MARCH_START, MARCH_END,
        )

        assert summary.present_days == Decimal("0.5")
        assert summary.working_days == Decimal("1")

    def test_holiday_weekend_and_on_leave_rows_ignored(self):
        records = [
            record(1, AttendanceStatus.WEEKEND),
            record(2, AttendanceStatus.HOLIDAY),
            record(3, AttendanceStatus.ON_LEAVE),
        ]

        summary = summarize_attendance(records, [], MARCH_START, MARCH_END)

        assert summary == AttendanceSummary()

    def test_approved_leave_adds_leave_and_working(self):
        summary = summarize_attendance(
            [], [leave(date(2026, 3, 10), date(2026, 3, 14))], MARCH_START, MARCH_END,
        )

        assert summary.leave_days == Decimal("5")
        assert summary.working_days == Decimal("5")
        assert summary.present_days == Decimal("0")

    def test_pending_and_rejected_leave_ignored(self):
        leaves = [
            leave(date(2026, 3, 10), date(2026, 3, 14), LeaveStatus.PENDING),
            leave(date(2026, 3, 20), date(2026, 3, 21), LeaveStatus.REJECTED),
        ]

        summary = summarize_attendance([], leaves, MARCH_START, MARCH_END)

        assert summary.leave_days == Decimal("0")

    def test_leave_and_attendance_on_same_day_both_count(self):
        summary = summarize_attendance(
            [record(5, AttendanceStatus.PRESENT)],
            [leave(date(2026, 3, 5), date(2026, 3, 5))],
            MARCH_START,
            MARCH_END,
        )

        assert summary.present_days == Decimal("1")
        assert summary.leave_days == Decimal("1")
        assert summary.working_days == Decimal("2")

    def test_empty_month(self):
        summary = summarize_attendance([], [], MARCH_START, MARCH_END)

        assert summary.days_in_month == Decimal("0")


class TestAttendanceAggregator:
    """Database-backed summary."""

    @pytest.mark.asyncio
    async def test_only_rows_in_period_are_counted(
        self, db_session: AsyncSession, test_company: Company,
    ):
        employee = await add_employee(db_session, test_company, "EMP001")
        await add_attendance(db_session, employee, present=10, absent=1)
        await add_attendance(db_session, employee, present=5, month=4)

        summary = await AttendanceAggregator(db_session).get_summary(
            employee.id, MARCH_START, MARCH_END,
        )

        assert summary.present_days == Decimal("10")
        assert summary.absent_days == Decimal("1")

    @pytest.mark.asyncio
    async def test_leave_spanning_month_boundary(
        self, db_session: AsyncSession, test_company: Company,
    ):
        employee = await add_employee(db_session, test_company, "EMP001")
        db_session.add(EmployeeLeave(
            employee_id=employee.id,
            start_date=date(2026, 2, 26),
            end_date=date(2026, 3, 2),
            status=LeaveStatus.APPROVED,
        ))
        db_session.add(EmployeeLeave(
            employee_id=employee.id,
            start_date=date(2026, 3, 20),
            end_date=date(2026, 3, 20),
            status=LeaveStatus.PENDING,
        ))
        await db_session.commit()

        summary = await AttendanceAggregator(db_session).get_summary(
            employee.id, MARCH_START, MARCH_END,
        )

        assert summary.leave_days == Decimal("2")
        assert summary.working_days == Decimal("2")

    @pytest.mark.asyncio
    async def test_other_employees_rows_excluded(
        self, db_session: AsyncSession, test_company: Company,
    ):
        first = await add_employee(db_session, test_company, "EMP001")
        second = await add_employee(db_session, test_company, "EMP002")
        await add_attendance(db_session, first, present=3)
        await add_attendance(db_session, second, present=7)

        summary = await AttendanceAggregator(db_session).get_summary(
            first.id, MARCH_START, MARCH_END,
        )

        assert summary.present_days == Decimal("3")
