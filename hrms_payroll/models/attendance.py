"""
HRMS Payroll - Attendance & Leave Models

Daily attendance rows are written by check-in and manual entry elsewhere;
payroll only reads them and flips the lock flag once a period is closed.
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    UUID, Boolean, Date, ForeignKey, Numeric, String, Text,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from hrms_payroll.models.base import BaseModel


# ===========================================
# ENUMS
# ===========================================

class AttendanceStatus(str, Enum):
    """Daily attendance status."""
    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half-day"
    HOLIDAY = "holiday"
    WEEKEND = "weekend"
    ON_LEAVE = "on_leave"


class LeaveStatus(str, Enum):
    """Leave request status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveType(str, Enum):
    """Type of leave."""
    CASUAL = "casual"
    SICK = "sick"
    EARNED = "earned"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    COMPENSATORY = "compensatory"
    OTHER = "other"


# ===========================================
# ATTENDANCE
# ===========================================

class AttendanceRecord(BaseModel):
    """One attendance row per employee per calendar date."""

    __tablename__ = "attendance_records"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[AttendanceStatus] = mapped_column(
        SQLEnum(AttendanceStatus),
        nullable=False,
    )
    is_locked: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
        comment="Set when the payroll period's attendance is locked",
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_employee_date'),
    )

    def __repr__(self) -> str:
        return f"<AttendanceRecord(employee_id={self.employee_id}, date={self.attendance_date}, status={self.status})>"


# ===========================================
# LEAVE
# ===========================================

class EmployeeLeave(BaseModel):
    """Leave request covering an inclusive date range."""

    __tablename__ = "employee_leaves"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        SQLEnum(LeaveType),
        default=LeaveType.CASUAL,
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days_requested: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=5, scale=2),
        nullable=True,
    )
    status: Mapped[LeaveStatus] = mapped_column(
        SQLEnum(LeaveStatus),
        default=LeaveStatus.PENDING,
        nullable=False,
    )
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<EmployeeLeave(employee_id={self.employee_id}, {self.start_date}..{self.end_date}, status={self.status})>"
