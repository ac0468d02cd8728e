"""
HRMS Payroll - Payroll Models

Salary inputs and payroll outputs for Indian statutory compliance:
- Salary structures (basic, HRA, special allowance, open allowance/deduction maps)
- Employee loans (EMI deducted while the loan is active)
- Supplementary salary (arrears, incentives) approved for one period
- Statutory configuration per company (PF, ESI, TDS, PT, LWF)
- Payroll (per company and month) and its payslips and pre-checks

Payroll Lifecycle:
    draft -> processing -> locked -> finalized -> paid
    attendance_locked gates processing but is not itself a status.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    UUID, Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text,
    Enum as SQLEnum, JSON, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from hrms_payroll.models.base import BaseModel, AuditMixin


# ===========================================
# ENUMS
# ===========================================

class PayrollStatus(str, Enum):
    """Payroll processing status."""
    DRAFT = "draft"
    PROCESSING = "processing"
    LOCKED = "locked"
    FINALIZED = "finalized"
    PAID = "paid"


class LoanStatus(str, Enum):
    """Loan status. Only ACTIVE loans are deducted."""
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    CLOSED = "closed"
    REJECTED = "rejected"


class LoanType(str, Enum):
    """Type of loan or advance."""
    LOAN = "loan"
    SALARY_ADVANCE = "salary_advance"


class SupplementaryStatus(str, Enum):
    """Approval status of a supplementary salary entry."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StatutoryType(str, Enum):
    """Statutory deduction kinds."""
    PF = "PF"
    ESI = "ESI"
    TDS = "TDS"
    PT = "PT"
    LWF = "LWF"


class PreCheckType(str, Enum):
    """Kind of pre-processing finding."""
    ABSENCE = "absence"
    LEAVE = "leave"
    LOAN = "loan"
    SALARY_STRUCTURE = "salary_structure"


class PreCheckStatus(str, Enum):
    """Pre-processing finding status."""
    PENDING = "pending"
    WARNING = "warning"
    ERROR = "error"
    RESOLVED = "resolved"
    IGNORED = "ignored"


# ===========================================
# SALARY STRUCTURE
# ===========================================

class SalaryStructure(BaseModel, AuditMixin):
    """
    Monthly salary components for an employee.

    The calculator uses the most recent active structure by effective date.
    """

    __tablename__ = "salary_structures"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    basic_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
        comment="Monthly basic salary",
    )
    hra: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
        comment="Monthly house rent allowance",
    )
    special_allowance: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    # Open maps of named amounts
    other_allowances: Mapped[Optional[dict]] = mapped_column(
        JSON, nullable=True,
        comment="Other monthly allowances as name -> amount (prorated)",
    )
    deductions: Mapped[Optional[dict]] = mapped_column(
        JSON, nullable=True,
        comment="Flat monthly deductions as name -> amount (not prorated)",
    )

    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<SalaryStructure(employee_id={self.employee_id}, effective={self.effective_date}, active={self.is_active})>"


# ===========================================
# EMPLOYEE LOANS & ADVANCES
# ===========================================

class EmployeeLoan(BaseModel, AuditMixin):
    """Employee loan or salary advance repaid through monthly EMIs."""

    __tablename__ = "employee_loans"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    loan_type: Mapped[LoanType] = mapped_column(
        SQLEnum(LoanType),
        default=LoanType.LOAN,
        nullable=False,
    )
    principal_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    monthly_emi: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    outstanding_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    status: Mapped[LoanStatus] = mapped_column(
        SQLEnum(LoanStatus),
        default=LoanStatus.PENDING,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<EmployeeLoan(employee_id={self.employee_id}, emi={self.monthly_emi}, status={self.status})>"


# ===========================================
# SUPPLEMENTARY SALARY
# ===========================================

class SupplementarySalary(BaseModel, AuditMixin):
    """One-off earning (arrears, incentive, bonus) for a specific payroll period."""

    __tablename__ = "supplementary_salaries"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payroll_month: Mapped[int] = mapped_column(Integer, nullable=False)
    payroll_year: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[SupplementaryStatus] = mapped_column(
        SQLEnum(SupplementaryStatus),
        default=SupplementaryStatus.PENDING,
        nullable=False,
    )

    # Set once a payroll has applied this entry
    is_processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    processed_in_payroll_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("payrolls.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<SupplementarySalary(employee_id={self.employee_id}, {self.payroll_month}/{self.payroll_year}, amount={self.amount})>"


# ===========================================
# STATUTORY CONFIGURATION (Per Company)
# ===========================================

class StatutoryConfig(BaseModel, AuditMixin):
    """
    Company-level configuration for one statutory deduction type.

    `configuration` holds the rate/limit/slab blob; it is validated into a
    typed settings object by hrms_payroll.schemas.statutory before use.
    """

    __tablename__ = "statutory_configs"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    statutory_type: Mapped[StatutoryType] = mapped_column(
        SQLEnum(StatutoryType),
        nullable=False,
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    state: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True,
        comment="Fallback state for state-specific statutes (PT)",
    )
    configuration: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<StatutoryConfig(company_id={self.company_id}, type={self.statutory_type}, enabled={self.is_enabled})>"


# ===========================================
# PAYROLL
# ===========================================

class Payroll(BaseModel):
    """
    Payroll for one company and calendar month.

    `version` is an optimistic lock: concurrent transitions on the same
    payroll fail with a stale-data error instead of double-counting totals.
    """

    __tablename__ = "payrolls"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[PayrollStatus] = mapped_column(
        SQLEnum(PayrollStatus),
        default=PayrollStatus.DRAFT,
        nullable=False,
    )
    attendance_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    earnings_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deductions_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Summary (calculated by process)
    total_employees: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_gross_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    total_deductions: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    total_net_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    last_error_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False,
        comment="Employees that failed in the latest process run",
    )

    # Pre-processing checks
    pre_check_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pre_check_completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    pre_check_completed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )

    payslips_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Audit stamps
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    processed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    finalized_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    finalized_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint('company_id', 'month', 'year', name='uq_payroll_company_period'),
    )
    __mapper_args__ = {
        "version_id_col": version,
        "eager_defaults": True,
    }

    @property
    def period_label(self) -> str:
        return f"{self.month:02d}/{self.year}"

    def __repr__(self) -> str:
        return f"<Payroll(id={self.id}, period={self.period_label}, status={self.status})>"


# ===========================================
# PAYSLIP
# ===========================================

class Payslip(BaseModel):
    """
    Individual employee payslip for a payroll.

    Reprocessing replaces only the computed fields; the document path,
    payment flags and manual-override marker are left alone.
    """

    __tablename__ = "payslips"

    payroll_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("payrolls.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    salary_structure_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("salary_structures.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Itemized breakdown stored as JSON
    earnings: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    deductions: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    gross_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    total_deductions: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    net_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    # Attendance counters
    days_worked: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=1), default=Decimal("0"), nullable=False,
    )
    days_present: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=1), default=Decimal("0"), nullable=False,
    )
    days_absent: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=1), default=Decimal("0"), nullable=False,
    )
    days_leave: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=1), default=Decimal("0"), nullable=False,
    )
    lop_days: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=1), default=Decimal("0"), nullable=False,
    )

    # Document & payment
    pdf_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_manual_override: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
        comment="Manually entered payslip; never recomputed by process",
    )
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            'payroll_id', 'employee_id', 'month', 'year',
            name='uq_payslip_payroll_employee_period',
        ),
    )

    def __repr__(self) -> str:
        return f"<Payslip(payroll_id={self.payroll_id}, employee_id={self.employee_id}, net={self.net_salary})>"


# ===========================================
# PRE-PROCESSING CHECKS
# ===========================================

class PayrollPreCheck(BaseModel):
    """Advisory finding raised before a payroll is processed."""

    __tablename__ = "payroll_pre_checks"

    payroll_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("payrolls.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    check_type: Mapped[PreCheckType] = mapped_column(SQLEnum(PreCheckType), nullable=False)
    check_status: Mapped[PreCheckStatus] = mapped_column(
        SQLEnum(PreCheckStatus),
        default=PreCheckStatus.WARNING,
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    resolved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<PayrollPreCheck(payroll_id={self.payroll_id}, type={self.check_type}, status={self.check_status})>"
