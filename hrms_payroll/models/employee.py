"""
HRMS Payroll - Company & Employee Directory Models

The payroll engine only reads the directory: company scoping, the active
flag, and the per-employee fields used by statutory calculations (state for
Professional Tax, declared exemptions for TDS). Employee CRUD lives outside
this service.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import UUID, Boolean, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hrms_payroll.models.base import BaseModel


class Company(BaseModel):
    """Tenant company. Every payroll record is scoped to one company."""

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True,
        comment="Registered state, used as a statutory fallback",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name})>"


class Employee(BaseModel):
    """Employee directory entry as seen by payroll."""

    __tablename__ = "employees"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    employee_code: Mapped[str] = mapped_column(
        String(50), nullable=False,
        comment="Internal employee code / staff number",
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    designation: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)

    # Statutory inputs
    state: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True,
        comment="Work state; selects the Professional Tax slab table",
    )
    pan: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    uan: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True,
        comment="Provident Fund Universal Account Number",
    )
    tax_exemptions: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
        comment="Declared annual exemptions deducted before TDS",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint('company_id', 'employee_code', name='uq_employee_company_code'),
    )

    @property
    def full_name(self) -> str:
        """Get employee's full name."""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, code={self.employee_code}, name={self.full_name})>"
