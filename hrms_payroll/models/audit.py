"""
HRMS Payroll - Audit Log Model

Append-only record of who triggered each payroll lifecycle transition.
"""

import uuid
import enum
from typing import Optional

from sqlalchemy import UUID, Enum, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from hrms_payroll.models.base import BaseModel


class AuditAction(str, enum.Enum):
    """Audit action types."""
    CREATE = "create"
    PRE_CHECK = "pre_check"
    RESOLVE_PRE_CHECK = "resolve_pre_check"
    LOCK_ATTENDANCE = "lock_attendance"
    PROCESS = "process"
    FINALIZE = "finalize"
    GENERATE_PAYSLIPS = "generate_payslips"
    MARK_PAID = "mark_paid"
    IMPORT_SALARY = "import_salary"
    APPLY_EARNINGS_DEDUCTIONS = "apply_earnings_deductions"


class AuditLog(BaseModel):
    """
    Immutable audit log entry.

    This table should have no UPDATE or DELETE permissions.
    """

    __tablename__ = "audit_logs"

    # Organization Context (for multi-tenant queries)
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        index=True,
    )

    # User Context
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,  # System actions may not have a user
        index=True,
    )

    module: Mapped[str] = mapped_column(String(50), nullable=False, default="payroll")

    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction),
        nullable=False,
        index=True,
    )

    # Target Entity
    target_entity_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Type of entity (payroll, payslip, pre_check)",
    )
    target_entity_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_values: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(action={self.action}, entity={self.target_entity_type}:{self.target_entity_id})>"
