"""
HRMS Payroll - Payroll Schemas

Pydantic schemas for payroll lifecycle requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hrms_payroll.models.payroll import PayrollStatus, PreCheckStatus, PreCheckType


# ===========================================
# ENUMS AS LITERALS
# ===========================================

PreCheckActionEnum = Literal["resolve", "ignore"]


# ===========================================
# PAYROLL SCHEMAS
# ===========================================

class PayrollCreate(BaseModel):
    """Create payroll request."""
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class PayrollResponse(BaseModel):
    """Payroll response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    month: int
    year: int
    status: PayrollStatus
    attendance_locked: bool
    earnings_applied: bool
    deductions_applied: bool

    total_employees: int
    total_gross_salary: Decimal
    total_deductions: Decimal
    total_net_salary: Decimal
    last_error_count: int

    pre_check_completed: bool
    pre_check_completed_at: Optional[datetime] = None
    payslips_generated: bool

    processed_by_id: Optional[UUID] = None
    processed_at: Optional[datetime] = None
    finalized_by_id: Optional[UUID] = None
    finalized_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    version: int
    created_at: datetime
    updated_at: datetime


class PayrollListResponse(BaseModel):
    """Payroll list response."""
    items: List[PayrollResponse]
    total: int


# ===========================================
# LIFECYCLE RESULT SCHEMAS
# ===========================================

class EmployeeError(BaseModel):
    """One employee that failed during processing."""
    employee_id: UUID
    employee_code: Optional[str] = None
    error: str


class PayrollSummary(BaseModel):
    """Totals returned with every lifecycle transition."""
    total_employees: int
    error_count: int
    total_gross_salary: Decimal
    total_deductions: Decimal
    total_net_salary: Decimal


class ProcessSummary(PayrollSummary):
    """Process run summary; partial success is a normal outcome."""
    skipped_count: int = 0
    errors: List[EmployeeError] = []


class PayslipGenerationSummary(BaseModel):
    """Payslip document generation summary."""
    total: int
    success: int
    errors: int


class PreCheckRunSummary(BaseModel):
    """Counts of findings by status."""
    total: int
    warnings: int
    errors: int
    pending: int


class PayrollActionResponse(BaseModel):
    """Lifecycle transition response: updated payroll plus a summary."""
    payroll: PayrollResponse
    summary: PayrollSummary


class ProcessPayrollResponse(BaseModel):
    payroll: PayrollResponse
    summary: ProcessSummary


class GeneratePayslipsResponse(BaseModel):
    payroll: PayrollResponse
    summary: PayslipGenerationSummary


class EarningsDeductionsSummary(BaseModel):
    """Supplementary entries marked as processed by the payroll."""
    count: int


class ApplyEarningsDeductionsResponse(BaseModel):
    payroll: PayrollResponse
    summary: EarningsDeductionsSummary


# ===========================================
# MANUAL SALARY IMPORT SCHEMAS
# ===========================================

class ManualSalaryRow(BaseModel):
    """
    One manually entered salary.

    Fields are optional so an incomplete row is reported in the import
    summary instead of rejecting the whole request.
    """
    employee_code: Optional[str] = Field(None, max_length=50)
    gross_salary: Optional[Decimal] = Field(None, ge=0)
    total_deductions: Decimal = Field(Decimal("0"), ge=0)
    net_salary: Optional[Decimal] = Field(None, ge=0)


class ManualSalaryImportRequest(BaseModel):
    rows: List[ManualSalaryRow] = Field(..., min_length=1)


class ManualSalaryImportSummary(BaseModel):
    """Per-row import outcome."""
    success: int
    failed: int
    errors: List[str] = []


class ManualSalaryImportResponse(BaseModel):
    payroll: PayrollResponse
    summary: ManualSalaryImportSummary


# ===========================================
# PRE-CHECK SCHEMAS
# ===========================================

class PreCheckResponse(BaseModel):
    """Pre-processing check response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payroll_id: UUID
    employee_id: UUID
    check_type: PreCheckType
    check_status: PreCheckStatus
    description: str
    amount: Decimal
    resolved_by_id: Optional[UUID] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None


class PreCheckRunResponse(BaseModel):
    payroll: PayrollResponse
    summary: PreCheckRunSummary
    checks: List[PreCheckResponse]


class PreCheckResolveRequest(BaseModel):
    """Resolve or ignore a pre-check."""
    action: PreCheckActionEnum
    notes: Optional[str] = Field(None, max_length=1000)


# ===========================================
# PAYSLIP SCHEMAS
# ===========================================

class PayslipResponse(BaseModel):
    """Payslip response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payroll_id: UUID
    employee_id: UUID
    month: int
    year: int
    salary_structure_id: Optional[UUID] = None

    earnings: Optional[Dict[str, Any]] = None
    deductions: Optional[Dict[str, Any]] = None
    gross_salary: Decimal
    total_deductions: Decimal
    net_salary: Decimal

    days_worked: Decimal
    days_present: Decimal
    days_absent: Decimal
    days_leave: Decimal
    lop_days: Decimal

    pdf_path: Optional[str] = None
    is_manual_override: bool
    is_paid: bool
    paid_at: Optional[datetime] = None
