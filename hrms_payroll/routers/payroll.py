"""
HRMS Payroll - Payroll Router

API endpoints for the monthly payroll lifecycle: create, pre-checks,
attendance lock, process, finalize, payslip generation and payment.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from hrms_payroll.dependencies import (
    get_current_company_id,
    get_current_user_id,
    get_payroll_service,
)
from hrms_payroll.models.payroll import Payroll, PayrollStatus
from hrms_payroll.schemas.payroll import (
    ApplyEarningsDeductionsResponse,
    EarningsDeductionsSummary,
    EmployeeError,
    GeneratePayslipsResponse,
    ManualSalaryImportRequest,
    ManualSalaryImportResponse,
    ManualSalaryImportSummary,
    PayrollActionResponse,
    PayrollCreate,
    PayrollListResponse,
    PayrollResponse,
    PayrollSummary,
    PayslipGenerationSummary,
    PayslipResponse,
    PreCheckResolveRequest,
    PreCheckResponse,
    PreCheckRunResponse,
    PreCheckRunSummary,
    ProcessPayrollResponse,
    ProcessSummary,
)
from hrms_payroll.services.payroll_service import PayrollLifecycleService


router = APIRouter()


def _payroll_summary(payroll: Payroll) -> PayrollSummary:
    return PayrollSummary(
        total_employees=payroll.total_employees,
        error_count=payroll.last_error_count,
        total_gross_salary=payroll.total_gross_salary,
        total_deductions=payroll.total_deductions,
        total_net_salary=payroll.total_net_salary,
    )


def _action_response(payroll: Payroll) -> PayrollActionResponse:
    return PayrollActionResponse(
        payroll=PayrollResponse.model_validate(payroll),
        summary=_payroll_summary(payroll),
    )


# ===========================================
# PAYROLL ENDPOINTS
# ===========================================

@router.post(
    "/payrolls",
    response_model=PayrollResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create payroll for a period",
)
async def create_payroll(
    data: PayrollCreate,
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    """Create the payroll for a month. One payroll per company and period."""
    payroll = await service.create_payroll(company_id, data.month, data.year, user_id)
    return PayrollResponse.model_validate(payroll)


@router.get(
    "/payrolls",
    response_model=PayrollListResponse,
    summary="List payrolls",
)
async def list_payrolls(
    status_filter: Optional[PayrollStatus] = Query(None, alias="status"),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    company_id: uuid.UUID = Depends(get_current_company_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    payrolls, total = await service.list_payrolls(company_id, status_filter, year, skip, limit)
    return PayrollListResponse(
        items=[PayrollResponse.model_validate(p) for p in payrolls],
        total=total,
    )


@router.get(
    "/payrolls/{payroll_id}",
    response_model=PayrollResponse,
    summary="Get payroll",
)
async def get_payroll(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    payroll = await service.get_payroll(payroll_id, company_id)
    return PayrollResponse.model_validate(payroll)


# ===========================================
# PRE-CHECK ENDPOINTS
# ===========================================

@router.post(
    "/payrolls/{payroll_id}/pre-checks",
    response_model=PreCheckRunResponse,
    summary="Run pre-processing checks",
)
async def run_pre_checks(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    """Replace the payroll's pre-checks with a fresh set. Advisory only."""
    payroll, checks = await service.run_pre_checks(payroll_id, company_id, user_id)
    responses = [PreCheckResponse.model_validate(c) for c in checks]
    return PreCheckRunResponse(
        payroll=PayrollResponse.model_validate(payroll),
        summary=PreCheckRunSummary(
            total=len(responses),
            warnings=sum(1 for c in responses if c.check_status.value == "warning"),
            errors=sum(1 for c in responses if c.check_status.value == "error"),
            pending=sum(1 for c in responses if c.check_status.value == "pending"),
        ),
        checks=responses,
    )


@router.get(
    "/payrolls/{payroll_id}/pre-checks",
    response_model=List[PreCheckResponse],
    summary="List pre-processing checks",
)
async def list_pre_checks(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    checks = await service.list_pre_checks(payroll_id, company_id)
    return [PreCheckResponse.model_validate(c) for c in checks]


@router.post(
    "/payrolls/{payroll_id}/pre-checks/{check_id}/resolve",
    response_model=PreCheckResponse,
    summary="Resolve or ignore a pre-check",
)
async def resolve_pre_check(
    data: PreCheckResolveRequest,
    payroll_id: uuid.UUID = Path(...),
    check_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    check = await service.resolve_pre_check(
        payroll_id, check_id, company_id, data.action, data.notes, user_id,
    )
    return PreCheckResponse.model_validate(check)


# ===========================================
# LIFECYCLE ENDPOINTS
# ===========================================

@router.post(
    "/payrolls/{payroll_id}/lock-attendance",
    response_model=PayrollActionResponse,
    summary="Lock attendance for the payroll period",
)
async def lock_attendance(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    payroll = await service.lock_attendance(payroll_id, company_id, user_id)
    return _action_response(payroll)


@router.post(
    "/payrolls/{payroll_id}/apply-earnings-deductions",
    response_model=ApplyEarningsDeductionsResponse,
    summary="Apply supplementary earnings and deductions",
)
async def apply_earnings_deductions(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    payroll, count = await service.apply_earnings_deductions(payroll_id, company_id, user_id)
    return ApplyEarningsDeductionsResponse(
        payroll=PayrollResponse.model_validate(payroll),
        summary=EarningsDeductionsSummary(count=count),
    )


@router.post(
    "/payrolls/{payroll_id}/import-salaries",
    response_model=ManualSalaryImportResponse,
    summary="Import manual salaries",
)
async def import_manual_salaries(
    data: ManualSalaryImportRequest,
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    """
    Upsert payslips from manually entered salaries.

    Imported payslips are flagged as manual overrides and skipped by process.
    Rows that fail are listed in `summary.errors`.
    """
    payroll, result = await service.import_manual_salaries(
        payroll_id, company_id, data.rows, user_id,
    )
    return ManualSalaryImportResponse(
        payroll=PayrollResponse.model_validate(payroll),
        summary=ManualSalaryImportSummary(
            success=result.success,
            failed=result.failed,
            errors=result.errors,
        ),
    )


@router.post(
    "/payrolls/{payroll_id}/process",
    response_model=ProcessPayrollResponse,
    summary="Process payroll",
)
async def process_payroll(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    """
    Calculate salaries for all active employees.

    Partial success is normal: inspect `summary.error_count` and
    `summary.errors` rather than assuming every employee was processed.
    """
    payroll, result = await service.process_payroll(payroll_id, company_id, user_id)
    return ProcessPayrollResponse(
        payroll=PayrollResponse.model_validate(payroll),
        summary=ProcessSummary(
            total_employees=result.success_count,
            error_count=result.error_count,
            skipped_count=result.skipped_count,
            total_gross_salary=result.total_gross_salary,
            total_deductions=result.total_deductions,
            total_net_salary=result.total_net_salary,
            errors=[
                EmployeeError(
                    employee_id=e.employee_id,
                    employee_code=e.employee_code,
                    error=e.error,
                )
                for e in result.errors
            ],
        ),
    )


@router.post(
    "/payrolls/{payroll_id}/finalize",
    response_model=PayrollActionResponse,
    summary="Finalize payroll",
)
async def finalize_payroll(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    payroll = await service.finalize_payroll(payroll_id, company_id, user_id)
    return _action_response(payroll)


@router.post(
    "/payrolls/{payroll_id}/generate-payslips",
    response_model=GeneratePayslipsResponse,
    summary="Generate payslip PDFs",
)
async def generate_payslips(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    payroll, result = await service.generate_payslips(payroll_id, company_id, user_id)
    return GeneratePayslipsResponse(
        payroll=PayrollResponse.model_validate(payroll),
        summary=PayslipGenerationSummary(
            total=result.total,
            success=result.success,
            errors=result.errors,
        ),
    )


@router.post(
    "/payrolls/{payroll_id}/mark-paid",
    response_model=PayrollActionResponse,
    summary="Mark payroll as paid",
)
async def mark_payroll_paid(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    payroll = await service.mark_payroll_paid(payroll_id, company_id, user_id)
    return _action_response(payroll)


# ===========================================
# PAYSLIP ENDPOINTS
# ===========================================

@router.get(
    "/payrolls/{payroll_id}/payslips",
    response_model=List[PayslipResponse],
    summary="List payslips of a payroll",
)
async def list_payslips(
    payroll_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    payslips = await service.list_payslips(payroll_id, company_id)
    return [PayslipResponse.model_validate(p) for p in payslips]


@router.get(
    "/payslips/{payslip_id}",
    response_model=PayslipResponse,
    summary="Get payslip",
)
async def get_payslip(
    payslip_id: uuid.UUID = Path(...),
    company_id: uuid.UUID = Depends(get_current_company_id),
    service: PayrollLifecycleService = Depends(get_payroll_service),
):
    payslip = await service.get_payslip(payslip_id, company_id)
    return PayslipResponse.model_validate(payslip)
