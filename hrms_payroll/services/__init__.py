"""
HRMS Payroll - Services Package

Business logic services.
"""

from hrms_payroll.services.audit_service import AuditService
from hrms_payroll.services.attendance_service import AttendanceAggregator, AttendanceSummary
from hrms_payroll.services.statutory_calculator import (
    StatutoryDeductions,
    calculate_statutory_deductions,
)
from hrms_payroll.services.payroll_calculator import EmployeePayrollCalculator, EmployeePayrollResult
from hrms_payroll.services.bulk_payroll import BulkPayrollOrchestrator, EmployeePayrollError
from hrms_payroll.services.payslip_pdf_service import PayslipDocument, PayslipPDFRenderer
from hrms_payroll.services.payroll_service import PayrollLifecycleService

__all__ = [
    "AuditService",
    "AttendanceAggregator",
    "AttendanceSummary",
    "StatutoryDeductions",
    "calculate_statutory_deductions",
    "EmployeePayrollCalculator",
    "EmployeePayrollResult",
    "BulkPayrollOrchestrator",
    "EmployeePayrollError",
    "PayslipDocument",
    "PayslipPDFRenderer",
    "PayrollLifecycleService",
]
