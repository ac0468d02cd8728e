"""
HRMS Payroll - Database Models

Importing this package registers every mapped class on Base.metadata.
"""

from hrms_payroll.models.base import BaseModel, TimestampMixin, AuditMixin
from hrms_payroll.models.employee import Company, Employee
from hrms_payroll.models.attendance import (
    AttendanceRecord,
    AttendanceStatus,
    EmployeeLeave,
    LeaveStatus,
    LeaveType,
)
from hrms_payroll.models.payroll import (
    EmployeeLoan,
    LoanStatus,
    LoanType,
    Payroll,
    PayrollPreCheck,
    PayrollStatus,
    Payslip,
    PreCheckStatus,
    PreCheckType,
    SalaryStructure,
    StatutoryConfig,
    StatutoryType,
    SupplementarySalary,
    SupplementaryStatus,
)
from hrms_payroll.models.audit import AuditLog, AuditAction

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "AuditMixin",
    "Company",
    "Employee",
    "AttendanceRecord",
    "AttendanceStatus",
    "EmployeeLeave",
    "LeaveStatus",
    "LeaveType",
    "EmployeeLoan",
    "LoanStatus",
    "LoanType",
    "Payroll",
    "PayrollPreCheck",
    "PayrollStatus",
    "Payslip",
    "PreCheckStatus",
    "PreCheckType",
    "SalaryStructure",
    "StatutoryConfig",
    "StatutoryType",
    "SupplementarySalary",
    "SupplementaryStatus",
    "AuditLog",
    "AuditAction",
]
