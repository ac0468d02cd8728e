"""
HRMS Payroll - Employee Payroll Calculator

Turns one employee's salary structure, attendance summary, approved
supplementary pay, active loan EMIs and statutory configuration into a
fully itemized payroll result.

Proration:
    days_in_month = working + absent + leave
    ratio = present / days_in_month   (0 when days_in_month is 0)
    each earning component = round(component x ratio)

Supplementary pay and flat structure deductions are never prorated.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_payroll.config import settings
from hrms_payroll.models.employee import Employee
from hrms_payroll.models.payroll import (
    EmployeeLoan,
    LoanStatus,
    SalaryStructure,
    StatutoryConfig,
    SupplementarySalary,
    SupplementaryStatus,
)
from hrms_payroll.services.attendance_service import AttendanceSummary
from hrms_payroll.services.statutory_calculator import (
    ZERO,
    as_json_amount,
    calculate_statutory_deductions,
    round_currency,
)
from hrms_payroll.utils.error_handling import MissingConfigurationException

logger = logging.getLogger(__name__)

SUPPLEMENTARY_KEY = "Supplementary"


def _amount(value: Any) -> Decimal:
    """Coerce a stored amount (JSON number, string or None) to Decimal."""
    if value is None or value == "":
        return ZERO
    return Decimal(str(value))


@dataclass
class EmployeePayrollResult:
    """Itemized payroll for one employee and period."""
    employee_id: uuid.UUID
    employee_code: str
    employee_name: str
    salary_structure_id: uuid.UUID
    attendance: AttendanceSummary
    attendance_ratio: Decimal

    basic: Decimal
    hra: Decimal
    special_allowance: Decimal
    other_allowances: Dict[str, Decimal]
    gross_salary: Decimal
    supplementary: Decimal
    adjusted_gross_salary: Decimal

    pf: Decimal
    esi: Decimal
    tds: Decimal
    pt: Decimal
    lwf: Decimal
    loan: Decimal
    other_deductions: Dict[str, Decimal]
    total_deductions: Decimal
    net_salary: Decimal

    statutory_details: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_other_allowances(self) -> Decimal:
        """Prorated structure allowances; a same-named structure entry shares the Supplementary key."""
        return sum(self.other_allowances.values(), ZERO) - self.supplementary

    def earnings_dict(self) -> Dict[str, Any]:
        """Earnings breakdown as stored on the payslip."""
        return {
            "basic": as_json_amount(self.basic),
            "hra": as_json_amount(self.hra),
            "special_allowance": as_json_amount(self.special_allowance),
            "other_allowances": {k: as_json_amount(v) for k, v in self.other_allowances.items()},
            "total_other_allowances": as_json_amount(self.total_other_allowances),
            "gross_salary": as_json_amount(self.gross_salary),
            "supplementary": as_json_amount(self.supplementary),
            "adjusted_gross_salary": as_json_amount(self.adjusted_gross_salary),
        }

    def deductions_dict(self) -> Dict[str, Any]:
        """Deductions breakdown as stored on the payslip."""
        return {
            "pf": as_json_amount(self.pf),
            "esi": as_json_amount(self.esi),
            "tds": as_json_amount(self.tds),
            "pt": as_json_amount(self.pt),
            "lwf": as_json_amount(self.lwf),
            "loan": as_json_amount(self.loan),
            "other_deductions": {k: as_json_amount(v) for k, v in self.other_deductions.items()},
            "total_deductions": as_json_amount(self.total_deductions),
            "statutory_details": self.statutory_details,
        }


def compute_employee_payroll(
    employee: Employee,
    structure: SalaryStructure,
    attendance: AttendanceSummary,
    supplementary: Iterable[SupplementarySalary],
    loans: Iterable[EmployeeLoan],
    statutory_configs: Iterable[StatutoryConfig],
    month: int,
    year: int,
    default_pt_state: Optional[str] = None,
) -> EmployeePayrollResult:
    """
    Pure calculation over already-loaded rows.

    Only APPROVED supplementary entries for (month, year) and ACTIVE loans
    are counted; callers may pass unfiltered lists.
    """
    days_in_month = attendance.days_in_month
    ratio = attendance.present_days / days_in_month if days_in_month > 0 else ZERO

    basic = round_currency(_amount(structure.basic_salary) * ratio)
    hra = round_currency(_amount(structure.hra) * ratio)
    special = round_currency(_amount(structure.special_allowance) * ratio)

    other_allowances: Dict[str, Decimal] = {}
    for name, value in (structure.other_allowances or {}).items():
        other_allowances[name] = round_currency(_amount(value) * ratio)

    gross_salary = basic + hra + special + sum(other_allowances.values(), ZERO)

    total_supplementary = ZERO
    for entry in supplementary:
        if (
            entry.status == SupplementaryStatus.APPROVED
            and entry.payroll_month == month
            and entry.payroll_year == year
        ):
            total_supplementary += _amount(entry.amount)
    if total_supplementary:
        other_allowances[SUPPLEMENTARY_KEY] = (
            other_allowances.get(SUPPLEMENTARY_KEY, ZERO) + total_supplementary
        )

    adjusted_gross = gross_salary + total_supplementary

    statutory = calculate_statutory_deductions(
        adjusted_gross,
        statutory_configs,
        employee_state=employee.state,
        tax_exemptions=_amount(employee.tax_exemptions),
        month=month,
        year=year,
        default_pt_state=default_pt_state or settings.default_pt_state,
    )

    loan_deduction = sum(
        (_amount(loan.monthly_emi) for loan in loans if loan.status == LoanStatus.ACTIVE),
        ZERO,
    )

    other_deductions = {
        name: _amount(value) for name, value in (structure.deductions or {}).items()
    }

    total_deductions = statutory.total + loan_deduction + sum(other_deductions.values(), ZERO)
    net_salary = max(ZERO, adjusted_gross - total_deductions)

    return EmployeePayrollResult(
        employee_id=employee.id,
        employee_code=employee.employee_code,
        employee_name=employee.full_name,
        salary_structure_id=structure.id,
        attendance=attendance,
        attendance_ratio=ratio,
        basic=basic,
        hra=hra,
        special_allowance=special,
        other_allowances=other_allowances,
        gross_salary=gross_salary,
        supplementary=total_supplementary,
        adjusted_gross_salary=adjusted_gross,
        pf=statutory.pf,
        esi=statutory.esi,
        tds=statutory.tds,
        pt=statutory.pt,
        lwf=statutory.lwf,
        loan=loan_deduction,
        other_deductions=other_deductions,
        total_deductions=total_deductions,
        net_salary=net_salary,
        statutory_details=statutory.details,
    )


class EmployeePayrollCalculator:
    """
    Loads an employee's salary inputs and runs compute_employee_payroll.

    Statutory configs are loaded once per batch by the caller and passed in.
    """

    def __init__(self, db: AsyncSession, default_pt_state: Optional[str] = None):
        self.db = db
        self.default_pt_state = default_pt_state or settings.default_pt_state

    async def get_active_salary_structure(self, employee_id: uuid.UUID) -> Optional[SalaryStructure]:
        """Most recent active structure by effective date, regardless of period."""
        result = await self.db.execute(
            select(SalaryStructure)
            .where(
                and_(
                    SalaryStructure.employee_id == employee_id,
                    SalaryStructure.is_active == True,  # noqa: E712
                )
            )
            .order_by(SalaryStructure.effective_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_statutory_configs(self, company_id: uuid.UUID) -> List[StatutoryConfig]:
        result = await self.db.execute(
            select(StatutoryConfig).where(
                and_(
                    StatutoryConfig.company_id == company_id,
                    StatutoryConfig.is_enabled == True,  # noqa: E712
                )
            )
        )
        return list(result.scalars().all())

    async def calculate(
        self,
        employee: Employee,
        month: int,
        year: int,
        attendance: AttendanceSummary,
        statutory_configs: Sequence[StatutoryConfig],
    ) -> EmployeePayrollResult:
        """
        Calculate one employee's payroll.

        Raises:
            MissingConfigurationException: no active salary structure, or an
                invalid statutory configuration
        """
        structure = await self.get_active_salary_structure(employee.id)
        if structure is None:
            raise MissingConfigurationException(
                message=f"No active salary structure found for employee {employee.employee_code}",
                config_type="salary_structure",
                details={"employee_id": str(employee.id)},
            )

        supplementary_result = await self.db.execute(
            select(SupplementarySalary).where(
                and_(
                    SupplementarySalary.employee_id == employee.id,
                    SupplementarySalary.payroll_month == month,
                    SupplementarySalary.payroll_year == year,
                    SupplementarySalary.status == SupplementaryStatus.APPROVED,
                )
            )
        )
        loans_result = await self.db.execute(
            select(EmployeeLoan).where(
                and_(
                    EmployeeLoan.employee_id == employee.id,
                    EmployeeLoan.status == LoanStatus.ACTIVE,
                )
            )
        )

        return compute_employee_payroll(
            employee=employee,
            structure=structure,
            attendance=attendance,
            supplementary=supplementary_result.scalars().all(),
            loans=loans_result.scalars().all(),
            statutory_configs=statutory_configs,
            month=month,
            year=year,
            default_pt_state=self.default_pt_state,
        )
