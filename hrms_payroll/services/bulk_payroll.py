"""
HRMS Payroll - Bulk Payroll Orchestrator

Runs the attendance aggregator and employee calculator over every active
employee of a company for one payroll period. A failure for one employee is
recorded and the batch moves on; only the initial employee fetch can fail
the whole run.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Union

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_payroll.models.employee import Employee
from hrms_payroll.services.attendance_service import AttendanceAggregator, month_bounds
from hrms_payroll.services.payroll_calculator import (
    EmployeePayrollCalculator,
    EmployeePayrollResult,
)

logger = logging.getLogger(__name__)


@dataclass
class EmployeePayrollError:
    """Failure entry for one employee."""
    employee_id: uuid.UUID
    employee_code: str
    error: str

    def to_dict(self) -> dict:
        return {
            "employee_id": str(self.employee_id),
            "employee_code": self.employee_code,
            "error": self.error,
        }


BulkPayrollEntry = Union[EmployeePayrollResult, EmployeePayrollError]


class BulkPayrollOrchestrator:
    """Per-employee isolated payroll calculation for a whole company."""

    def __init__(
        self,
        db: AsyncSession,
        aggregator: Optional[AttendanceAggregator] = None,
        calculator: Optional[EmployeePayrollCalculator] = None,
    ):
        self.db = db
        self.aggregator = aggregator or AttendanceAggregator(db)
        self.calculator = calculator or EmployeePayrollCalculator(db)

    async def get_active_employees(self, company_id: uuid.UUID) -> List[Employee]:
        result = await self.db.execute(
            select(Employee)
            .where(
                and_(
                    Employee.company_id == company_id,
                    Employee.is_active == True,  # noqa: E712
                )
            )
            .order_by(Employee.employee_code)
        )
        return list(result.scalars().all())

    async def calculate_bulk_payroll(
        self,
        company_id: uuid.UUID,
        month: int,
        year: int,
    ) -> List[BulkPayrollEntry]:
        """
        Calculate payroll for all active employees.

        Returns successes and failures intermixed, in employee order.
        """
        employees = await self.get_active_employees(company_id)
        statutory_configs = await self.calculator.get_statutory_configs(company_id)
        period_start, period_end = month_bounds(month, year)

        results: List[BulkPayrollEntry] = []
        for employee in employees:
            try:
                attendance = await self.aggregator.get_summary(employee.id, period_start, period_end)
                result = await self.calculator.calculate(
                    employee, month, year, attendance, statutory_configs,
                )
                results.append(result)
            except Exception as e:
                logger.exception(
                    f"Payroll calculation failed for employee {employee.employee_code} "
                    f"({month:02d}/{year}): {e}"
                )
                results.append(
                    EmployeePayrollError(
                        employee_id=employee.id,
                        employee_code=employee.employee_code,
                        error=str(e),
                    )
                )

        return results
