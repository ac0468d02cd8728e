"""
HRMS Payroll - Bulk Payroll Orchestrator Tests

Per-employee isolation: one employee's failure never stops the batch.
"""

import pytest
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.ext.asyncio import AsyncSession

from hrms_payroll.models.employee import Company
from hrms_payroll.models.payroll import StatutoryType
from hrms_payroll.services.attendance_service import AttendanceAggregator
from hrms_payroll.services.bulk_payroll import BulkPayrollOrchestrator, EmployeePayrollError
from hrms_payroll.services.payroll_calculator import EmployeePayrollResult

from conftest import (
    PERIOD_MONTH,
    PERIOD_YEAR,
    add_attendance,
    add_employee,
    add_salary_structure,
    add_statutory_config,
)


async def five_employees_without_third_structure(db: AsyncSession, company: Company):
    employees = []
    for n in range(1, 6):
        employee = await add_employee(db, company, f"EMP00{n}")
        if n != 3:
            await add_salary_structure(db, employee)
        await add_attendance(db, employee, present=18, absent=2)
        employees.append(employee)
    return employees


class TestBulkPayroll:
    """Batch calculation for every active employee."""

    @pytest.mark.asyncio
    async def test_missing_structure_isolated_to_one_employee(
        self, db_session: AsyncSession, test_company: Company,
    ):
        employees = await five_employees_without_third_structure(db_session, test_company)

        results = await BulkPayrollOrchestrator(db_session).calculate_bulk_payroll(
            test_company.id, PERIOD_MONTH, PERIOD_YEAR,
        )

        assert len(results) == 5
        successes = [r for r in results if isinstance(r, EmployeePayrollResult)]
        errors = [r for r in results if isinstance(r, EmployeePayrollError)]
        assert len(successes) == 4
        assert len(errors) == 1

        assert isinstance(results[2], EmployeePayrollError)
        assert results[2].employee_id == employees[2].id
        assert results[2].employee_code == "EMP003"
        assert "No active salary structure" in results[2].error

        # Employees after the failure are still attempted
        assert results[3].employee_code == "EMP004"
        assert results[4].employee_code == "EMP005"
        assert isinstance(results[4], EmployeePayrollResult)

    @pytest.mark.asyncio
    async def test_results_in_employee_code_order(
        self, db_session: AsyncSession, test_company: Company,
    ):
        for code in ("EMP010", "EMP002", "EMP007"):
            employee = await add_employee(db_session, test_company, code)
            await add_salary_structure(db_session, employee)

        results = await BulkPayrollOrchestrator(db_session).calculate_bulk_payroll(
            test_company.id, PERIOD_MONTH, PERIOD_YEAR,
        )

        assert [r.employee_code for r in results] == ["EMP002", "EMP007", "EMP010"]

    @pytest.mark.asyncio
    async def test_inactive_employees_skipped(
        self, db_session: AsyncSession, test_company: Company,
    ):
        active = await add_employee(db_session, test_company, "EMP001")
        await add_salary_structure(db_session, active)
        await add_employee(db_session, test_company, "EMP002", is_active=False)

        results = await BulkPayrollOrchestrator(db_session).calculate_bulk_payroll(
            test_company.id, PERIOD_MONTH, PERIOD_YEAR,
        )

        assert [r.employee_code for r in results] == ["EMP001"]

    @pytest.mark.asyncio
    async def test_invalid_statutory_config_reported_per_employee(
        self, db_session: AsyncSession, test_company: Company,
    ):
        for code in ("EMP001", "EMP002"):
            employee = await add_employee(db_session, test_company, code)
            await add_salary_structure(db_session, employee)
            await add_attendance(db_session, employee, present=20)
        await add_statutory_config(
            db_session, test_company, StatutoryType.PF, {"employeeRate": -5},
        )

        results = await BulkPayrollOrchestrator(db_session).calculate_bulk_payroll(
            test_company.id, PERIOD_MONTH, PERIOD_YEAR,
        )

        assert len(results) == 2
        assert all(isinstance(r, EmployeePayrollError) for r in results)
        assert "Invalid PF statutory configuration" in results[0].error

    @pytest.mark.asyncio
    async def test_unexpected_failure_isolated(
        self, db_session: AsyncSession, test_company: Company,
    ):
        employees = []
        for code in ("EMP001", "EMP002", "EMP003"):
            employee = await add_employee(db_session, test_company, code)
            await add_salary_structure(db_session, employee)
            await add_attendance(db_session, employee, present=20)
            employees.append(employee)

        aggregator = AttendanceAggregator(db_session)
        real_get_summary = aggregator.get_summary

        async def flaky_get_summary(employee_id, period_start, period_end):
            if employee_id == employees[1].id:
                raise RuntimeError("attendance service unavailable")
            return await real_get_summary(employee_id, period_start, period_end)

        with patch.object(aggregator, "get_summary", side_effect=flaky_get_summary):
            results = await BulkPayrollOrchestrator(
                db_session, aggregator=aggregator,
            ).calculate_bulk_payroll(test_company.id, PERIOD_MONTH, PERIOD_YEAR)

        assert isinstance(results[0], EmployeePayrollResult)
        assert isinstance(results[1], EmployeePayrollError)
        assert results[1].error == "attendance service unavailable"
        assert isinstance(results[2], EmployeePayrollResult)
        assert results[2].net_salary == Decimal("40000")

    def test_error_entry_serializes(self):
        error = EmployeePayrollError(
            employee_id="0b8c3a9e-2f5d-4d1e-9c57-3d2f7b6f6a11",
            employee_code="EMP003",
            error="No active salary structure found for employee EMP003",
        )

        assert error.to_dict() == {
            "employee_id": "0b8c3a9e-2f5d-4d1e-9c57-3d2f7b6f6a11",
            "employee_code": "EMP003",
            "error": "No active salary structure found for employee EMP003",
        }
