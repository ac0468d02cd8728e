"""
HRMS Payroll - Payroll Lifecycle Service

State machine for a company's monthly payroll:

    draft --(lock attendance)--> draft + attendance_locked
          --(process)--> processing --> locked
          --(finalize)--> finalized
          --(generate payslips)--> finalized + payslips_generated
          --(mark paid)--> paid

Process may be re-run while the payroll is locked; it rewrites the computed
fields of existing payslips, except payslips entered through the manual
salary import. Process ends in
`locked` even when some employees failed; `last_error_count` records how
many.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import select, func, and_, delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from hrms_payroll.models.attendance import (
    AttendanceRecord,
    AttendanceStatus,
    EmployeeLeave,
    LeaveStatus,
)
from hrms_payroll.models.audit import AuditAction
from hrms_payroll.models.employee import Company, Employee
from hrms_payroll.models.payroll import (
    EmployeeLoan,
    LoanStatus,
    Payroll,
    PayrollPreCheck,
    PayrollStatus,
    Payslip,
    PreCheckStatus,
    PreCheckType,
    SupplementarySalary,
    SupplementaryStatus,
)
from hrms_payroll.schemas.payroll import ManualSalaryRow
from hrms_payroll.services.attendance_service import month_bounds
from hrms_payroll.services.audit_service import AuditService
from hrms_payroll.services.bulk_payroll import BulkPayrollOrchestrator, EmployeePayrollError
from hrms_payroll.services.payroll_calculator import EmployeePayrollResult
from hrms_payroll.services.payslip_pdf_service import PayslipDocument
from hrms_payroll.utils.error_handling import (
    DatabaseException,
    DuplicateEntryException,
    InvalidPeriodException,
    PayrollNotFoundException,
    PayslipNotFoundException,
    PreCheckNotFoundException,
    PreconditionViolationException,
    RenderingException,
    VersionConflictException,
)

logger = logging.getLogger(__name__)


class PayslipRenderer(Protocol):
    """Document renderer collaborator: returns the stored document path."""

    def render(self, document: PayslipDocument) -> str:
        ...


# ===========================================
# RESULT TYPES
# ===========================================

@dataclass
class ProcessResult:
    """Outcome of one process run."""
    success_count: int = 0
    skipped_count: int = 0
    total_gross_salary: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    total_net_salary: Decimal = Decimal("0")
    errors: List[EmployeePayrollError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass
class GenerationResult:
    """Outcome of payslip document generation."""
    total: int = 0
    success: int = 0
    errors: int = 0


@dataclass
class ImportResult:
    """Outcome of a manual salary import, one count per row."""
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PayrollLifecycleService:
    """Service for payroll lifecycle transitions and queries."""

    def __init__(
        self,
        db: AsyncSession,
        audit_service: Optional[AuditService] = None,
        renderer: Optional[PayslipRenderer] = None,
        orchestrator: Optional[BulkPayrollOrchestrator] = None,
    ):
        self.db = db
        self.audit_service = audit_service or AuditService(db)
        self.renderer = renderer
        self.orchestrator = orchestrator or BulkPayrollOrchestrator(db)

    # ===========================================
    # QUERIES
    # ===========================================

    async def get_payroll(self, payroll_id: uuid.UUID, company_id: uuid.UUID) -> Payroll:
        """Get a payroll scoped to the company."""
        result = await self.db.execute(
            select(Payroll).where(
                and_(
                    Payroll.id == payroll_id,
                    Payroll.company_id == company_id,
                )
            )
        )
        payroll = result.scalar_one_or_none()
        if payroll is None:
            raise PayrollNotFoundException(payroll_id)
        return payroll

    async def list_payrolls(
        self,
        company_id: uuid.UUID,
        status: Optional[PayrollStatus] = None,
        year: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Payroll], int]:
        """List payrolls, newest period first."""
        conditions = [Payroll.company_id == company_id]
        if status:
            conditions.append(Payroll.status == status)
        if year:
            conditions.append(Payroll.year == year)

        total_result = await self.db.execute(
            select(func.count(Payroll.id)).where(and_(*conditions))
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Payroll)
            .where(and_(*conditions))
            .order_by(Payroll.year.desc(), Payroll.month.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_payslips(self, payroll_id: uuid.UUID, company_id: uuid.UUID) -> List[Payslip]:
        await self.get_payroll(payroll_id, company_id)
        result = await self.db.execute(
            select(Payslip)
            .join(Employee, Employee.id == Payslip.employee_id)
            .where(Payslip.payroll_id == payroll_id)
            .order_by(Employee.employee_code)
        )
        return list(result.scalars().all())

    async def get_payslip(self, payslip_id: uuid.UUID, company_id: uuid.UUID) -> Payslip:
        result = await self.db.execute(
            select(Payslip)
            .join(Payroll, Payroll.id == Payslip.payroll_id)
            .where(
                and_(
                    Payslip.id == payslip_id,
                    Payroll.company_id == company_id,
                )
            )
        )
        payslip = result.scalar_one_or_none()
        if payslip is None:
            raise PayslipNotFoundException(payslip_id)
        return payslip

    async def list_pre_checks(self, payroll_id: uuid.UUID, company_id: uuid.UUID) -> List[PayrollPreCheck]:
        await self.get_payroll(payroll_id, company_id)
        result = await self.db.execute(
            select(PayrollPreCheck)
            .where(PayrollPreCheck.payroll_id == payroll_id)
            .order_by(PayrollPreCheck.check_type)
        )
        return list(result.scalars().all())

    # ===========================================
    # CREATE
    # ===========================================

    async def create_payroll(
        self,
        company_id: uuid.UUID,
        month: int,
        year: int,
        user_id: Optional[uuid.UUID] = None,
    ) -> Payroll:
        """Create the payroll for a company and period (one per period)."""
        if not 1 <= month <= 12:
            raise InvalidPeriodException(month, year)

        existing = await self.db.execute(
            select(Payroll.id).where(
                and_(
                    Payroll.company_id == company_id,
                    Payroll.month == month,
                    Payroll.year == year,
                )
            )
        )
        if existing.scalar_one_or_none():
            raise DuplicateEntryException("Payroll", "period", f"{month:02d}/{year}")

        payroll = Payroll(
            company_id=company_id,
            month=month,
            year=year,
            status=PayrollStatus.DRAFT,
            created_by_id=user_id,
        )
        self.db.add(payroll)

        try:
            await self.db.flush()
            await self.audit_service.log_action(
                company_id=company_id,
                entity_type="payroll",
                entity_id=str(payroll.id),
                action=AuditAction.CREATE,
                user_id=user_id,
                description=f"Payroll created for {payroll.period_label}",
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateEntryException("Payroll", "period", f"{month:02d}/{year}") from e

        await self.db.refresh(payroll)
        logger.info(f"Payroll {payroll.id} created for {payroll.period_label}")
        return payroll

    # ===========================================
    # PRE-PROCESSING CHECKS
    # ===========================================

    async def run_pre_checks(
        self,
        payroll_id: uuid.UUID,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Tuple[Payroll, List[PayrollPreCheck]]:
        """
        Replace the payroll's pre-checks with a fresh set of findings.

        Findings are advisory and never block processing.
        """
        payroll = await self.get_payroll(payroll_id, company_id)
        period_start, period_end = month_bounds(payroll.month, payroll.year)
        employees = await self.orchestrator.get_active_employees(company_id)
        calculator = self.orchestrator.calculator

        checks: List[PayrollPreCheck] = []
        for employee in employees:
            absent_result = await self.db.execute(
                select(func.count(AttendanceRecord.id)).where(
                    and_(
                        AttendanceRecord.employee_id == employee.id,
                        AttendanceRecord.attendance_date >= period_start,
                        AttendanceRecord.attendance_date <= period_end,
                        AttendanceRecord.status == AttendanceStatus.ABSENT,
                    )
                )
            )
            absent_days = absent_result.scalar() or 0
            if absent_days:
                checks.append(self._pre_check(
                    payroll, employee, PreCheckType.ABSENCE, PreCheckStatus.WARNING,
                    f"{absent_days} absent days found",
                ))

            pending_result = await self.db.execute(
                select(func.count(EmployeeLeave.id)).where(
                    and_(
                        EmployeeLeave.employee_id == employee.id,
                        EmployeeLeave.status == LeaveStatus.PENDING,
                        EmployeeLeave.start_date <= period_end,
                        EmployeeLeave.end_date >= period_start,
                    )
                )
            )
            pending_leaves = pending_result.scalar() or 0
            if pending_leaves:
                checks.append(self._pre_check(
                    payroll, employee, PreCheckType.LEAVE, PreCheckStatus.WARNING,
                    f"{pending_leaves} pending leave requests",
                ))

            loans_result = await self.db.execute(
                select(EmployeeLoan).where(
                    and_(
                        EmployeeLoan.employee_id == employee.id,
                        EmployeeLoan.status.in_([LoanStatus.APPROVED, LoanStatus.ACTIVE]),
                        EmployeeLoan.outstanding_amount > 0,
                    )
                )
            )
            for loan in loans_result.scalars().all():
                checks.append(self._pre_check(
                    payroll, employee, PreCheckType.LOAN, PreCheckStatus.PENDING,
                    f"Loan EMI due: {loan.monthly_emi}",
                    amount=loan.monthly_emi,
                ))

            if await calculator.get_active_salary_structure(employee.id) is None:
                checks.append(self._pre_check(
                    payroll, employee, PreCheckType.SALARY_STRUCTURE, PreCheckStatus.ERROR,
                    f"No active salary structure for employee {employee.employee_code}",
                ))

        await self.db.execute(
            delete(PayrollPreCheck).where(PayrollPreCheck.payroll_id == payroll.id)
        )
        self.db.add_all(checks)

        payroll.pre_check_completed = True
        payroll.pre_check_completed_at = _now()
        payroll.pre_check_completed_by_id = user_id

        await self._commit(
            payroll,
            company_id=company_id,
            entity_type="payroll",
            entity_id=str(payroll.id),
            action=AuditAction.PRE_CHECK,
            user_id=user_id,
            description=f"Pre-processing checks completed: {len(checks)} checks found",
        )

        logger.info(f"Payroll {payroll.id} pre-checks for {payroll.period_label}: {len(checks)} findings")
        return payroll, checks

    def _pre_check(
        self,
        payroll: Payroll,
        employee: Employee,
        check_type: PreCheckType,
        check_status: PreCheckStatus,
        description: str,
        amount: Decimal = Decimal("0"),
    ) -> PayrollPreCheck:
        return PayrollPreCheck(
            payroll_id=payroll.id,
            employee_id=employee.id,
            check_type=check_type,
            check_status=check_status,
            description=description,
            amount=amount,
        )

    async def resolve_pre_check(
        self,
        payroll_id: uuid.UUID,
        check_id: uuid.UUID,
        company_id: uuid.UUID,
        action: str,
        notes: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> PayrollPreCheck:
        """Mark a pre-check resolved, or ignored when action is 'ignore'."""
        payroll = await self.get_payroll(payroll_id, company_id)
        result = await self.db.execute(
            select(PayrollPreCheck).where(
                and_(
                    PayrollPreCheck.id == check_id,
                    PayrollPreCheck.payroll_id == payroll.id,
                )
            )
        )
        check = result.scalar_one_or_none()
        if check is None:
            raise PreCheckNotFoundException(check_id)

        check.check_status = PreCheckStatus.IGNORED if action == "ignore" else PreCheckStatus.RESOLVED
        check.resolved_by_id = user_id
        check.resolved_at = _now()
        check.resolution_notes = notes or ""

        await self._commit(
            check,
            company_id=company_id,
            entity_type="payroll_pre_check",
            entity_id=str(check.id),
            action=AuditAction.RESOLVE_PRE_CHECK,
            user_id=user_id,
            description=f"Pre-check {check.check_type.value} marked {check.check_status.value}",
        )
        return check

    # ===========================================
    # LOCK ATTENDANCE
    # ===========================================

    async def lock_attendance(
        self,
        payroll_id: uuid.UUID,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Payroll:
        """Lock every attendance row of the company's active employees in the period."""
        payroll = await self.get_payroll(payroll_id, company_id)
        if payroll.attendance_locked:
            raise PreconditionViolationException(
                "Attendance already locked",
                rule="ATTENDANCE_NOT_LOCKED",
                current_status=payroll.status.value,
            )

        period_start, period_end = month_bounds(payroll.month, payroll.year)
        await self.db.execute(
            update(AttendanceRecord)
            .where(
                and_(
                    AttendanceRecord.employee_id.in_(self._active_employee_ids(company_id)),
                    AttendanceRecord.attendance_date >= period_start,
                    AttendanceRecord.attendance_date <= period_end,
                )
            )
            .values(is_locked=True)
            .execution_options(synchronize_session=False)
        )

        payroll.attendance_locked = True

        await self._commit(
            payroll,
            company_id=company_id,
            entity_type="payroll",
            entity_id=str(payroll.id),
            action=AuditAction.LOCK_ATTENDANCE,
            user_id=user_id,
            description=f"Attendance locked for {payroll.period_label}",
        )

        logger.info(f"Payroll {payroll.id} attendance locked for {payroll.period_label}")
        return payroll

    # ===========================================
    # EARNINGS & DEDUCTIONS
    # ===========================================

    async def apply_earnings_deductions(
        self,
        payroll_id: uuid.UUID,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Tuple[Payroll, int]:
        """
        Mark the period's approved supplementary entries as processed by this payroll.

        Entries already taken by a payroll are left alone. Returns the number
        of entries marked.
        """
        payroll = await self.get_payroll(payroll_id, company_id)
        if not payroll.attendance_locked:
            raise PreconditionViolationException(
                "Please lock attendance first",
                rule="ATTENDANCE_LOCKED",
                current_status=payroll.status.value,
            )

        result = await self.db.execute(
            select(SupplementarySalary).where(
                and_(
                    SupplementarySalary.employee_id.in_(self._active_employee_ids(company_id)),
                    SupplementarySalary.payroll_month == payroll.month,
                    SupplementarySalary.payroll_year == payroll.year,
                    SupplementarySalary.status == SupplementaryStatus.APPROVED,
                    SupplementarySalary.is_processed == False,  # noqa: E712
                )
            )
        )
        entries = list(result.scalars().all())
        for entry in entries:
            entry.is_processed = True
            entry.processed_in_payroll_id = payroll.id

        payroll.earnings_applied = True
        payroll.deductions_applied = True

        await self._commit(
            payroll,
            company_id=company_id,
            entity_type="payroll",
            entity_id=str(payroll.id),
            action=AuditAction.APPLY_EARNINGS_DEDUCTIONS,
            user_id=user_id,
            description=f"Applied earnings/deductions: {len(entries)} supplementary salaries",
        )

        logger.info(f"Payroll {payroll.id} applied {len(entries)} supplementary entries")
        return payroll, len(entries)

    # ===========================================
    # PROCESS
    # ===========================================

    async def process_payroll(
        self,
        payroll_id: uuid.UUID,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Tuple[Payroll, ProcessResult]:
        """
        Calculate every active employee and upsert their payslips.

        Per-employee failures are reported in the result, not raised. Payslips
        and payroll totals are committed together once the loop completes.
        """
        payroll = await self.get_payroll(payroll_id, company_id)

        if payroll.status in (PayrollStatus.FINALIZED, PayrollStatus.PAID):
            raise PreconditionViolationException(
                "Payroll already finalized",
                rule="PAYROLL_NOT_FINALIZED",
                current_status=payroll.status.value,
            )
        if not payroll.attendance_locked:
            raise PreconditionViolationException(
                "Please lock attendance first",
                rule="ATTENDANCE_LOCKED",
                current_status=payroll.status.value,
            )

        payroll.status = PayrollStatus.PROCESSING
        payroll.processed_by_id = user_id
        payroll.processed_at = _now()
        try:
            await self.db.flush()
        except StaleDataError as e:
            await self.db.rollback()
            raise VersionConflictException("Payroll", payroll_id) from e

        logger.info(f"Processing payroll {payroll.id} for {payroll.period_label}")

        entries = await self.orchestrator.calculate_bulk_payroll(
            company_id, payroll.month, payroll.year,
        )

        existing_result = await self.db.execute(
            select(Payslip).where(Payslip.payroll_id == payroll.id)
        )
        existing: Dict[uuid.UUID, Payslip] = {
            p.employee_id: p for p in existing_result.scalars().all()
        }

        result = ProcessResult()
        for entry in entries:
            if isinstance(entry, EmployeePayrollError):
                result.errors.append(entry)
                continue

            payslip = existing.get(entry.employee_id)
            if payslip is not None and payslip.is_manual_override:
                result.skipped_count += 1
                continue

            if payslip is None:
                payslip = Payslip(
                    payroll_id=payroll.id,
                    employee_id=entry.employee_id,
                    month=payroll.month,
                    year=payroll.year,
                )
                self.db.add(payslip)
            self._apply_calculation(payslip, entry)

            result.success_count += 1
            result.total_gross_salary += entry.adjusted_gross_salary
            result.total_deductions += entry.total_deductions
            result.total_net_salary += entry.net_salary

        payroll.status = PayrollStatus.LOCKED
        payroll.total_employees = result.success_count
        payroll.total_gross_salary = result.total_gross_salary
        payroll.total_deductions = result.total_deductions
        payroll.total_net_salary = result.total_net_salary
        payroll.last_error_count = result.error_count

        await self._commit(
            payroll,
            company_id=company_id,
            entity_type="payroll",
            entity_id=str(payroll.id),
            action=AuditAction.PROCESS,
            user_id=user_id,
            description=(
                f"Payroll processed for {payroll.period_label} - "
                f"{result.success_count} employees processed, {result.error_count} errors"
            ),
            new_values={
                "total_employees": result.success_count,
                "error_count": result.error_count,
                "skipped_count": result.skipped_count,
            },
        )

        logger.info(
            f"Payroll {payroll.id} processed: {result.success_count} succeeded, "
            f"{result.error_count} failed, {result.skipped_count} manual overrides skipped"
        )
        return payroll, result

    def _apply_calculation(self, payslip: Payslip, entry: EmployeePayrollResult) -> None:
        """Replace computed fields only."""
        payslip.salary_structure_id = entry.salary_structure_id
        payslip.earnings = entry.earnings_dict()
        payslip.deductions = entry.deductions_dict()
        payslip.gross_salary = entry.adjusted_gross_salary
        payslip.total_deductions = entry.total_deductions
        payslip.net_salary = entry.net_salary
        payslip.days_worked = entry.attendance.working_days
        payslip.days_present = entry.attendance.present_days
        payslip.days_absent = entry.attendance.absent_days
        payslip.days_leave = entry.attendance.leave_days
        payslip.lop_days = entry.attendance.lop_days

    # ===========================================
    # MANUAL OVERRIDE
    # ===========================================

    async def import_manual_salaries(
        self,
        payroll_id: uuid.UUID,
        company_id: uuid.UUID,
        rows: Sequence[ManualSalaryRow],
        user_id: Optional[uuid.UUID] = None,
    ) -> Tuple[Payroll, ImportResult]:
        """
        Upsert manually entered payslips; process never recalculates them.

        Each row needs an employee code, gross and net salary. Bad rows are
        counted and described in the result, the rest are still imported.
        """
        payroll = await self.get_payroll(payroll_id, company_id)
        if payroll.status in (PayrollStatus.FINALIZED, PayrollStatus.PAID):
            raise PreconditionViolationException(
                "Payroll already finalized",
                rule="PAYROLL_NOT_FINALIZED",
                current_status=payroll.status.value,
            )

        employees = {
            e.employee_code: e
            for e in await self.orchestrator.get_active_employees(company_id)
        }
        existing_result = await self.db.execute(
            select(Payslip).where(Payslip.payroll_id == payroll.id)
        )
        payslips: Dict[uuid.UUID, Payslip] = {
            p.employee_id: p for p in existing_result.scalars().all()
        }

        result = ImportResult()
        for row_number, row in enumerate(rows, start=1):
            if not row.employee_code or row.gross_salary is None or row.net_salary is None:
                result.failed += 1
                result.errors.append(f"Row {row_number}: Missing required fields")
                continue

            employee = employees.get(row.employee_code)
            if employee is None:
                result.failed += 1
                result.errors.append(f"Row {row_number}: Employee not found: {row.employee_code}")
                continue

            payslip = payslips.get(employee.id)
            if payslip is None:
                payslip = Payslip(
                    payroll_id=payroll.id,
                    employee_id=employee.id,
                    month=payroll.month,
                    year=payroll.year,
                )
                self.db.add(payslip)
                payslips[employee.id] = payslip

            payslip.gross_salary = row.gross_salary
            payslip.total_deductions = row.total_deductions
            payslip.net_salary = row.net_salary
            payslip.is_manual_override = True
            result.success += 1

        await self._commit(
            payroll,
            company_id=company_id,
            entity_type="payroll",
            entity_id=str(payroll.id),
            action=AuditAction.IMPORT_SALARY,
            user_id=user_id,
            description=(
                f"Bulk imported salary: {result.success} records processed, "
                f"{result.failed} failed"
            ),
            new_values={"success": result.success, "failed": result.failed},
        )

        logger.info(
            f"Payroll {payroll.id} manual salary import: {result.success} imported, {result.failed} failed"
        )
        return payroll, result

    # ===========================================
    # FINALIZE / GENERATE / PAY
    # ===========================================

    async def finalize_payroll(
        self,
        payroll_id: uuid.UUID,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Payroll:
        """Finalize a processed payroll; no further recalculation."""
        payroll = await self.get_payroll(payroll_id, company_id)
        if payroll.status != PayrollStatus.LOCKED:
            raise PreconditionViolationException(
                "Payroll must be processed before finalizing",
                rule="PAYROLL_LOCKED",
                current_status=payroll.status.value,
            )

        payroll.status = PayrollStatus.FINALIZED
        payroll.finalized_by_id = user_id
        payroll.finalized_at = _now()

        await self._commit(
            payroll,
            company_id=company_id,
            entity_type="payroll",
            entity_id=str(payroll.id),
            action=AuditAction.FINALIZE,
            user_id=user_id,
            description=f"Payroll finalized for {payroll.period_label}",
        )

        logger.info(f"Payroll {payroll.id} finalized for {payroll.period_label}")
        return payroll

    async def generate_payslips(
        self,
        payroll_id: uuid.UUID,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Tuple[Payroll, GenerationResult]:
        """Render a document for every payslip; failures are counted, not raised."""
        payroll = await self.get_payroll(payroll_id, company_id)
        if payroll.status != PayrollStatus.FINALIZED:
            raise PreconditionViolationException(
                "Payroll must be finalized before generating payslips",
                rule="PAYROLL_FINALIZED",
                current_status=payroll.status.value,
            )
        if self.renderer is None:
            raise RenderingException("No payslip renderer configured")

        company = await self.db.get(Company, company_id)
        company_name = company.name if company else ""

        rows = await self.db.execute(
            select(Payslip, Employee)
            .join(Employee, Employee.id == Payslip.employee_id)
            .where(Payslip.payroll_id == payroll.id)
            .order_by(Employee.employee_code)
        )

        result = GenerationResult()
        for payslip, employee in rows.all():
            result.total += 1
            try:
                document = PayslipDocument.from_payslip(payslip, employee, company_name)
                payslip.pdf_path = self.renderer.render(document)
                result.success += 1
            except Exception as e:
                logger.error(f"Error generating PDF for payslip {payslip.id}: {e}", exc_info=True)
                result.errors += 1

        payroll.payslips_generated = True

        await self._commit(
            payroll,
            company_id=company_id,
            entity_type="payroll",
            entity_id=str(payroll.id),
            action=AuditAction.GENERATE_PAYSLIPS,
            user_id=user_id,
            description=(
                f"Payslip generation for {payroll.period_label}: "
                f"{result.success} generated, {result.errors} errors"
            ),
        )

        logger.info(
            f"Payroll {payroll.id} payslips generated: {result.success}/{result.total}, {result.errors} errors"
        )
        return payroll, result

    async def mark_payroll_paid(
        self,
        payroll_id: uuid.UUID,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Payroll:
        """Mark a finalized payroll and all its payslips as paid."""
        payroll = await self.get_payroll(payroll_id, company_id)
        if payroll.status != PayrollStatus.FINALIZED:
            raise PreconditionViolationException(
                "Only finalized payrolls can be marked as paid",
                rule="PAYROLL_FINALIZED",
                current_status=payroll.status.value,
            )

        paid_at = _now()
        payslips = await self.db.execute(
            select(Payslip).where(Payslip.payroll_id == payroll.id)
        )
        for payslip in payslips.scalars().all():
            payslip.is_paid = True
            payslip.paid_at = paid_at

        payroll.status = PayrollStatus.PAID
        payroll.paid_at = paid_at

        await self._commit(
            payroll,
            company_id=company_id,
            entity_type="payroll",
            entity_id=str(payroll.id),
            action=AuditAction.MARK_PAID,
            user_id=user_id,
            description=f"Payroll marked as paid for {payroll.period_label}",
        )

        logger.info(f"Payroll {payroll.id} marked as paid")
        return payroll

    # ===========================================
    # HELPERS
    # ===========================================

    def _active_employee_ids(self, company_id: uuid.UUID):
        return select(Employee.id).where(
            and_(
                Employee.company_id == company_id,
                Employee.is_active == True,  # noqa: E712
            )
        )

    async def _commit(self, instance, **audit) -> None:
        """Write the transition's audit row and commit; map persistence failures for the caller."""
        entity_type = type(instance).__name__
        entity_id = instance.id
        try:
            if audit:
                await self.audit_service.log_action(**audit)
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            raise VersionConflictException(entity_type, entity_id) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Commit failed for {entity_type} {entity_id}: {e}")
            raise DatabaseException(original_error=e) from e
        await self.db.refresh(instance)
