"""Initial payroll schema

Revision ID: 20261019_0900
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the directory tables read by payroll and the payroll tables:
- companies, employees: tenant and employee directory
- attendance_records, employee_leaves: daily attendance and leave requests
- salary_structures, employee_loans, supplementary_salaries: salary inputs
- statutory_configs: PF, ESI, TDS, PT, LWF configuration per company
- payrolls, payslips, payroll_pre_checks: payroll outputs
- audit_logs: lifecycle audit trail
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
import uuid


# revision identifiers, used by Alembic.
revision = '20261019_0900'
down_revision = None
branch_labels = None
depends_on = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    return table_name in inspector.get_table_names()


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _audit_columns():
    return [
        sa.Column('created_by_id', UUID(as_uuid=True), nullable=True),
        sa.Column('updated_by_id', UUID(as_uuid=True), nullable=True),
    ]


def upgrade() -> None:
    # ===========================================
    # DIRECTORY
    # ===========================================
    if not table_exists('companies'):
        op.create_table('companies',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('state', sa.String(100), nullable=True, comment='Registered state, used as a statutory fallback'),
            sa.Column('is_active', sa.Boolean, default=True, nullable=False),
            *_timestamps(),
        )

    if not table_exists('employees'):
        op.create_table('employees',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('company_id', UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('employee_code', sa.String(50), nullable=False, comment='Internal employee code / staff number'),
            sa.Column('first_name', sa.String(100), nullable=False),
            sa.Column('last_name', sa.String(100), nullable=False),
            sa.Column('email', sa.String(255), nullable=True),
            sa.Column('department', sa.String(100), nullable=True),
            sa.Column('designation', sa.String(150), nullable=True),

            # Statutory inputs
            sa.Column('state', sa.String(100), nullable=True, comment='Work state; selects the Professional Tax slab table'),
            sa.Column('pan', sa.String(10), nullable=True),
            sa.Column('uan', sa.String(20), nullable=True, comment='Provident Fund Universal Account Number'),
            sa.Column('tax_exemptions', sa.Numeric(15, 2), default=0, nullable=False),

            sa.Column('is_active', sa.Boolean, default=True, nullable=False),
            *_timestamps(),
            sa.UniqueConstraint('company_id', 'employee_code', name='uq_employee_company_code'),
        )

    # ===========================================
    # ATTENDANCE & LEAVE
    # ===========================================
    if not table_exists('attendance_records'):
        op.create_table('attendance_records',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('attendance_date', sa.Date, nullable=False, index=True),
            sa.Column('status', sa.Enum(
                'PRESENT', 'ABSENT', 'HALF_DAY', 'HOLIDAY', 'WEEKEND', 'ON_LEAVE',
                name='attendancestatus',
            ), nullable=False),
            sa.Column('is_locked', sa.Boolean, default=False, nullable=False),
            sa.Column('remarks', sa.Text, nullable=True),
            *_timestamps(),
            sa.UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_employee_date'),
        )

    if not table_exists('employee_leaves'):
        op.create_table('employee_leaves',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('leave_type', sa.Enum(
                'CASUAL', 'SICK', 'EARNED', 'MATERNITY', 'PATERNITY', 'COMPENSATORY', 'OTHER',
                name='leavetype',
            ), nullable=False),
            sa.Column('start_date', sa.Date, nullable=False),
            sa.Column('end_date', sa.Date, nullable=False),
            sa.Column('days_requested', sa.Numeric(5, 2), nullable=True),
            sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='leavestatus'), nullable=False),
            sa.Column('reason', sa.String(500), nullable=True),
            *_timestamps(),
        )

    # ===========================================
    # SALARY INPUTS
    # ===========================================
    if not table_exists('salary_structures'):
        op.create_table('salary_structures',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('basic_salary', sa.Numeric(15, 2), default=0, nullable=False),
            sa.Column('hra', sa.Numeric(15, 2), default=0, nullable=False),
            sa.Column('special_allowance', sa.Numeric(15, 2), default=0, nullable=False),
            sa.Column('other_allowances', sa.JSON, nullable=True),
            sa.Column('deductions', sa.JSON, nullable=True),
            sa.Column('effective_date', sa.Date, nullable=False),
            sa.Column('is_active', sa.Boolean, default=True, nullable=False),
            *_audit_columns(),
            *_timestamps(),
        )

    if not table_exists('employee_loans'):
        op.create_table('employee_loans',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('loan_type', sa.Enum('LOAN', 'SALARY_ADVANCE', name='loantype'), nullable=False),
            sa.Column('principal_amount', sa.Numeric(15, 2), default=0, nullable=False),
            sa.Column('monthly_emi', sa.Numeric(15, 2), default=0, nullable=False),
            sa.Column('outstanding_amount', sa.Numeric(15, 2), default=0, nullable=False),
            sa.Column('status', sa.Enum(
                'PENDING', 'APPROVED', 'ACTIVE', 'CLOSED', 'REJECTED',
                name='loanstatus',
            ), nullable=False),
            *_audit_columns(),
            *_timestamps(),
        )

    if not table_exists('statutory_configs'):
        op.create_table('statutory_configs',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('company_id', UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('statutory_type', sa.Enum('PF', 'ESI', 'TDS', 'PT', 'LWF', name='statutorytype'), nullable=False),
            sa.Column('is_enabled', sa.Boolean, default=True, nullable=False),
            sa.Column('state', sa.String(100), nullable=True),
            sa.Column('configuration', sa.JSON, nullable=True),
            *_audit_columns(),
            *_timestamps(),
        )

    # ===========================================
    # PAYROLL
    # ===========================================
    if not table_exists('payrolls'):
        op.create_table('payrolls',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('company_id', UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('month', sa.Integer, nullable=False),
            sa.Column('year', sa.Integer, nullable=False),
            sa.Column('status', sa.Enum(
                'DRAFT', 'PROCESSING', 'LOCKED', 'FINALIZED', 'PAID',
                name='payrollstatus',
            ), nullable=False),
            sa.Column('attendance_locked', sa.Boolean, default=False, nullable=False),
            sa.Column('earnings_applied', sa.Boolean, default=False, nullable=False),
            sa.Column('deductions_applied', sa.Boolean, default=False, nullable=False),

            # Summary
            sa.Column('total_employees', sa.Integer, default=0, nullable=False),
            sa.Column('total_gross_salary', sa.Numeric(18, 2), default=0, nullable=False),
            sa.Column('total_deductions', sa.Numeric(18, 2), default=0, nullable=False),
            sa.Column('total_net_salary', sa.Numeric(18, 2), default=0, nullable=False),
            sa.Column('last_error_count', sa.Integer, default=0, nullable=False),

            # Pre-checks
            sa.Column('pre_check_completed', sa.Boolean, default=False, nullable=False),
            sa.Column('pre_check_completed_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('pre_check_completed_by_id', UUID(as_uuid=True), nullable=True),
            sa.Column('payslips_generated', sa.Boolean, default=False, nullable=False),

            # Audit stamps
            sa.Column('created_by_id', UUID(as_uuid=True), nullable=True),
            sa.Column('processed_by_id', UUID(as_uuid=True), nullable=True),
            sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('finalized_by_id', UUID(as_uuid=True), nullable=True),
            sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),

            sa.Column('version', sa.Integer, nullable=False),
            *_timestamps(),
            sa.UniqueConstraint('company_id', 'month', 'year', name='uq_payroll_company_period'),
        )

    if not table_exists('supplementary_salaries'):
        op.create_table('supplementary_salaries',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('payroll_month', sa.Integer, nullable=False),
            sa.Column('payroll_year', sa.Integer, nullable=False),
            sa.Column('amount', sa.Numeric(15, 2), nullable=False),
            sa.Column('description', sa.String(255), nullable=True),
            sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='supplementarystatus'), nullable=False),
            sa.Column('is_processed', sa.Boolean, default=False, nullable=False),
            sa.Column('processed_in_payroll_id', UUID(as_uuid=True), sa.ForeignKey('payrolls.id', ondelete='SET NULL'), nullable=True),
            *_audit_columns(),
            *_timestamps(),
        )

    if not table_exists('payslips'):
        op.create_table('payslips',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('payroll_id', UUID(as_uuid=True), sa.ForeignKey('payrolls.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('month', sa.Integer, nullable=False),
            sa.Column('year', sa.Integer, nullable=False),
            sa.Column('salary_structure_id', UUID(as_uuid=True), sa.ForeignKey('salary_structures.id', ondelete='SET NULL'), nullable=True),
            sa.Column('earnings', sa.JSON, nullable=True),
            sa.Column('deductions', sa.JSON, nullable=True),
            sa.Column('gross_salary', sa.Numeric(15, 2), default=0, nullable=False),
            sa.Column('total_deductions', sa.Numeric(15, 2), default=0, nullable=False),
            sa.Column('net_salary', sa.Numeric(15, 2), default=0, nullable=False),

            # Attendance counters
            sa.Column('days_worked', sa.Numeric(5, 1), default=0, nullable=False),
            sa.Column('days_present', sa.Numeric(5, 1), default=0, nullable=False),
            sa.Column('days_absent', sa.Numeric(5, 1), default=0, nullable=False),
            sa.Column('days_leave', sa.Numeric(5, 1), default=0, nullable=False),
            sa.Column('lop_days', sa.Numeric(5, 1), default=0, nullable=False),

            sa.Column('pdf_path', sa.String(500), nullable=True),
            sa.Column('is_manual_override', sa.Boolean, default=False, nullable=False),
            sa.Column('is_paid', sa.Boolean, default=False, nullable=False),
            sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint('payroll_id', 'employee_id', 'month', 'year', name='uq_payslip_payroll_employee_period'),
        )

    if not table_exists('payroll_pre_checks'):
        op.create_table('payroll_pre_checks',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('payroll_id', UUID(as_uuid=True), sa.ForeignKey('payrolls.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
            sa.Column('check_type', sa.Enum(
                'ABSENCE', 'LEAVE', 'LOAN', 'SALARY_STRUCTURE',
                name='prechecktype',
            ), nullable=False),
            sa.Column('check_status', sa.Enum(
                'PENDING', 'WARNING', 'ERROR', 'RESOLVED', 'IGNORED',
                name='precheckstatus',
            ), nullable=False),
            sa.Column('description', sa.String(500), nullable=False),
            sa.Column('amount', sa.Numeric(15, 2), default=0, nullable=False),
            sa.Column('resolved_by_id', UUID(as_uuid=True), nullable=True),
            sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('resolution_notes', sa.Text, nullable=True),
            *_timestamps(),
        )

    # ===========================================
    # AUDIT LOG
    # ===========================================
    if not table_exists('audit_logs'):
        op.create_table('audit_logs',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, default=uuid.uuid4),
            sa.Column('company_id', UUID(as_uuid=True), nullable=True, index=True),
            sa.Column('user_id', UUID(as_uuid=True), nullable=True, index=True),
            sa.Column('module', sa.String(50), nullable=False),
            sa.Column('action', sa.Enum(
                'CREATE', 'PRE_CHECK', 'RESOLVE_PRE_CHECK', 'LOCK_ATTENDANCE',
                'PROCESS', 'FINALIZE', 'GENERATE_PAYSLIPS', 'MARK_PAID',
                'IMPORT_SALARY', 'APPLY_EARNINGS_DEDUCTIONS',
                name='auditaction',
            ), nullable=False, index=True),
            sa.Column('target_entity_type', sa.String(100), nullable=False, index=True),
            sa.Column('target_entity_id', sa.String(100), nullable=False, index=True),
            sa.Column('description', sa.Text, nullable=True),
            sa.Column('new_values', sa.JSON, nullable=True),
            *_timestamps(),
        )


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('payroll_pre_checks')
    op.drop_table('payslips')
    op.drop_table('supplementary_salaries')
    op.drop_table('payrolls')
    op.drop_table('statutory_configs')
    op.drop_table('employee_loans')
    op.drop_table('salary_structures')
    op.drop_table('employee_leaves')
    op.drop_table('attendance_records')
    op.drop_table('employees')
    op.drop_table('companies')

    for enum_name in (
        'auditaction', 'precheckstatus', 'prechecktype', 'payrollstatus',
        'statutorytype', 'supplementarystatus', 'loanstatus', 'loantype',
        'leavestatus', 'leavetype', 'attendancestatus',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
