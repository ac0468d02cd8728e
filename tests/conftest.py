"""
HRMS Payroll - Test Configuration

Pytest fixtures and configuration.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator, List, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import hrms_payroll.models  # noqa: F401
from hrms_payroll.database import Base, get_async_session
from hrms_payroll.dependencies import get_payslip_renderer
from hrms_payroll.models.attendance import AttendanceRecord, AttendanceStatus
from hrms_payroll.models.employee import Company, Employee
from hrms_payroll.models.payroll import SalaryStructure, StatutoryConfig, StatutoryType
from hrms_payroll.services.payslip_pdf_service import PayslipDocument
from main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PERIOD_MONTH = 3
PERIOD_YEAR = 2026


class FakeRenderer:
    """Records rendered documents instead of writing PDFs."""

    def __init__(self, fail_for: Optional[set] = None):
        self.documents: List[PayslipDocument] = []
        self.fail_for = fail_for or set()

    def render(self, document: PayslipDocument) -> str:
        if document.employee_code in self.fail_for:
            raise IOError(f"Disk full while writing {document.file_name}")
        self.documents.append(document)
        return f"{document.year}/{document.month:02d}/{document.file_name}"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh in-memory database and session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    fake_renderer: FakeRenderer,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session and renderer overrides."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session
    app.dependency_overrides[get_payslip_renderer] = lambda: fake_renderer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA HELPERS
# ===========================================

async def add_employee(
    db: AsyncSession,
    company: Company,
    code: str,
    state: Optional[str] = "Maharashtra",
    is_active: bool = True,
) -> Employee:
    employee = Employee(
        id=uuid4(),
        company_id=company.id,
        employee_code=code,
        first_name="Test",
        last_name=code,
        email=f"{code.lower()}@example.com",
        department="Engineering",
        designation="Engineer",
        state=state,
        is_active=is_active,
    )
    db.add(employee)
    await db.commit()
    return employee


async def add_salary_structure(
    db: AsyncSession,
    employee: Employee,
    basic: str = "20000",
    hra: str = "8000",
    special: str = "12000",
    effective_date: date = date(2025, 4, 1),
    **kwargs,
) -> SalaryStructure:
    structure = SalaryStructure(
        id=uuid4(),
        employee_id=employee.id,
        basic_salary=Decimal(basic),
        hra=Decimal(hra),
        special_allowance=Decimal(special),
        effective_date=effective_date,
        is_active=True,
        **kwargs,
    )
    db.add(structure)
    await db.commit()
    return structure


async def add_attendance(
    db: AsyncSession,
    employee: Employee,
    present: int = 0,
    absent: int = 0,
    half_days: int = 0,
    month: int = PERIOD_MONTH,
    year: int = PERIOD_YEAR,
) -> None:
    """Write consecutive daily rows from the 1st of the month."""
    day = date(year, month, 1)
    statuses = (
        [AttendanceStatus.PRESENT] * present
        + [AttendanceStatus.HALF_DAY] * half_days
        + [AttendanceStatus.ABSENT] * absent
    )
    for status in statuses:
        db.add(AttendanceRecord(
            employee_id=employee.id,
            attendance_date=day,
            status=status,
        ))
        day += timedelta(days=1)
    await db.commit()


async def add_statutory_config(
    db: AsyncSession,
    company: Company,
    statutory_type: StatutoryType,
    configuration: Optional[dict] = None,
    is_enabled: bool = True,
    state: Optional[str] = None,
) -> StatutoryConfig:
    config = StatutoryConfig(
        company_id=company.id,
        statutory_type=statutory_type,
        is_enabled=is_enabled,
        state=state,
        configuration=configuration or {},
    )
    db.add(config)
    await db.commit()
    return config


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest_asyncio.fixture
async def test_company(db_session: AsyncSession) -> Company:
    """Create a test company."""
    company = Company(
        id=uuid4(),
        name="Acme Technologies Pvt Ltd",
        state="Maharashtra",
        is_active=True,
    )
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company


@pytest_asyncio.fixture
async def pf_config(db_session: AsyncSession, test_company: Company) -> StatutoryConfig:
    """PF enabled with camelCase keys, as saved by the admin UI."""
    return await add_statutory_config(
        db_session,
        test_company,
        StatutoryType.PF,
        {"wageLimit": 15000, "employeeRate": 12, "employerRate": 12},
    )


@pytest_asyncio.fixture
async def staffed_company(
    db_session: AsyncSession,
    test_company: Company,
    pf_config: StatutoryConfig,
) -> List[Employee]:
    """Two employees with structures and 18 present / 2 absent days each."""
    employees = []
    for code in ("EMP001", "EMP002"):
        employee = await add_employee(db_session, test_company, code)
        await add_salary_structure(db_session, employee)
        await add_attendance(db_session, employee, present=18, absent=2)
        employees.append(employee)
    return employees


@pytest.fixture
def company_headers(test_company: Company) -> dict:
    return {"X-Company-ID": str(test_company.id), "X-User-ID": str(uuid4())}
