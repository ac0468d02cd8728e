"""
HRMS Payroll - API Endpoint Tests

Full payroll lifecycle through the HTTP surface, tenancy headers and the
error response shape.
"""

import pytest
from uuid import uuid4

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_payroll.models.employee import Company

from conftest import FakeRenderer, PERIOD_MONTH, PERIOD_YEAR, add_employee


BASE_URL = "/api/v1/payroll"


async def create_payroll(client: AsyncClient, headers: dict) -> dict:
    response = await client.post(
        f"{BASE_URL}/payrolls",
        json={"month": PERIOD_MONTH, "year": PERIOD_YEAR},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


class TestHealthAndTenancy:
    """Health check and company header handling."""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_missing_company_header(self, client: AsyncClient):
        response = await client.get(f"{BASE_URL}/payrolls")

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_malformed_company_header(self, client: AsyncClient):
        response = await client.get(f"{BASE_URL}/payrolls", headers={"X-Company-ID": "not-a-uuid"})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_INPUT"

    @pytest.mark.asyncio
    async def test_unknown_company(self, client: AsyncClient):
        response = await client.get(f"{BASE_URL}/payrolls", headers={"X-Company-ID": str(uuid4())})

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_inactive_company(
        self, client: AsyncClient, db_session: AsyncSession, test_company: Company, company_headers,
    ):
        test_company.is_active = False
        await db_session.commit()

        response = await client.get(f"{BASE_URL}/payrolls", headers=company_headers)

        assert response.status_code == 403


class TestPayrollEndpoints:
    """Create, list and fetch payrolls."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client: AsyncClient, company_headers):
        created = await create_payroll(client, company_headers)

        assert created["status"] == "draft"
        assert created["month"] == PERIOD_MONTH
        assert created["version"] == 1

        response = await client.get(f"{BASE_URL}/payrolls/{created['id']}", headers=company_headers)
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_duplicate_period_conflict(self, client: AsyncClient, company_headers):
        await create_payroll(client, company_headers)

        response = await client.post(
            f"{BASE_URL}/payrolls",
            json={"month": PERIOD_MONTH, "year": PERIOD_YEAR},
            headers=company_headers,
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "DUPLICATE_ENTRY"

    @pytest.mark.asyncio
    async def test_invalid_month_rejected(self, client: AsyncClient, company_headers):
        response = await client.post(
            f"{BASE_URL}/payrolls",
            json={"month": 13, "year": PERIOD_YEAR},
            headers=company_headers,
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_list_with_status_filter(self, client: AsyncClient, company_headers):
        await create_payroll(client, company_headers)

        response = await client.get(
            f"{BASE_URL}/payrolls", params={"status": "draft"}, headers=company_headers,
        )
        assert response.json()["total"] == 1

        response = await client.get(
            f"{BASE_URL}/payrolls", params={"status": "paid"}, headers=company_headers,
        )
        assert response.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_unknown_payroll(self, client: AsyncClient, company_headers):
        response = await client.get(f"{BASE_URL}/payrolls/{uuid4()}", headers=company_headers)

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "PAYROLL_NOT_FOUND"


class TestLifecycleEndpoints:
    """End-to-end lifecycle over HTTP."""

    @pytest.mark.asyncio
    async def test_process_before_lock(
        self, client: AsyncClient, company_headers, staffed_company,
    ):
        payroll = await create_payroll(client, company_headers)

        response = await client.post(
            f"{BASE_URL}/payrolls/{payroll['id']}/process", headers=company_headers,
        )

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "PRECONDITION_FAILED"
        assert detail["message"] == "Please lock attendance first"
        assert detail["details"]["current_status"] == "draft"

        payslips = await client.get(
            f"{BASE_URL}/payrolls/{payroll['id']}/payslips", headers=company_headers,
        )
        assert payslips.json() == []

    @pytest.mark.asyncio
    async def test_full_lifecycle(
        self, client: AsyncClient, fake_renderer: FakeRenderer, company_headers, staffed_company,
    ):
        payroll = await create_payroll(client, company_headers)
        url = f"{BASE_URL}/payrolls/{payroll['id']}"

        response = await client.post(f"{url}/lock-attendance", headers=company_headers)
        assert response.status_code == 200
        assert response.json()["payroll"]["attendance_locked"] is True

        response = await client.post(f"{url}/process", headers=company_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["payroll"]["status"] == "locked"
        assert body["summary"]["total_employees"] == 2
        assert body["summary"]["error_count"] == 0
        assert float(body["summary"]["total_net_salary"]) == 68400.0

        response = await client.post(f"{url}/finalize", headers=company_headers)
        assert response.status_code == 200
        assert response.json()["payroll"]["status"] == "finalized"
        assert float(response.json()["summary"]["total_gross_salary"]) == 72000.0

        response = await client.post(f"{url}/generate-payslips", headers=company_headers)
        assert response.status_code == 200
        assert response.json()["summary"] == {"total": 2, "success": 2, "errors": 0}
        assert response.json()["payroll"]["payslips_generated"] is True
        assert len(fake_renderer.documents) == 2

        response = await client.post(f"{url}/mark-paid", headers=company_headers)
        assert response.status_code == 200
        assert response.json()["payroll"]["status"] == "paid"

        response = await client.get(f"{url}/payslips", headers=company_headers)
        payslips = response.json()
        assert len(payslips) == 2
        assert all(p["is_paid"] for p in payslips)
        assert payslips[0]["pdf_path"] == "2026/03/payslip_EMP001_2026_03.pdf"

        response = await client.get(
            f"{BASE_URL}/payslips/{payslips[0]['id']}", headers=company_headers,
        )
        assert response.status_code == 200
        assert float(response.json()["net_salary"]) == 34200.0

    @pytest.mark.asyncio
    async def test_partial_failure_reported(
        self, client: AsyncClient, db_session: AsyncSession, test_company: Company,
        company_headers, staffed_company,
    ):
        await add_employee(db_session, test_company, "EMP003")
        payroll = await create_payroll(client, company_headers)
        url = f"{BASE_URL}/payrolls/{payroll['id']}"
        await client.post(f"{url}/lock-attendance", headers=company_headers)

        response = await client.post(f"{url}/process", headers=company_headers)

        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["total_employees"] == 2
        assert summary["error_count"] == 1
        assert summary["errors"][0]["employee_code"] == "EMP003"
        assert response.json()["payroll"]["last_error_count"] == 1

    @pytest.mark.asyncio
    async def test_finalize_before_process(self, client: AsyncClient, company_headers):
        payroll = await create_payroll(client, company_headers)

        response = await client.post(
            f"{BASE_URL}/payrolls/{payroll['id']}/finalize", headers=company_headers,
        )

        assert response.status_code == 422
        assert response.json()["detail"]["details"]["rule"] == "PAYROLL_LOCKED"


class TestManualSalaryEndpoints:
    """Manual salary import and supplementary application over HTTP."""

    @pytest.mark.asyncio
    async def test_import_salaries(
        self, client: AsyncClient, company_headers, staffed_company,
    ):
        payroll = await create_payroll(client, company_headers)
        url = f"{BASE_URL}/payrolls/{payroll['id']}"

        response = await client.post(
            f"{url}/import-salaries",
            json={"rows": [
                {"employee_code": "EMP001", "gross_salary": "50000", "total_deductions": "5000", "net_salary": "45000"},
                {"employee_code": "EMP404", "gross_salary": "1000", "net_salary": "1000"},
            ]},
            headers=company_headers,
        )

        assert response.status_code == 200
        assert response.json()["summary"] == {
            "success": 1,
            "failed": 1,
            "errors": ["Row 2: Employee not found: EMP404"],
        }
        payslips = (await client.get(f"{url}/payslips", headers=company_headers)).json()
        assert len(payslips) == 1
        assert payslips[0]["is_manual_override"] is True
        assert float(payslips[0]["net_salary"]) == 45000.0

    @pytest.mark.asyncio
    async def test_import_requires_rows(self, client: AsyncClient, company_headers):
        payroll = await create_payroll(client, company_headers)

        response = await client.post(
            f"{BASE_URL}/payrolls/{payroll['id']}/import-salaries",
            json={"rows": []},
            headers=company_headers,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_apply_earnings_deductions(
        self, client: AsyncClient, company_headers, staffed_company,
    ):
        payroll = await create_payroll(client, company_headers)
        url = f"{BASE_URL}/payrolls/{payroll['id']}"

        response = await client.post(f"{url}/apply-earnings-deductions", headers=company_headers)
        assert response.status_code == 422
        assert response.json()["detail"]["details"]["rule"] == "ATTENDANCE_LOCKED"

        await client.post(f"{url}/lock-attendance", headers=company_headers)
        response = await client.post(f"{url}/apply-earnings-deductions", headers=company_headers)

        assert response.status_code == 200
        assert response.json()["summary"] == {"count": 0}
        assert response.json()["payroll"]["earnings_applied"] is True
        assert response.json()["payroll"]["deductions_applied"] is True


class TestPreCheckEndpoints:
    """Pre-processing checks over HTTP."""

    @pytest.mark.asyncio
    async def test_run_list_and_resolve(
        self, client: AsyncClient, company_headers, staffed_company,
    ):
        payroll = await create_payroll(client, company_headers)
        url = f"{BASE_URL}/payrolls/{payroll['id']}/pre-checks"

        response = await client.post(url, headers=company_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["payroll"]["pre_check_completed"] is True
        assert body["summary"] == {"total": 2, "warnings": 2, "errors": 0, "pending": 0}

        checks = (await client.get(url, headers=company_headers)).json()
        assert len(checks) == 2
        assert {c["check_type"] for c in checks} == {"absence"}

        response = await client.post(
            f"{url}/{checks[0]['id']}/resolve",
            json={"action": "ignore", "notes": "Approved unpaid absence"},
            headers=company_headers,
        )
        assert response.status_code == 200
        assert response.json()["check_status"] == "ignored"
        assert response.json()["resolution_notes"] == "Approved unpaid absence"

    @pytest.mark.asyncio
    async def test_resolve_rejects_unknown_action(
        self, client: AsyncClient, company_headers, staffed_company,
    ):
        payroll = await create_payroll(client, company_headers)
        url = f"{BASE_URL}/payrolls/{payroll['id']}/pre-checks"
        checks = (await client.post(url, headers=company_headers)).json()["checks"]

        response = await client.post(
            f"{url}/{checks[0]['id']}/resolve",
            json={"action": "delete"},
            headers=company_headers,
        )

        assert response.status_code == 422
