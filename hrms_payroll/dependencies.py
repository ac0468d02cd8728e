"""
HRMS Payroll - FastAPI Dependencies

Shared dependencies for database sessions, request tenancy and services.

Authentication is handled upstream; the gateway forwards the acting company
and user as X-Company-ID / X-User-ID headers.
"""

import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_payroll.database import get_async_session
from hrms_payroll.models.employee import Company
from hrms_payroll.services.audit_service import AuditService
from hrms_payroll.services.payroll_service import PayrollLifecycleService
from hrms_payroll.services.payslip_pdf_service import PayslipPDFRenderer


def _parse_uuid(value: str, header: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header} header",
        )


async def get_current_company_id(
    x_company_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_async_session),
) -> uuid.UUID:
    """
    Resolve the tenant company for the request.

    Raises:
        HTTPException: 401 if the header is missing, 403 if the company
            does not exist or is inactive
    """
    if not x_company_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Company-ID header required",
        )
    company_id = _parse_uuid(x_company_id, "X-Company-ID")

    company = await db.get(Company, company_id)
    if company is None or not company.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access to this company is not allowed",
        )
    return company_id


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None),
) -> Optional[uuid.UUID]:
    """Acting user for audit stamps; system actions may have none."""
    if not x_user_id:
        return None
    return _parse_uuid(x_user_id, "X-User-ID")


def get_payslip_renderer() -> PayslipPDFRenderer:
    return PayslipPDFRenderer()


async def get_payroll_service(
    db: AsyncSession = Depends(get_async_session),
    renderer: PayslipPDFRenderer = Depends(get_payslip_renderer),
) -> PayrollLifecycleService:
    return PayrollLifecycleService(db, audit_service=AuditService(db), renderer=renderer)
