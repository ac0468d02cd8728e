"""
HRMS Payroll - Routers Package

FastAPI route handlers.

Routers:
- payroll: Payroll lifecycle, pre-checks and payslips
"""

from hrms_payroll.routers import payroll

__all__ = [
    "payroll",
]
