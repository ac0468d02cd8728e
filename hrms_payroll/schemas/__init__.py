"""
HRMS Payroll - Schemas Package

Pydantic schemas for request/response validation and typed statutory
configuration.
"""
