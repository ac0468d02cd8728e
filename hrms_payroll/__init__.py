"""
HRMS Payroll

Monthly payroll processing engine: attendance-based proration, Indian
statutory deductions and the payroll lifecycle state machine.
"""

__version__ = "0.1.0"
