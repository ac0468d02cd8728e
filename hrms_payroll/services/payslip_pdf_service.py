"""
HRMS Payroll - Payslip PDF Service

Renders a computed payslip to PDF with ReportLab and stores it under
settings.payslip_storage_path. The stored path is relative to that
directory.
"""

import io
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from hrms_payroll.config import settings
from hrms_payroll.models.employee import Employee
from hrms_payroll.models.payroll import Payslip

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "", "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

EARNING_LABELS = {
    "basic": "Basic Salary",
    "hra": "House Rent Allowance",
    "special_allowance": "Special Allowance",
}

DEDUCTION_LABELS = {
    "pf": "Provident Fund",
    "esi": "ESI",
    "tds": "Income Tax (TDS)",
    "pt": "Professional Tax",
    "lwf": "Labour Welfare Fund",
    "loan": "Loan EMI",
}


@dataclass
class PayslipDocument:
    """Everything printed on one payslip."""
    payslip_id: str
    company_name: str
    employee_code: str
    employee_name: str
    department: Optional[str]
    designation: Optional[str]
    month: int
    year: int
    earnings: List[Tuple[str, float]] = field(default_factory=list)
    deductions: List[Tuple[str, float]] = field(default_factory=list)
    gross_salary: float = 0.0
    total_deductions: float = 0.0
    net_salary: float = 0.0
    days_worked: float = 0.0
    days_present: float = 0.0
    days_absent: float = 0.0
    days_leave: float = 0.0
    currency: str = "INR"

    @property
    def period_label(self) -> str:
        return f"{MONTH_NAMES[self.month]} {self.year}"

    @property
    def file_name(self) -> str:
        return f"payslip_{self.employee_code}_{self.year}_{self.month:02d}.pdf"

    @classmethod
    def from_payslip(
        cls,
        payslip: Payslip,
        employee: Employee,
        company_name: str,
    ) -> "PayslipDocument":
        earnings_map: Dict[str, Any] = payslip.earnings or {}
        deductions_map: Dict[str, Any] = payslip.deductions or {}

        earnings = [
            (label, float(earnings_map.get(key) or 0))
            for key, label in EARNING_LABELS.items()
        ]
        for name, amount in (earnings_map.get("other_allowances") or {}).items():
            earnings.append((name, float(amount or 0)))

        deductions = [
            (label, float(deductions_map.get(key) or 0))
            for key, label in DEDUCTION_LABELS.items()
            if deductions_map.get(key)
        ]
        for name, amount in (deductions_map.get("other_deductions") or {}).items():
            deductions.append((name, float(amount or 0)))

        return cls(
            payslip_id=str(payslip.id),
            company_name=company_name,
            employee_code=employee.employee_code,
            employee_name=employee.full_name,
            department=employee.department,
            designation=employee.designation,
            month=payslip.month,
            year=payslip.year,
            earnings=earnings,
            deductions=deductions,
            gross_salary=float(payslip.gross_salary),
            total_deductions=float(payslip.total_deductions),
            net_salary=float(payslip.net_salary),
            days_worked=float(payslip.days_worked),
            days_present=float(payslip.days_present),
            days_absent=float(payslip.days_absent),
            days_leave=float(payslip.days_leave),
            currency=settings.currency_label,
        )


class PayslipPDFRenderer:
    """ReportLab payslip renderer writing to local storage."""

    def __init__(self, storage_path: Optional[str] = None):
        self.storage_path = storage_path or settings.payslip_storage_path

    def _format_amount(self, amount: float, currency: str) -> str:
        return f"{currency} {amount:,.2f}"

    def render(self, document: PayslipDocument) -> str:
        """Write the PDF and return its path relative to the storage root."""
        relative_dir = os.path.join(str(document.year), f"{document.month:02d}")
        target_dir = os.path.join(self.storage_path, relative_dir)
        os.makedirs(target_dir, exist_ok=True)

        relative_path = os.path.join(relative_dir, document.file_name)
        with open(os.path.join(self.storage_path, relative_path), "wb") as f:
            f.write(self.generate_payslip_pdf(document))

        logger.debug(f"Payslip {document.payslip_id} written to {relative_path}")
        return relative_path

    def generate_payslip_pdf(self, document: PayslipDocument) -> bytes:
        """Build the payslip PDF in memory."""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=18*mm,
            leftMargin=18*mm,
            topMargin=18*mm,
            bottomMargin=18*mm,
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            'PayslipTitle',
            parent=styles['Heading1'],
            fontSize=18,
            textColor=colors.HexColor('#1a365d'),
            spaceAfter=6,
        )
        normal_style = ParagraphStyle(
            'PayslipNormal',
            parent=styles['Normal'],
            fontSize=10,
            spaceAfter=4,
        )
        right_style = ParagraphStyle(
            'PayslipRight',
            parent=styles['Normal'],
            fontSize=10,
            alignment=TA_RIGHT,
        )

        elements = [
            Paragraph(document.company_name, title_style),
            Paragraph(f"Payslip for {document.period_label}", right_style),
            Spacer(1, 12),
            self._build_employee_section(document),
            Spacer(1, 12),
            self._build_amounts_table(document),
            Spacer(1, 12),
            Paragraph(
                f"<b>Net Pay: {self._format_amount(document.net_salary, document.currency)}</b>",
                normal_style,
            ),
            Spacer(1, 24),
            Paragraph("This is a system generated payslip and does not require a signature.", normal_style),
        ]

        doc.build(elements)

        pdf_bytes = buffer.getvalue()
        buffer.close()
        return pdf_bytes

    def _build_employee_section(self, document: PayslipDocument) -> Table:
        data = [
            ['Employee Code', document.employee_code, 'Days Worked', f"{document.days_worked:g}"],
            ['Name', document.employee_name, 'Days Present', f"{document.days_present:g}"],
            ['Department', document.department or '-', 'Days Absent', f"{document.days_absent:g}"],
            ['Designation', document.designation or '-', 'Leave Days', f"{document.days_leave:g}"],
        ]
        table = Table(data, colWidths=[90, 160, 90, 80])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTNAME', (2, 0), (2, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        return table

    def _build_amounts_table(self, document: PayslipDocument) -> Table:
        rows = max(len(document.earnings), len(document.deductions))
        data = [['Earnings', 'Amount', 'Deductions', 'Amount']]
        for i in range(rows):
            earning = document.earnings[i] if i < len(document.earnings) else ('', None)
            deduction = document.deductions[i] if i < len(document.deductions) else ('', None)
            data.append([
                earning[0],
                self._format_amount(earning[1], document.currency) if earning[1] is not None else '',
                deduction[0],
                self._format_amount(deduction[1], document.currency) if deduction[1] is not None else '',
            ])
        data.append([
            'Gross Salary',
            self._format_amount(document.gross_salary, document.currency),
            'Total Deductions',
            self._format_amount(document.total_deductions, document.currency),
        ])

        table = Table(data, colWidths=[130, 100, 130, 100])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1a365d')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('ALIGN', (3, 0), (3, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('LINEABOVE', (0, -1), (-1, -1), 1, colors.black),
        ]))
        return table
