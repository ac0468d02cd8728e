"""
HRMS Payroll - Statutory Deduction Calculator

Pure functions for Indian statutory deductions on a monthly gross salary:
- PF (Provident Fund): rate on min(gross, wage limit)
- ESI (Employee State Insurance): rate on gross, nil above the wage limit
- TDS (income tax): annualized, progressive slabs by regime, plus cess
- PT (Professional Tax): flat amount from the state's slab table
- LWF (Labour Welfare Fund): flat employee/employer amounts

Company configuration arrives as StatutoryConfig rows and is validated into
typed settings (hrms_payroll.schemas.statutory) before any arithmetic runs.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from hrms_payroll.models.payroll import StatutoryConfig
from hrms_payroll.schemas.statutory import (
    ESISettings,
    LWFSettings,
    PFSettings,
    PTSettings,
    StatutorySettings,
    TDSSettings,
    parse_statutory_settings,
)
from hrms_payroll.utils.error_handling import MissingConfigurationException

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def round_currency(amount: Decimal) -> Decimal:
    """Round half-up to a whole currency unit."""
    return Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def as_json_amount(amount: Decimal) -> float:
    """Amounts stored in JSON columns are plain numbers."""
    return float(amount)


# ===========================================
# RESULT TYPES
# ===========================================

@dataclass
class ContributionResult:
    """Employee/employer split of a contribution-style deduction."""
    employee: Decimal
    employer: Decimal
    base: Decimal

    def to_dict(self) -> Dict[str, float]:
        return {
            "employee": as_json_amount(self.employee),
            "employer": as_json_amount(self.employer),
            "base": as_json_amount(self.base),
        }


@dataclass
class TDSResult:
    """Working numbers of a TDS computation."""
    annual_taxable_income: Decimal
    annual_tax: Decimal
    monthly_tds: Decimal
    regime: str
    financial_year: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "annual_taxable_income": as_json_amount(self.annual_taxable_income),
            "annual_tax": as_json_amount(self.annual_tax),
            "monthly_tds": as_json_amount(self.monthly_tds),
            "regime": self.regime,
            "financial_year": self.financial_year,
        }


@dataclass
class StatutoryDeductions:
    """Employee-side statutory amounts plus per-type audit details."""
    pf: Decimal = ZERO
    esi: Decimal = ZERO
    tds: Decimal = ZERO
    pt: Decimal = ZERO
    lwf: Decimal = ZERO
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return self.pf + self.esi + self.tds + self.pt + self.lwf


# ===========================================
# INCOME TAX SLABS
# ===========================================

@dataclass
class TaxSlab:
    """Annual income band taxed at a marginal rate."""
    lower: Decimal
    upper: Optional[Decimal]
    rate: Decimal

    def calculate_tax(self, taxable_income: Decimal) -> Decimal:
        """Calculate tax for this band."""
        if taxable_income <= self.lower:
            return ZERO

        if self.upper is None:
            taxable_in_band = taxable_income - self.lower
        else:
            taxable_in_band = min(taxable_income, self.upper) - self.lower

        return taxable_in_band * (self.rate / 100)


NEW_REGIME_SLABS: List[TaxSlab] = [
    TaxSlab(Decimal("0"), Decimal("300000"), Decimal("0")),
    TaxSlab(Decimal("300000"), Decimal("700000"), Decimal("5")),
    TaxSlab(Decimal("700000"), Decimal("1000000"), Decimal("10")),
    TaxSlab(Decimal("1000000"), Decimal("1200000"), Decimal("15")),
    TaxSlab(Decimal("1200000"), Decimal("1500000"), Decimal("20")),
    TaxSlab(Decimal("1500000"), None, Decimal("30")),
]

OLD_REGIME_SLABS: List[TaxSlab] = [
    TaxSlab(Decimal("0"), Decimal("250000"), Decimal("0")),
    TaxSlab(Decimal("250000"), Decimal("500000"), Decimal("5")),
    TaxSlab(Decimal("500000"), Decimal("1000000"), Decimal("20")),
    TaxSlab(Decimal("1000000"), None, Decimal("30")),
]

REGIME_SLABS = {
    "new": NEW_REGIME_SLABS,
    "old": OLD_REGIME_SLABS,
}


def financial_year_for(month: int, year: int) -> int:
    """Indian financial year (April-March) that a payroll month falls in."""
    return year if month >= 4 else year - 1


# ===========================================
# PER-TYPE CALCULATIONS
# ===========================================

def calculate_pf(gross_salary: Decimal, settings: PFSettings) -> ContributionResult:
    """PF on wages capped at the wage limit."""
    base = min(gross_salary, settings.wage_limit)
    return ContributionResult(
        employee=round_currency(base * settings.employee_rate / 100),
        employer=round_currency(base * settings.employer_rate / 100),
        base=base,
    )


def calculate_esi(gross_salary: Decimal, settings: ESISettings) -> ContributionResult:
    """ESI on full gross; employees above the wage limit are not covered."""
    if gross_salary > settings.wage_limit:
        return ContributionResult(employee=ZERO, employer=ZERO, base=ZERO)

    return ContributionResult(
        employee=round_currency(gross_salary * settings.employee_rate / 100),
        employer=round_currency(gross_salary * settings.employer_rate / 100),
        base=gross_salary,
    )


def calculate_annual_tax(taxable_income: Decimal, regime: str) -> Decimal:
    """Progressive slab tax before cess."""
    return sum(
        (slab.calculate_tax(taxable_income) for slab in REGIME_SLABS[regime]),
        ZERO,
    )


def calculate_tds(
    gross_salary: Decimal,
    settings: TDSSettings,
    tax_exemptions: Decimal = ZERO,
    financial_year: Optional[int] = None,
) -> TDSResult:
    """
    Monthly TDS from a monthly gross.

    annual = gross x 12; taxable = annual - standard deduction - exemptions
    (floored at 0); tax by slabs; plus cess; spread evenly over 12 months.
    """
    annual_salary = gross_salary * 12
    taxable_income = max(
        ZERO,
        annual_salary - settings.standard_deduction - (tax_exemptions or ZERO),
    )

    tax = calculate_annual_tax(taxable_income, settings.regime)
    total_tax = tax + tax * settings.cess_rate / 100

    return TDSResult(
        annual_taxable_income=taxable_income,
        annual_tax=total_tax,
        monthly_tds=round_currency(total_tax / 12),
        regime=settings.regime,
        financial_year=financial_year,
    )


def calculate_pt(gross_salary: Decimal, state: str, settings: PTSettings) -> Decimal:
    """Flat PT amount of the first slab containing the gross; 0 if none does."""
    for slab in settings.slabs_for(state):
        if slab.matches(gross_salary):
            return slab.amount
    return ZERO


def calculate_lwf(settings: LWFSettings) -> ContributionResult:
    """LWF is a flat amount, independent of salary."""
    return ContributionResult(
        employee=settings.employee_amount,
        employer=settings.employer_amount,
        base=ZERO,
    )


# ===========================================
# CONFIG LOADING & AGGREGATION
# ===========================================

def load_statutory_settings(config: StatutoryConfig) -> StatutorySettings:
    """
    Validate a StatutoryConfig row into its typed settings variant.

    Raises:
        MissingConfigurationException: the configuration blob is invalid
    """
    statutory_type = getattr(config.statutory_type, "value", config.statutory_type)
    try:
        return parse_statutory_settings(statutory_type, config.configuration)
    except ValidationError as e:
        raise MissingConfigurationException(
            message=f"Invalid {statutory_type} statutory configuration",
            config_type=statutory_type,
            details={"errors": [err["msg"] for err in e.errors()]},
            original_error=e,
        ) from e


def resolve_pt_state(
    employee_state: Optional[str],
    config_state: Optional[str],
    settings: PTSettings,
    default_state: str,
) -> str:
    """employee -> config row -> PT settings -> service default."""
    return employee_state or config_state or settings.state or default_state


def calculate_statutory_deductions(
    gross_salary: Decimal,
    configs: Iterable[StatutoryConfig],
    employee_state: Optional[str] = None,
    tax_exemptions: Decimal = ZERO,
    month: Optional[int] = None,
    year: Optional[int] = None,
    default_pt_state: str = "Maharashtra",
) -> StatutoryDeductions:
    """
    Run every enabled statutory config against one gross salary.

    Disabled rows contribute nothing. A later row of the same type replaces
    an earlier one.
    """
    result = StatutoryDeductions()
    financial_year = financial_year_for(month, year) if month and year else None

    for config in configs:
        if not config.is_enabled:
            continue

        settings = load_statutory_settings(config)

        if isinstance(settings, PFSettings):
            pf = calculate_pf(gross_salary, settings)
            result.pf = pf.employee
            result.details["pf"] = pf.to_dict()

        elif isinstance(settings, ESISettings):
            esi = calculate_esi(gross_salary, settings)
            result.esi = esi.employee
            result.details["esi"] = esi.to_dict()

        elif isinstance(settings, TDSSettings):
            tds = calculate_tds(gross_salary, settings, tax_exemptions, financial_year)
            result.tds = tds.monthly_tds
            result.details["tds"] = tds.to_dict()

        elif isinstance(settings, PTSettings):
            state = resolve_pt_state(employee_state, config.state, settings, default_pt_state)
            result.pt = calculate_pt(gross_salary, state, settings)
            result.details["pt"] = {"state": state, "amount": as_json_amount(result.pt)}

        elif isinstance(settings, LWFSettings):
            lwf = calculate_lwf(settings)
            result.lwf = lwf.employee
            result.details["lwf"] = lwf.to_dict()

    logger.debug(
        f"Statutory deductions on gross {gross_salary}: "
        f"PF={result.pf} ESI={result.esi} TDS={result.tds} PT={result.pt} LWF={result.lwf}"
    )
    return result
