"""
HRMS Payroll - Statutory Configuration Schemas

Typed variants of the StatutoryConfig.configuration blob, one per statutory
type. Keys are accepted in camelCase (as saved by the admin UI) or snake_case.

Defaults (Indian statutory norms):
- PF:  12% employee / 12% employer on wages capped at 15,000
- ESI: 0.75% employee / 3.25% employer, only when gross <= 21,000
- TDS: new regime, 50,000 standard deduction, 4% health & education cess
- PT:  state slab table, flat monthly amount
- LWF: flat 10 employee / 20 employer
"""

from decimal import Decimal
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    model_validator,
)
from pydantic.alias_generators import to_camel


class StatutorySettingsBase(BaseModel):
    """Common config for all statutory variants."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# ===========================================
# PF / ESI
# ===========================================

class PFSettings(StatutorySettingsBase):
    """Provident Fund settings."""
    statutory_type: Literal["PF"] = Field("PF", alias="statutory_type")
    wage_limit: Decimal = Field(Decimal("15000"), ge=0)
    employee_rate: Decimal = Field(Decimal("12"), ge=0, le=100)
    employer_rate: Decimal = Field(Decimal("12"), ge=0, le=100)


class ESISettings(StatutorySettingsBase):
    """Employee State Insurance settings."""
    statutory_type: Literal["ESI"] = Field("ESI", alias="statutory_type")
    wage_limit: Decimal = Field(Decimal("21000"), ge=0)
    employee_rate: Decimal = Field(Decimal("0.75"), ge=0, le=100)
    employer_rate: Decimal = Field(Decimal("3.25"), ge=0, le=100)


# ===========================================
# TDS
# ===========================================

class TDSSettings(StatutorySettingsBase):
    """Income tax (TDS) settings."""
    statutory_type: Literal["TDS"] = Field("TDS", alias="statutory_type")
    regime: Literal["new", "old"] = Field(
        "new",
        validation_alias=AliasChoices("regime", "tdsRegime", "tds_regime"),
    )
    standard_deduction: Decimal = Field(Decimal("50000"), ge=0)
    cess_rate: Decimal = Field(Decimal("4"), ge=0, le=100)


# ===========================================
# PT
# ===========================================

class PTSlab(StatutorySettingsBase):
    """Gross-salary band with a flat monthly PT amount. `max` omitted = unbounded."""
    min: Decimal = Field(Decimal("0"), ge=0)
    max: Optional[Decimal] = Field(None, ge=0)
    amount: Decimal = Field(..., ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "PTSlab":
        if self.max is not None and self.max < self.min:
            raise ValueError(f"PT slab max ({self.max}) is below min ({self.min})")
        return self

    def matches(self, gross_salary: Decimal) -> bool:
        if gross_salary < self.min:
            return False
        return self.max is None or gross_salary <= self.max


DEFAULT_PT_SLABS: List[PTSlab] = [
    PTSlab(min=Decimal("0"), max=Decimal("5000"), amount=Decimal("0")),
    PTSlab(min=Decimal("5001"), max=Decimal("10000"), amount=Decimal("150")),
    PTSlab(min=Decimal("10001"), max=Decimal("15000"), amount=Decimal("175")),
    PTSlab(min=Decimal("15001"), max=None, amount=Decimal("200")),
]


class PTSettings(StatutorySettingsBase):
    """
    Professional Tax settings.

    `slabs` maps a state name to its slab table; the optional "default" key
    is used for states without their own table.
    """
    statutory_type: Literal["PT"] = Field("PT", alias="statutory_type")
    slabs: Dict[str, List[PTSlab]] = Field(default_factory=dict)
    state: Optional[str] = None

    def slabs_for(self, state: str) -> List[PTSlab]:
        if state in self.slabs:
            return self.slabs[state]
        return self.slabs.get("default", DEFAULT_PT_SLABS)


# ===========================================
# LWF
# ===========================================

class LWFSettings(StatutorySettingsBase):
    """Labour Welfare Fund settings (flat rupee amounts)."""
    statutory_type: Literal["LWF"] = Field("LWF", alias="statutory_type")
    employee_amount: Decimal = Field(
        Decimal("10"),
        ge=0,
        validation_alias=AliasChoices("employeeAmount", "employee_amount", "employeeRate"),
    )
    employer_amount: Decimal = Field(
        Decimal("20"),
        ge=0,
        validation_alias=AliasChoices("employerAmount", "employer_amount", "employerRate"),
    )


StatutorySettings = Annotated[
    Union[PFSettings, ESISettings, TDSSettings, PTSettings, LWFSettings],
    Field(discriminator="statutory_type"),
]

statutory_settings_adapter: TypeAdapter[StatutorySettings] = TypeAdapter(StatutorySettings)


def parse_statutory_settings(statutory_type: str, configuration: Optional[dict]) -> StatutorySettings:
    """
    Validate a raw configuration blob into its typed variant.

    Raises pydantic.ValidationError when the blob is malformed.
    """
    data = dict(configuration or {})
    data["statutory_type"] = statutory_type
    return statutory_settings_adapter.validate_python(data)
