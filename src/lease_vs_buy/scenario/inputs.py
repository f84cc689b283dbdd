"""
Scenario inputs for the lease-vs-buy comparison.

Every model is frozen: sweeps derive new scenarios with `with_horizon` and
`with_annual_distance` instead of mutating the caller's object. JSON documents
may use camelCase (as exported) or snake_case keys.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
WEEKS_PER_YEAR = 52

_MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    populate_by_name=True,
    alias_generator=to_camel,
    allow_inf_nan=False,
)


class ScenarioValidationError(ValueError):
    """Raised when a scenario document cannot be turned into ScenarioInputs."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        super().__init__("invalid scenario: " + "; ".join(self.reasons))


class TripGroup(BaseModel):
    model_config = _MODEL_CONFIG

    trips: int = Field(ge=0)
    km_per_trip: float = Field(ge=0)


class WeeklyPlan(BaseModel):
    model_config = _MODEL_CONFIG

    monday: tuple[TripGroup, ...] = ()
    tuesday: tuple[TripGroup, ...] = ()
    wednesday: tuple[TripGroup, ...] = ()
    thursday: tuple[TripGroup, ...] = ()
    friday: tuple[TripGroup, ...] = ()
    saturday: tuple[TripGroup, ...] = ()
    sunday: tuple[TripGroup, ...] = ()

    def day(self, name: str) -> tuple[TripGroup, ...]:
        if name not in WEEKDAYS:
            raise ValueError(f"unknown weekday '{name}'")
        return getattr(self, name)


class OneOffTrip(BaseModel):
    model_config = _MODEL_CONFIG

    label: str = ""
    round_trip_km: float = Field(ge=0)
    in_destination_km: float = Field(ge=0)
    # Informational only: one-off distance is folded into the annual total.
    month_hint: str = ""


class CustomWeekAdjustment(BaseModel):
    model_config = _MODEL_CONFIG

    label: str = ""
    weeks: float = Field(ge=0)
    multiplier: float = Field(ge=0)


class ResidualAnchor(BaseModel):
    model_config = _MODEL_CONFIG

    year: float = Field(ge=0)
    fraction: float = Field(ge=0, le=1)


class LeaseContract(BaseModel):
    model_config = _MODEL_CONFIG

    id: str = Field(min_length=1)
    label: str = ""
    monthly_fee_no_vat: float = Field(gt=0, alias="monthlyFeeNoVAT")
    annual_allowance: float = Field(gt=0)
    penalty_per_km: float = Field(ge=0)

    def monthly_fee_with_vat(self, vat: float) -> float:
        return self.monthly_fee_no_vat * (1.0 + vat)


class FinancingConfig(BaseModel):
    model_config = _MODEL_CONFIG

    enabled: bool = False
    loan_amount: float | None = Field(default=None, ge=0)
    down_payment: float = Field(default=0.0, ge=0)
    term_months: int = Field(default=60, gt=0)
    annual_interest_rate: float = Field(default=0.07, ge=0)
    balloon_payment: float = Field(default=0.0, ge=0)
    # Pay the outstanding balance on the last horizon month when the loan outlives it.
    settle_at_horizon: bool = False

    def resolved_loan_amount(self, purchase_price: float) -> float:
        if self.loan_amount is not None:
            return float(self.loan_amount)
        return float(purchase_price - self.down_payment)


class ScenarioInputs(BaseModel):
    model_config = _MODEL_CONFIG

    months: int = Field(gt=0)
    discount_rate: float = Field(gt=-1)
    inflation_rate: float = Field(ge=-1)
    vat: float = Field(ge=0)
    purchase_price: float = Field(gt=0)
    ownership_costs: float = Field(ge=0)
    fuel_cost: float = Field(ge=0)
    financing: FinancingConfig = Field(default_factory=FinancingConfig)
    residual_anchors: tuple[ResidualAnchor, ...] = Field(min_length=1)
    contracts: tuple[LeaseContract, ...] = Field(min_length=1)
    weekly_plan: WeeklyPlan
    one_off_trips: tuple[OneOffTrip, ...]
    weeks_off: float = Field(ge=0, le=WEEKS_PER_YEAR)
    custom_weeks: tuple[CustomWeekAdjustment, ...]

    @model_validator(mode="after")
    def _check_cross_fields(self) -> ScenarioInputs:
        ids = [c.id for c in self.contracts]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ValueError(f"contract ids must be unique; duplicated: {', '.join(dupes)}")

        fin = self.financing
        if fin.down_payment > self.purchase_price:
            raise ValueError("financing.down_payment must be <= purchase_price")
        loan = fin.resolved_loan_amount(self.purchase_price)
        if fin.balloon_payment > loan:
            raise ValueError("financing.balloon_payment must be <= loan amount")
        return self

    def contract(self, contract_id: str) -> LeaseContract:
        for c in self.contracts:
            if c.id == contract_id:
                return c
        raise KeyError(contract_id)

    def with_horizon(self, months: int) -> ScenarioInputs:
        if int(months) != months or months <= 0:
            raise ValueError("months must be a positive integer")
        return self.model_copy(update={"months": int(months)})

    def with_annual_distance(self, km_per_year: float) -> ScenarioInputs:
        """Same scenario driven by a one-day plan that yields exactly `km_per_year`."""
        if km_per_year < 0:
            raise ValueError("km_per_year must be >= 0")
        plan = WeeklyPlan(monday=(TripGroup(trips=1, km_per_trip=km_per_year / WEEKS_PER_YEAR),))
        return self.model_copy(
            update={
                "weekly_plan": plan,
                "one_off_trips": (),
                "custom_weeks": (),
                "weeks_off": 0.0,
            }
        )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _reasons(err: ValidationError) -> list[str]:
    out = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e["loc"]) or "scenario"
        out.append(f"{loc}: {e['msg']}")
    return out


def validate_scenario(data: Mapping[str, Any] | ScenarioInputs) -> ScenarioInputs:
    if isinstance(data, ScenarioInputs):
        return data
    if not isinstance(data, Mapping):
        raise ScenarioValidationError([f"scenario must be an object, got {type(data).__name__}"])
    try:
        return ScenarioInputs.model_validate(dict(data))
    except ValidationError as e:
        raise ScenarioValidationError(_reasons(e)) from e


def load_scenario(path: str | Path) -> ScenarioInputs:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ScenarioValidationError([f"{path}: not valid JSON ({e})"]) from e
    return validate_scenario(raw)
