from __future__ import annotations

from lease_vs_buy.npv.rates import discount_factor, monthly_rate_from_annual
from lease_vs_buy.scenario.inputs import LeaseContract, ScenarioInputs


def upgrade_threshold(
    *,
    lower: LeaseContract,
    upper: LeaseContract,
    months: int,
    inputs: ScenarioInputs,
) -> float:
    """
    Annual excess distance (over `lower`'s allowance) at which `upper` pays off.

    Compares the PV of the extra VAT-inclusive fee paid every month with the PV
    of the end-of-term penalty `lower` would charge on that excess.
    """
    if months <= 0:
        raise ValueError("months must be > 0")
    if lower.penalty_per_km <= 0:
        raise ValueError("lower.penalty_per_km must be > 0")

    disc_m = monthly_rate_from_annual(inputs.discount_rate)
    delta_fee = upper.monthly_fee_with_vat(inputs.vat) - lower.monthly_fee_with_vat(inputs.vat)
    pv_annuity = sum(discount_factor(disc_m, m) for m in range(1, months + 1))
    pv_end = discount_factor(disc_m, months)
    years = months / 12.0

    return float(delta_fee * pv_annuity / (years * lower.penalty_per_km * pv_end))
