from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

from lease_vs_buy.financing.loan import FinancingSummary
from lease_vs_buy.npv.rates import discount_factor, growth_factor, monthly_rate_from_annual
from lease_vs_buy.resale.model import residual_value
from lease_vs_buy.scenario.inputs import LeaseContract, ScenarioInputs


@dataclass(frozen=True)
class CashFlowEntry:
    # Signed: costs negative, inflows positive. Breakdown fields stay None when not applicable.
    month: int
    amount: float
    pv: float
    description: str = ""
    fuel: float | None = None
    maintenance: float | None = None
    down_payment: float | None = None
    loan_payment: float | None = None
    loan_principal: float | None = None
    loan_interest: float | None = None
    loan_payoff: float | None = None
    residual: float | None = None
    rent_fee: float | None = None
    penalty: float | None = None
    excess_km: float | None = None


def npv_of(flows: Sequence[CashFlowEntry]) -> float:
    return float(sum(cf.pv for cf in flows))


def nominal_total(flows: Sequence[CashFlowEntry]) -> float:
    return float(sum(cf.amount for cf in flows))


def _fuel_cost(inputs: ScenarioInputs, km_per_year: float, infl_m: float, m: int) -> float:
    return inputs.fuel_cost * (km_per_year / 12.0) * growth_factor(infl_m, m)


def build_purchase_cashflows(
    *,
    months: int,
    km_per_year: float,
    inputs: ScenarioInputs,
    financing: FinancingSummary | None = None,
) -> list[CashFlowEntry]:
    """
    Month 0 outlay, monthly running costs (plus loan installments), residual on the last month.

    `financing` must be given exactly when `inputs.financing.enabled`.
    """
    if months <= 0:
        raise ValueError("months must be > 0")
    if km_per_year < 0:
        raise ValueError("km_per_year must be >= 0")
    if inputs.financing.enabled and financing is None:
        raise ValueError("financing summary required when financing is enabled")

    disc_m = monthly_rate_from_annual(inputs.discount_rate)
    infl_m = monthly_rate_from_annual(inputs.inflation_rate)

    flows: list[CashFlowEntry] = []
    if financing is not None:
        if financing.down_payment > 0:
            flows.append(
                CashFlowEntry(
                    month=0,
                    amount=-financing.down_payment,
                    pv=-financing.down_payment,
                    description="Down payment",
                    down_payment=financing.down_payment,
                )
            )
        else:
            # Keeps month index == list index.
            flows.append(CashFlowEntry(month=0, amount=0.0, pv=0.0, description="Financing start"))
    else:
        price = float(inputs.purchase_price)
        flows.append(CashFlowEntry(month=0, amount=-price, pv=-price, description="Purchase"))

    maintenance_monthly = inputs.ownership_costs / 12.0
    settle = financing is not None and inputs.financing.settle_at_horizon

    for m in range(1, months + 1):
        fuel = _fuel_cost(inputs, km_per_year, infl_m, m)
        maint = maintenance_monthly * growth_factor(infl_m, m)
        cost = fuel + maint

        loan_fields: dict[str, float] = {}
        entry = financing.entry_for(m) if financing is not None else None
        if entry is not None and entry.payment > 0:
            cost += entry.payment
            loan_fields = {
                "loan_payment": entry.payment,
                "loan_principal": entry.principal,
                "loan_interest": entry.interest,
            }
        if settle and m == months:
            payoff = financing.balance_after(months)
            if payoff > 0:
                cost += payoff
                loan_fields["loan_payoff"] = payoff

        flows.append(
            CashFlowEntry(
                month=m,
                amount=-cost,
                pv=-cost * discount_factor(disc_m, m),
                description=f"Month {m}",
                fuel=fuel,
                maintenance=maint,
                **loan_fields,
            )
        )

    residual = residual_value(inputs.purchase_price, months / 12.0, inputs.residual_anchors)
    last = flows[-1]
    flows[-1] = replace(
        last,
        amount=last.amount + residual,
        pv=last.pv + residual * discount_factor(disc_m, months),
        residual=residual,
    )
    return flows


def build_lease_cashflows(
    *,
    months: int,
    km_per_year: float,
    contract: LeaseContract,
    inputs: ScenarioInputs,
) -> list[CashFlowEntry]:
    """
    VAT-inclusive fee (flat in nominal terms) plus inflated fuel, months 1..N.

    Excess distance over the allowance is charged once, on the last month.
    """
    if months <= 0:
        raise ValueError("months must be > 0")
    if km_per_year < 0:
        raise ValueError("km_per_year must be >= 0")

    disc_m = monthly_rate_from_annual(inputs.discount_rate)
    infl_m = monthly_rate_from_annual(inputs.inflation_rate)
    fee = contract.monthly_fee_with_vat(inputs.vat)

    flows: list[CashFlowEntry] = []
    for m in range(1, months + 1):
        fuel = _fuel_cost(inputs, km_per_year, infl_m, m)
        cost = fee + fuel
        flows.append(
            CashFlowEntry(
                month=m,
                amount=-cost,
                pv=-cost * discount_factor(disc_m, m),
                description=f"Month {m}",
                fuel=fuel,
                rent_fee=fee,
            )
        )

    years = months / 12.0
    excess_km = max(0.0, km_per_year * years - contract.annual_allowance * years)
    penalty = excess_km * contract.penalty_per_km
    if penalty > 0:
        last = flows[-1]
        flows[-1] = replace(
            last,
            amount=last.amount - penalty,
            pv=last.pv - penalty * discount_factor(disc_m, months),
            penalty=penalty,
            excess_km=excess_km,
        )
    return flows
