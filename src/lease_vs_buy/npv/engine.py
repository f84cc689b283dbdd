from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from lease_vs_buy.financing.loan import FinancingSummary, financing_summary
from lease_vs_buy.npv.cashflows import (
    CashFlowEntry,
    build_lease_cashflows,
    build_purchase_cashflows,
    nominal_total,
    npv_of,
)
from lease_vs_buy.scenario.inputs import LeaseContract, ScenarioInputs
from lease_vs_buy.usage.model import annual_distance

logger = logging.getLogger(__name__)

BestOption = Literal["purchase", "renting"]


@dataclass(frozen=True)
class PurchaseResult:
    cash_flows: tuple[CashFlowEntry, ...]
    npv: float
    total_nominal: float
    financing: FinancingSummary | None


@dataclass(frozen=True)
class LeaseResult:
    contract: LeaseContract
    cash_flows: tuple[CashFlowEntry, ...]
    npv: float
    total_nominal: float
    penalty: float
    excess_km: float


@dataclass(frozen=True)
class ComparisonResult:
    km_per_year: float
    purchase: PurchaseResult
    leases: tuple[LeaseResult, ...]
    optimal: LeaseResult
    difference: float
    best_option: BestOption


def _lease_result(inputs: ScenarioInputs, km_per_year: float, contract: LeaseContract) -> LeaseResult:
    flows = build_lease_cashflows(
        months=inputs.months,
        km_per_year=km_per_year,
        contract=contract,
        inputs=inputs,
    )
    last = flows[-1]
    return LeaseResult(
        contract=contract,
        cash_flows=tuple(flows),
        npv=npv_of(flows),
        total_nominal=nominal_total(flows),
        penalty=float(last.penalty or 0.0),
        excess_km=float(last.excess_km or 0.0),
    )


def calculate(inputs: ScenarioInputs) -> ComparisonResult:
    """
    Compare buying against every lease contract over `inputs.months`.

    NPVs are costs (negative); the optimal lease is the least negative one,
    first contract wins ties. A positive `difference` means leasing is cheaper.
    """
    km_per_year = annual_distance(inputs)

    financing = financing_summary(inputs.financing, inputs.purchase_price) if inputs.financing.enabled else None
    purchase_flows = build_purchase_cashflows(
        months=inputs.months,
        km_per_year=km_per_year,
        inputs=inputs,
        financing=financing,
    )
    purchase = PurchaseResult(
        cash_flows=tuple(purchase_flows),
        npv=npv_of(purchase_flows),
        total_nominal=nominal_total(purchase_flows),
        financing=financing,
    )

    leases = tuple(_lease_result(inputs, km_per_year, c) for c in inputs.contracts)
    optimal = leases[0]
    for lease in leases[1:]:
        if lease.npv > optimal.npv:
            optimal = lease

    difference = optimal.npv - purchase.npv
    best: BestOption = "renting" if difference > 0 else "purchase"
    logger.debug(
        "calculate: months=%d km/yr=%.1f purchase_npv=%.2f optimal=%s lease_npv=%.2f",
        inputs.months,
        km_per_year,
        purchase.npv,
        optimal.contract.id,
        optimal.npv,
    )
    return ComparisonResult(
        km_per_year=km_per_year,
        purchase=purchase,
        leases=leases,
        optimal=optimal,
        difference=float(difference),
        best_option=best,
    )
