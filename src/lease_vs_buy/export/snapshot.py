from __future__ import annotations

import json
from typing import Any

from lease_vs_buy.financing.loan import FinancingSummary
from lease_vs_buy.npv.engine import ComparisonResult
from lease_vs_buy.scenario.inputs import ScenarioInputs, ScenarioValidationError, validate_scenario


def _financing_dict(f: FinancingSummary) -> dict[str, Any]:
    return {
        "loanAmount": f.loan_amount,
        "downPayment": f.down_payment,
        "termMonths": f.term_months,
        "annualInterestRate": f.annual_interest_rate,
        "balloonPayment": f.balloon_payment,
        "monthlyPayment": f.monthly_payment,
        "totalPayments": f.total_payments,
        "totalInterest": f.total_interest,
        "totalFinancedCost": f.total_financed_cost,
    }


def build_snapshot(inputs: ScenarioInputs, result: ComparisonResult) -> dict[str, Any]:
    purchase: dict[str, Any] = {
        "npv": result.purchase.npv,
        "totalNominal": result.purchase.total_nominal,
    }
    if result.purchase.financing is not None:
        purchase["financing"] = _financing_dict(result.purchase.financing)

    opt = result.optimal
    return {
        "inputs": inputs.to_json_dict(),
        "results": {
            "kmPerYear": result.km_per_year,
            "purchase": purchase,
            "optimal": {
                "contract": opt.contract.model_dump(mode="json", by_alias=True),
                "npv": opt.npv,
                "totalNominal": opt.total_nominal,
                "penalty": opt.penalty,
                "excessKm": opt.excess_km,
            },
            "difference": result.difference,
            "bestOption": result.best_option,
        },
    }


def snapshot_json(inputs: ScenarioInputs, result: ComparisonResult) -> str:
    return json.dumps(build_snapshot(inputs, result), indent=2)


def load_snapshot_inputs(text: str) -> ScenarioInputs:
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise ScenarioValidationError([f"snapshot is not valid JSON ({e})"]) from e
    if not isinstance(doc, dict) or "inputs" not in doc:
        raise ScenarioValidationError(["snapshot must be an object with an 'inputs' member"])
    return validate_scenario(doc["inputs"])
