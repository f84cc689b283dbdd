from __future__ import annotations

import copy
from typing import Any

from lease_vs_buy.scenario.inputs import ScenarioInputs, validate_scenario

DEFAULT_SCENARIO: dict[str, Any] = {
    "months": 72,
    "discountRate": 0.03,  # annual
    "inflationRate": 0.02,  # annual
    "vat": 0.21,
    "purchasePrice": 33000,
    "ownershipCosts": 1200,  # per year
    "fuelCost": 0.104,  # per km
    "financing": {
        "enabled": False,
        "loanAmount": None,  # purchasePrice - downPayment
        "downPayment": 0,
        "termMonths": 60,
        "annualInterestRate": 0.07,  # TAE
        "balloonPayment": 0,
    },
    "residualAnchors": [
        {"year": 0, "fraction": 1.0},
        {"year": 5, "fraction": 0.35},
        {"year": 8, "fraction": 0.25},
        {"year": 10, "fraction": 0.15},
    ],
    "contracts": [
        {
            "id": "rent10k",
            "label": "Lease 10k km/year",
            "monthlyFeeNoVAT": 326,
            "annualAllowance": 10000,
            "penaltyPerKm": 0.035,
        },
        {
            "id": "rent15k",
            "label": "Lease 15k km/year",
            "monthlyFeeNoVAT": 345,
            "annualAllowance": 15000,
            "penaltyPerKm": 0.035,
        },
    ],
    "weeklyPlan": {
        "monday": [{"trips": 2, "kmPerTrip": 20}],
        "tuesday": [{"trips": 2, "kmPerTrip": 60}, {"trips": 2, "kmPerTrip": 20}],
        "wednesday": [{"trips": 2, "kmPerTrip": 15}],
        "thursday": [{"trips": 2, "kmPerTrip": 15}, {"trips": 2, "kmPerTrip": 20}],
        "friday": [],
        "saturday": [{"trips": 2, "kmPerTrip": 20}],
        "sunday": [],
    },
    "oneOffTrips": [
        {"label": "Summer trip", "roundTripKm": 1200, "inDestinationKm": 200, "monthHint": "jul-aug"},
    ],
    "weeksOff": 0,
    "customWeeks": [
        {"label": "Christmas, low use", "weeks": 2, "multiplier": 0.5},
        {"label": "Summer, low use", "weeks": 2, "multiplier": 0.8},
    ],
}


def default_scenario_dict() -> dict[str, Any]:
    return copy.deepcopy(DEFAULT_SCENARIO)


def default_scenario() -> ScenarioInputs:
    return validate_scenario(DEFAULT_SCENARIO)
