from __future__ import annotations

import pytest

from lease_vs_buy.scenario.defaults import default_scenario, default_scenario_dict
from lease_vs_buy.scenario.inputs import ScenarioInputs, validate_scenario


@pytest.fixture
def scenario() -> ScenarioInputs:
    return default_scenario()


@pytest.fixture
def financed_scenario() -> ScenarioInputs:
    d = default_scenario_dict()
    d["financing"].update({"enabled": True, "downPayment": 5000, "termMonths": 48, "balloonPayment": 4000})
    return validate_scenario(d)
