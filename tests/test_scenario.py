from __future__ import annotations

import json

import pytest

from lease_vs_buy.contracts.upgrade import upgrade_threshold
from lease_vs_buy.npv.engine import calculate
from lease_vs_buy.scenario.defaults import DEFAULT_SCENARIO, default_scenario_dict
from lease_vs_buy.scenario.inputs import (
    LeaseContract,
    ScenarioInputs,
    ScenarioValidationError,
    load_scenario,
    validate_scenario,
)


def _with(**changes):
    d = default_scenario_dict()
    d.update(changes)
    return d


def test_default_dict_is_a_copy():
    d = default_scenario_dict()
    d["contracts"].clear()
    assert len(DEFAULT_SCENARIO["contracts"]) == 2


def test_snake_case_keys_accepted(scenario):
    data = scenario.model_dump()
    assert validate_scenario(data) == scenario


def test_camel_case_round_trip(scenario):
    doc = scenario.to_json_dict()
    assert "monthlyFeeNoVAT" in doc["contracts"][0]
    assert "kmPerTrip" in doc["weeklyPlan"]["monday"][0]
    assert validate_scenario(doc) == scenario


@pytest.mark.parametrize(
    "changes, fragment",
    [
        ({"months": 0}, "months"),
        ({"months": -12}, "months"),
        ({"contracts": []}, "contracts"),
        ({"residualAnchors": []}, "residualAnchors"),
        ({"discountRate": -1}, "discountRate"),
        ({"weeksOff": 60}, "weeksOff"),
        ({"weeklyPlan": {"funday": [{"trips": 1, "kmPerTrip": 5}]}}, "funday"),
        ({"weeklyPlan": {"monday": [{"trips": -1, "kmPerTrip": 5}]}}, "trips"),
        ({"fuelCost": float("nan")}, "fuelCost"),
    ],
)
def test_invalid_scenarios_rejected(changes, fragment):
    with pytest.raises(ScenarioValidationError) as exc:
        validate_scenario(_with(**changes))
    assert any(fragment in r for r in exc.value.reasons)


@pytest.mark.parametrize(
    "field",
    ["purchasePrice", "weeklyPlan", "oneOffTrips", "weeksOff", "customWeeks"],
)
def test_missing_core_field_rejected_not_zeroed(field):
    d = default_scenario_dict()
    del d[field]
    with pytest.raises(ScenarioValidationError) as exc:
        validate_scenario(d)
    assert any(r.startswith(field) for r in exc.value.reasons)


def test_missing_usage_block_rejected_as_a_whole():
    d = default_scenario_dict()
    for field in ("weeklyPlan", "oneOffTrips", "weeksOff", "customWeeks"):
        del d[field]
    with pytest.raises(ScenarioValidationError) as exc:
        validate_scenario(d)
    assert len(exc.value.reasons) == 4


def test_one_off_trip_needs_in_destination_distance():
    d = default_scenario_dict()
    del d["oneOffTrips"][0]["inDestinationKm"]
    with pytest.raises(ScenarioValidationError, match="inDestinationKm"):
        validate_scenario(d)


def test_missing_weekdays_still_count_as_zero_trips():
    d = default_scenario_dict()
    d["weeklyPlan"] = {"monday": [{"trips": 1, "kmPerTrip": 10}]}
    s = validate_scenario(d)
    assert s.weekly_plan.sunday == ()


def test_duplicate_contract_ids_rejected():
    d = default_scenario_dict()
    d["contracts"][1]["id"] = "rent10k"
    with pytest.raises(ScenarioValidationError, match="unique"):
        validate_scenario(d)


def test_financing_cross_field_checks():
    d = default_scenario_dict()
    d["financing"].update({"enabled": True, "downPayment": 40_000})
    with pytest.raises(ScenarioValidationError, match="down_payment"):
        validate_scenario(d)

    d = default_scenario_dict()
    d["financing"].update({"enabled": True, "loanAmount": 10_000, "balloonPayment": 12_000})
    with pytest.raises(ScenarioValidationError, match="balloon"):
        validate_scenario(d)


def test_financing_cross_field_checks_apply_when_disabled():
    d = default_scenario_dict()
    d["financing"].update({"enabled": False, "downPayment": 40_000})
    with pytest.raises(ScenarioValidationError, match="down_payment"):
        validate_scenario(d)


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        validate_scenario([1, 2, 3])


def test_inputs_are_frozen(scenario):
    with pytest.raises(Exception):
        scenario.months = 12


def test_with_horizon_and_distance(scenario):
    h = scenario.with_horizon(24)
    assert h.months == 24
    assert scenario.months == 72
    with pytest.raises(ValueError):
        scenario.with_horizon(0)

    s = scenario.with_annual_distance(20_800)
    assert s.weekly_plan.monday[0].km_per_trip == 400
    assert s.weekly_plan.tuesday == ()
    assert s.one_off_trips == () and s.custom_weeks == () and s.weeks_off == 0
    assert calculate(s).km_per_year == 20_800
    with pytest.raises(ValueError):
        scenario.with_annual_distance(-1)


def test_contract_lookup(scenario):
    assert scenario.contract("rent15k").annual_allowance == 15_000
    with pytest.raises(KeyError):
        scenario.contract("nope")


def test_load_scenario(tmp_path, scenario):
    p = tmp_path / "s.json"
    p.write_text(json.dumps(scenario.to_json_dict()), encoding="utf-8")
    assert load_scenario(p) == scenario

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ScenarioValidationError):
        load_scenario(bad)


def test_upgrade_threshold_balances_fee_against_penalty(scenario: ScenarioInputs):
    small, big = scenario.contracts
    x_star = upgrade_threshold(lower=small, upper=big, months=72, inputs=scenario)
    assert x_star > 0

    # At x* extra km/year over the small allowance, both contracts cost the same.
    km = small.annual_allowance + x_star
    only_small = calculate(scenario.with_annual_distance(km).model_copy(update={"contracts": (small,)}))
    no_penalty_big = big.model_copy(update={"annual_allowance": 1e9})
    only_big = calculate(scenario.with_annual_distance(km).model_copy(update={"contracts": (no_penalty_big,)}))
    assert only_small.optimal.npv == pytest.approx(only_big.optimal.npv, rel=1e-9)


def test_upgrade_threshold_needs_penalty(scenario):
    free = LeaseContract(id="free", monthly_fee_no_vat=300, annual_allowance=10_000, penalty_per_km=0.0)
    with pytest.raises(ValueError):
        upgrade_threshold(lower=free, upper=scenario.contracts[1], months=72, inputs=scenario)
