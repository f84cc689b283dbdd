from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

import lease_vs_buy.sensitivity.analysis as analysis
from lease_vs_buy.npv.engine import calculate
from lease_vs_buy.sensitivity.analysis import (
    MeshParams,
    SweepRange,
    break_even_frame,
    find_break_even,
    generate_mesh,
    mesh_frame,
    mesh_grid,
)

SMALL_MESH = MeshParams(months=SweepRange(12, 36, 12), km_per_year=SweepRange(10_000, 20_000, 5_000))


def test_sweep_range_values():
    assert SweepRange(12, 120, 1).month_values()[:3] == [12, 13, 14]
    assert len(SweepRange(12, 120, 1).month_values()) == 109
    assert SweepRange(0.0, 1.0, 0.1).values()[-1] == pytest.approx(1.0)
    assert SweepRange(5, 5, 1).values() == [5]


def test_sweep_range_validation():
    with pytest.raises(ValueError):
        SweepRange(12, 24, 0)
    with pytest.raises(ValueError):
        SweepRange(24, 12, 1)
    with pytest.raises(ValueError):
        SweepRange(12, 13, 0.5).month_values()
    with pytest.raises(ValueError):
        SweepRange(0, 12, 1).month_values()


def test_break_even_has_smallest_abs_difference(scenario):
    res = find_break_even(scenario)
    assert len(res.curve) == 109
    assert [p.months for p in res.curve] == list(range(12, 121))
    best = abs(res.break_even.difference)
    assert all(best <= abs(p.difference) for p in res.curve)
    assert res.break_even.years == res.break_even.months / 12


def test_break_even_points_match_direct_calculation(scenario):
    res = find_break_even(scenario, SweepRange(24, 48, 12))
    assert [p.months for p in res.curve] == [24, 36, 48]
    direct = calculate(scenario.with_horizon(36))
    p = res.curve[1]
    assert p.difference == direct.difference
    assert p.purchase_npv == direct.purchase.npv
    assert p.lease_npv == direct.optimal.npv


def test_break_even_leaves_inputs_untouched(scenario):
    before = scenario.model_dump()
    find_break_even(scenario, SweepRange(12, 60, 6))
    assert scenario.model_dump() == before
    assert scenario.months == 72


def test_mesh_is_row_major_and_matches_direct_calculation(scenario):
    cells = generate_mesh(scenario, SMALL_MESH)
    assert [(c.months, c.km_per_year) for c in cells] == [
        (12, 10_000.0),
        (12, 15_000.0),
        (12, 20_000.0),
        (24, 10_000.0),
        (24, 15_000.0),
        (24, 20_000.0),
        (36, 10_000.0),
        (36, 15_000.0),
        (36, 20_000.0),
    ]
    direct = calculate(scenario.with_horizon(24).with_annual_distance(15_000))
    cell = cells[4]
    assert direct.km_per_year == pytest.approx(15_000)
    assert cell.difference == direct.difference
    assert cell.optimal_contract_id == direct.optimal.contract.id


def test_mesh_picks_bigger_allowance_at_high_distance(scenario):
    # Steep penalty on the small allowance so the larger contract wins at high distance.
    small, big = scenario.contracts
    steep = scenario.model_copy(update={"contracts": (small.model_copy(update={"penalty_per_km": 0.1}), big)})
    params = MeshParams(months=SweepRange(72, 72, 1), km_per_year=SweepRange(6_000, 30_000, 24_000))
    cells = generate_mesh(steep, params)
    assert [c.optimal_contract_id for c in cells] == ["rent10k", "rent15k"]


def test_mesh_leaves_inputs_untouched(scenario):
    before = scenario.model_dump()
    generate_mesh(scenario)
    assert scenario.model_dump() == before


def test_mesh_inputs_untouched_when_calculation_fails(scenario, monkeypatch):
    before = scenario.model_dump()
    calls = {"n": 0}

    def flaky(inputs):
        calls["n"] += 1
        if calls["n"] == 3:
            raise RuntimeError("boom")
        return calculate(inputs)

    monkeypatch.setattr(analysis, "calculate", flaky)
    with pytest.raises(RuntimeError):
        generate_mesh(scenario, SMALL_MESH)
    with pytest.raises(RuntimeError):
        calls["n"] = 0
        find_break_even(scenario, SweepRange(12, 24, 1))
    assert scenario.model_dump() == before


def test_mesh_with_executor_matches_serial(scenario):
    serial = generate_mesh(scenario, SMALL_MESH)
    with ThreadPoolExecutor(max_workers=4) as ex:
        parallel = generate_mesh(scenario, SMALL_MESH, executor=ex)
    assert parallel == serial


def test_frames_and_grid(scenario):
    curve = find_break_even(scenario, SweepRange(12, 24, 6)).curve
    df = break_even_frame(curve)
    assert list(df.columns) == ["months", "years", "difference", "purchase_npv", "lease_npv"]
    assert len(df) == 3

    cells = generate_mesh(scenario, SMALL_MESH)
    assert len(mesh_frame(cells)) == 9
    grid = mesh_grid(cells)
    assert grid.shape == (3, 3)
    assert list(grid.index) == [10_000.0, 15_000.0, 20_000.0]
    assert list(grid.columns) == [12, 24, 36]
    assert grid.loc[15_000.0, 24] == cells[4].difference

    with pytest.raises(ValueError):
        mesh_grid(cells, value="months")
