"""
Horizon and distance sweeps over the comparison engine.

Each iteration works on a derived copy of the scenario (`with_horizon`,
`with_annual_distance`), so the caller's inputs are never touched and mesh
cells can be evaluated in any order, including through an executor.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import asdict, dataclass, field
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from lease_vs_buy.npv.engine import calculate
from lease_vs_buy.scenario.inputs import ScenarioInputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepRange:
    min: float
    max: float
    step: float

    def __post_init__(self) -> None:
        if self.step <= 0:
            raise ValueError("step must be > 0")
        if self.min > self.max:
            raise ValueError("min must be <= max")

    def values(self) -> list[float]:
        # Index-based so float steps do not accumulate drift.
        n = int(np.floor((self.max - self.min) / self.step + 1e-9)) + 1
        return [self.min + i * self.step for i in range(n)]

    def month_values(self) -> list[int]:
        vals = self.values()
        if any(v != int(v) for v in vals) or vals[0] <= 0:
            raise ValueError("month ranges must be positive whole numbers")
        return [int(v) for v in vals]


@dataclass(frozen=True)
class BreakEvenPoint:
    months: int
    years: float
    difference: float
    purchase_npv: float
    lease_npv: float


@dataclass(frozen=True)
class BreakEvenResult:
    break_even: BreakEvenPoint
    curve: tuple[BreakEvenPoint, ...]


@dataclass(frozen=True)
class MeshParams:
    months: SweepRange = field(default_factory=lambda: SweepRange(12, 120, 6))
    km_per_year: SweepRange = field(default_factory=lambda: SweepRange(6000, 30000, 2000))


@dataclass(frozen=True)
class MeshCell:
    months: int
    years: float
    km_per_year: float
    difference: float
    purchase_npv: float
    lease_npv: float
    optimal_contract_id: str


DEFAULT_BREAK_EVEN_RANGE = SweepRange(12, 120, 1)


def find_break_even(
    inputs: ScenarioInputs,
    search: SweepRange = DEFAULT_BREAK_EVEN_RANGE,
) -> BreakEvenResult:
    """
    Horizon at which the purchase and optimal-lease NPVs are closest.

    Smallest horizon wins among equal |difference| values.
    """
    curve: list[BreakEvenPoint] = []
    for months in search.month_values():
        result = calculate(inputs.with_horizon(months))
        curve.append(
            BreakEvenPoint(
                months=months,
                years=months / 12.0,
                difference=result.difference,
                purchase_npv=result.purchase.npv,
                lease_npv=result.optimal.npv,
            )
        )

    best = curve[0]
    for point in curve[1:]:
        if abs(point.difference) < abs(best.difference):
            best = point
    logger.debug("break-even: %d months (|diff|=%.2f) over %d horizons", best.months, abs(best.difference), len(curve))
    return BreakEvenResult(break_even=best, curve=tuple(curve))


def _mesh_cell(inputs: ScenarioInputs, months: int, km_per_year: float) -> MeshCell:
    result = calculate(inputs.with_horizon(months).with_annual_distance(km_per_year))
    return MeshCell(
        months=months,
        years=months / 12.0,
        km_per_year=float(km_per_year),
        difference=result.difference,
        purchase_npv=result.purchase.npv,
        lease_npv=result.optimal.npv,
        optimal_contract_id=result.optimal.contract.id,
    )


def generate_mesh(
    inputs: ScenarioInputs,
    params: MeshParams | None = None,
    *,
    executor: Executor | None = None,
) -> list[MeshCell]:
    """
    Horizon x annual-distance grid, months outer and km inner.

    With an `executor`, cells are evaluated through `executor.map`; the result
    order is the same as the serial run.
    """
    params = params or MeshParams()
    pairs = [(m, km) for m in params.months.month_values() for km in params.km_per_year.values()]
    months_col = [m for m, _ in pairs]
    km_col = [km for _, km in pairs]

    if executor is None:
        cells = [_mesh_cell(inputs, m, km) for m, km in pairs]
    else:
        cells = list(executor.map(_mesh_cell, [inputs] * len(pairs), months_col, km_col))
    logger.debug("mesh: %d cells", len(cells))
    return cells


def break_even_frame(curve: Iterable[BreakEvenPoint]) -> pd.DataFrame:
    return pd.DataFrame([asdict(p) for p in curve], columns=list(BreakEvenPoint.__dataclass_fields__))


def mesh_frame(cells: Iterable[MeshCell]) -> pd.DataFrame:
    return pd.DataFrame([asdict(c) for c in cells], columns=list(MeshCell.__dataclass_fields__))


def mesh_grid(cells: Sequence[MeshCell], value: str = "difference") -> pd.DataFrame:
    """Heatmap layout: one row per km/year, one column per horizon (months)."""
    if value not in MeshCell.__dataclass_fields__ or value in ("months", "km_per_year"):
        raise ValueError(f"unknown mesh value '{value}'")
    df = mesh_frame(cells)
    grid = df.pivot(index="km_per_year", columns="months", values=value)
    return grid.sort_index().sort_index(axis=1)
