from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import pandas as pd

from lease_vs_buy.npv.cashflows import CashFlowEntry
from lease_vs_buy.npv.engine import ComparisonResult


class TableShape(str, Enum):
    WITH_FINANCING = "with_financing"
    WITHOUT_FINANCING = "without_financing"


PURCHASE_COLUMNS = ("month", "purchase_nominal", "purchase_fuel", "purchase_maintenance", "purchase_residual")
LOAN_COLUMNS = ("loan_payment", "loan_principal", "loan_interest")
LEASE_COLUMNS = ("lease_nominal", "lease_fee", "lease_fuel", "lease_penalty")

COLUMNS = {
    TableShape.WITHOUT_FINANCING: PURCHASE_COLUMNS + LEASE_COLUMNS,
    TableShape.WITH_FINANCING: PURCHASE_COLUMNS + LOAN_COLUMNS + LEASE_COLUMNS,
}


@dataclass(frozen=True)
class CashFlowTable:
    shape: TableShape
    columns: tuple[str, ...]
    rows: tuple[tuple[float | None, ...], ...]


def _v(x: float | None) -> float:
    return 0.0 if x is None else float(x)


def _purchase_cells(cf: CashFlowEntry, shape: TableShape) -> tuple[float, ...]:
    cells = (cf.amount, _v(cf.fuel), _v(cf.maintenance), _v(cf.residual))
    if shape is TableShape.WITH_FINANCING:
        cells += (_v(cf.loan_payment), _v(cf.loan_principal), _v(cf.loan_interest))
    return cells


def _lease_cells(cf: CashFlowEntry | None) -> tuple[float | None, ...]:
    if cf is None:
        return (None,) * len(LEASE_COLUMNS)
    return (cf.amount, _v(cf.rent_fee), _v(cf.fuel), _v(cf.penalty))


def build_cashflow_table(result: ComparisonResult) -> CashFlowTable:
    """
    One row per month: purchase flows next to the optimal lease's flows.

    The shape is fixed by whether the purchase is financed. Month 0 has no
    lease flow, so its lease cells are None.
    """
    shape = TableShape.WITHOUT_FINANCING if result.purchase.financing is None else TableShape.WITH_FINANCING
    lease_by_month = {cf.month: cf for cf in result.optimal.cash_flows}

    rows = []
    for cf in result.purchase.cash_flows:
        rows.append((cf.month,) + _purchase_cells(cf, shape) + _lease_cells(lease_by_month.get(cf.month)))
    return CashFlowTable(shape=shape, columns=COLUMNS[shape], rows=tuple(rows))


def cashflow_frame(result: ComparisonResult) -> pd.DataFrame:
    table = build_cashflow_table(result)
    df = pd.DataFrame(list(table.rows), columns=list(table.columns))
    df["month"] = df["month"].astype(int)
    df.attrs["shape"] = table.shape.value
    return df


def cashflow_csv(result: ComparisonResult) -> str:
    return cashflow_frame(result).to_csv(index=False)
