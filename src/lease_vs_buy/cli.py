from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import asdict
from typing import Any

from lease_vs_buy.contracts.upgrade import upgrade_threshold
from lease_vs_buy.export.snapshot import build_snapshot
from lease_vs_buy.export.tables import cashflow_frame
from lease_vs_buy.npv.engine import calculate
from lease_vs_buy.scenario.defaults import default_scenario, default_scenario_dict
from lease_vs_buy.scenario.inputs import ScenarioInputs, ScenarioValidationError, load_scenario
from lease_vs_buy.sensitivity.analysis import (
    MeshParams,
    SweepRange,
    find_break_even,
    generate_mesh,
    mesh_frame,
)


def _mkdirp(path: str) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)


def _print_json(out: Any) -> None:
    print(json.dumps(out, indent=2, sort_keys=True))


def _load_inputs(args: argparse.Namespace) -> ScenarioInputs:
    try:
        inputs = load_scenario(args.scenario) if args.scenario else default_scenario()
    except FileNotFoundError as e:
        raise SystemExit(f"--scenario file not found: {e.filename}") from e
    except ScenarioValidationError as e:
        raise SystemExit(str(e)) from e
    months = getattr(args, "months", None)
    if months is not None:
        try:
            inputs = inputs.with_horizon(months)
        except ValueError as e:
            raise SystemExit(f"--months: {e}") from e
    return inputs


def _range(lo: float, hi: float, step: float, flag: str) -> SweepRange:
    try:
        return SweepRange(lo, hi, step)
    except ValueError as e:
        raise SystemExit(f"{flag}: {e}") from e


def cmd_defaults(args: argparse.Namespace) -> int:
    _print_json(default_scenario_dict())
    return 0


def cmd_calculate(args: argparse.Namespace) -> int:
    inputs = _load_inputs(args)
    result = calculate(inputs)
    out = build_snapshot(inputs, result)
    out["results"]["leases"] = [
        {
            "id": r.contract.id,
            "npv": r.npv,
            "totalNominal": r.total_nominal,
            "penalty": r.penalty,
            "excessKm": r.excess_km,
        }
        for r in result.leases
    ]
    _print_json(out)
    return 0


def cmd_break_even(args: argparse.Namespace) -> int:
    inputs = _load_inputs(args)
    search = _range(args.min_months, args.max_months, args.step, "--min-months/--max-months/--step")
    try:
        res = find_break_even(inputs, search)
    except ValueError as e:
        raise SystemExit(str(e)) from e
    out: dict[str, Any] = {"break_even": asdict(res.break_even)}
    if args.curve:
        out["curve"] = [asdict(p) for p in res.curve]
    _print_json(out)
    return 0


def cmd_mesh(args: argparse.Namespace) -> int:
    inputs = _load_inputs(args)
    params = MeshParams(
        months=_range(args.months_min, args.months_max, args.months_step, "--months-*"),
        km_per_year=_range(args.km_min, args.km_max, args.km_step, "--km-*"),
    )
    try:
        cells = generate_mesh(inputs, params)
    except ValueError as e:
        raise SystemExit(str(e)) from e
    df = mesh_frame(cells)
    _mkdirp(args.out_csv)
    df.to_csv(args.out_csv, index=False)
    _print_json({"out_csv": args.out_csv, "n_cells": int(len(df))})
    return 0


def cmd_export_csv(args: argparse.Namespace) -> int:
    inputs = _load_inputs(args)
    df = cashflow_frame(calculate(inputs))
    _mkdirp(args.out_csv)
    df.to_csv(args.out_csv, index=False)
    _print_json({"out_csv": args.out_csv, "n_rows": int(len(df)), "shape": df.attrs["shape"]})
    return 0


def cmd_upgrade_threshold(args: argparse.Namespace) -> int:
    inputs = _load_inputs(args)
    try:
        lower = inputs.contract(args.lower)
        upper = inputs.contract(args.upper)
    except KeyError as e:
        raise SystemExit(f"unknown contract id: {e.args[0]}") from e
    try:
        x_star = upgrade_threshold(lower=lower, upper=upper, months=inputs.months, inputs=inputs)
    except ValueError as e:
        raise SystemExit(str(e)) from e
    _print_json(
        {
            "lower": lower.id,
            "upper": upper.id,
            "months": inputs.months,
            "excess_km_per_year_threshold": x_star,
        }
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lease-vs-buy")
    p.add_argument("--scenario", default=None, help="Scenario JSON file (defaults to the built-in scenario).")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="cmd", required=True)

    d = sub.add_parser("defaults", help="Print the built-in scenario as JSON.")
    d.set_defaults(func=cmd_defaults)

    c = sub.add_parser("calculate", help="NPV comparison of buying vs every lease contract.")
    c.add_argument("--months", type=int, default=None, help="Override the scenario horizon.")
    c.set_defaults(func=cmd_calculate)

    b = sub.add_parser("break-even", help="Horizon where purchase and best lease NPVs are closest.")
    b.add_argument("--min-months", type=int, default=12)
    b.add_argument("--max-months", type=int, default=120)
    b.add_argument("--step", type=int, default=1)
    b.add_argument("--curve", action="store_true", default=False, help="Include every sampled horizon.")
    b.set_defaults(func=cmd_break_even)

    m = sub.add_parser("mesh", help="Horizon x km/year grid of NPV differences, written as CSV.")
    m.add_argument("--months-min", type=int, default=12)
    m.add_argument("--months-max", type=int, default=120)
    m.add_argument("--months-step", type=int, default=6)
    m.add_argument("--km-min", type=float, default=6000.0)
    m.add_argument("--km-max", type=float, default=30000.0)
    m.add_argument("--km-step", type=float, default=2000.0)
    m.add_argument("--out-csv", required=True)
    m.set_defaults(func=cmd_mesh)

    e = sub.add_parser("export-csv", help="Month-by-month cash flows of purchase and best lease.")
    e.add_argument("--months", type=int, default=None)
    e.add_argument("--out-csv", required=True)
    e.set_defaults(func=cmd_export_csv)

    u = sub.add_parser("upgrade-threshold", help="Excess km/year above which the bigger allowance pays off.")
    u.add_argument("--lower", required=True, help="Contract id with the smaller allowance.")
    u.add_argument("--upper", required=True, help="Contract id with the larger allowance.")
    u.add_argument("--months", type=int, default=None)
    u.set_defaults(func=cmd_upgrade_threshold)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
