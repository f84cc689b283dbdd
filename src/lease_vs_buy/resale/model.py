from __future__ import annotations

from typing import Iterable

from lease_vs_buy.scenario.inputs import ResidualAnchor


def interpolate_residual(years: float, anchors: Iterable[ResidualAnchor]) -> float:
    """
    Residual-value fraction after `years`, piecewise-linear between anchors.

    Clamped to the first/last anchor outside their span. Anchors sharing a year
    resolve to the earlier one (stable sort order), including at either end.
    """
    ordered = sorted(anchors, key=lambda a: a.year)
    if not ordered:
        raise ValueError("anchors must contain at least one entry")

    if years <= ordered[0].year:
        return float(ordered[0].fraction)
    if years >= ordered[-1].year:
        top = next(a for a in ordered if a.year == ordered[-1].year)
        return float(top.fraction)

    for lo, hi in zip(ordered, ordered[1:]):
        if lo.year <= years <= hi.year:
            width = hi.year - lo.year
            if width == 0:
                return float(lo.fraction)
            return float(lo.fraction + (hi.fraction - lo.fraction) * (years - lo.year) / width)

    return float(ordered[0].fraction)


def residual_value(purchase_price: float, years: float, anchors: Iterable[ResidualAnchor]) -> float:
    return float(purchase_price) * interpolate_residual(years, anchors)
