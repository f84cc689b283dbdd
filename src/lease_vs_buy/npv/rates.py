from __future__ import annotations


def monthly_rate_from_annual(annual_rate: float) -> float:
    # Effective annual rate -> effective monthly
    return (1.0 + annual_rate) ** (1.0 / 12.0) - 1.0


def discount_factor(monthly_rate: float, month: int) -> float:
    """Multiplier that brings a month-`month` amount back to month 0."""
    return 1.0 / ((1.0 + monthly_rate) ** month)


def growth_factor(monthly_rate: float, month: int) -> float:
    # Month 1 is priced at today's level.
    return (1.0 + monthly_rate) ** (month - 1)
