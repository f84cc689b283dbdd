from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lease_vs_buy.npv.rates import monthly_rate_from_annual

if TYPE_CHECKING:
    from lease_vs_buy.scenario.inputs import FinancingConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoanScheduleEntry:
    month: int
    payment: float
    principal: float
    interest: float
    remaining_balance: float


@dataclass(frozen=True)
class FinancingSummary:
    loan_amount: float
    down_payment: float
    term_months: int
    annual_interest_rate: float
    balloon_payment: float
    monthly_payment: float
    total_payments: float
    total_interest: float
    total_financed_cost: float
    schedule: tuple[LoanScheduleEntry, ...]

    def entry_for(self, month: int) -> LoanScheduleEntry | None:
        if 1 <= month <= len(self.schedule):
            return self.schedule[month - 1]
        return None

    def balance_after(self, month: int) -> float:
        """Outstanding balance immediately after `month` payments."""
        if not self.schedule:
            return 0.0
        if month <= 0:
            return self.loan_amount
        if month >= len(self.schedule):
            return 0.0
        return self.schedule[month - 1].remaining_balance


def monthly_payment(
    *,
    principal: float,
    annual_rate: float,
    term_months: int,
) -> float:
    """
    Fixed installment for a fully amortizing loan.

    principal: amount to amortize
    annual_rate: effective annual rate (TAE), compounded into a monthly rate
    term_months: number of monthly payments
    """
    if principal <= 0 or term_months <= 0:
        return 0.0
    if annual_rate <= 0:
        return float(principal) / term_months

    r = monthly_rate_from_annual(annual_rate)
    # PV = pmt*(1-(1+r)^-n)/r
    return float(principal) * r / (1.0 - (1.0 + r) ** (-term_months))


def build_schedule(
    *,
    loan_amount: float,
    annual_rate: float,
    term_months: int,
    balloon: float = 0.0,
) -> list[LoanScheduleEntry]:
    """
    Month-by-month amortization table.

    Installments amortize `loan_amount - balloon`; interest accrues on the whole
    outstanding balance. The final month settles whatever is left (balloon plus
    any residue), so the last `remaining_balance` is exactly 0.
    """
    if loan_amount <= 0 or term_months <= 0:
        return []

    balloon = min(max(0.0, float(balloon)), float(loan_amount))
    amortized = float(loan_amount) - balloon
    pmt = monthly_payment(principal=amortized, annual_rate=annual_rate, term_months=term_months)
    r = 0.0 if annual_rate <= 0 else monthly_rate_from_annual(annual_rate)

    schedule: list[LoanScheduleEntry] = []
    balance = float(loan_amount)
    for m in range(1, term_months + 1):
        interest = balance * r
        if m == term_months:
            principal = balance
            payment = principal + interest
        else:
            principal = pmt - interest
            payment = pmt
        schedule.append(
            LoanScheduleEntry(
                month=m,
                payment=float(payment),
                principal=float(principal),
                interest=float(interest),
                remaining_balance=float(max(0.0, balance - principal)),
            )
        )
        balance -= principal

    return schedule


def financing_summary(financing: FinancingConfig, purchase_price: float) -> FinancingSummary:
    loan_amount = financing.resolved_loan_amount(purchase_price)
    schedule = build_schedule(
        loan_amount=loan_amount,
        annual_rate=financing.annual_interest_rate,
        term_months=financing.term_months,
        balloon=financing.balloon_payment,
    )
    total_payments = sum(s.payment for s in schedule)
    total_interest = sum(s.interest for s in schedule)
    logger.debug(
        "loan schedule: amount=%.2f term=%d rate=%.4f interest=%.2f",
        loan_amount,
        financing.term_months,
        financing.annual_interest_rate,
        total_interest,
    )
    return FinancingSummary(
        loan_amount=float(loan_amount),
        down_payment=float(financing.down_payment),
        term_months=int(financing.term_months),
        annual_interest_rate=float(financing.annual_interest_rate),
        balloon_payment=float(financing.balloon_payment),
        monthly_payment=schedule[0].payment if schedule else 0.0,
        total_payments=float(total_payments),
        total_interest=float(total_interest),
        total_financed_cost=float(financing.down_payment + total_payments),
        schedule=tuple(schedule),
    )
