from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

import pandas as pd

from carcost.pricing.scenario import DealershipFees, price_scenario


class PaymentFrequency(str, Enum):
    MONTHLY = "monthly"
    BIWEEKLY = "biweekly"
    SEMIMONTHLY = "semimonthly"
    WEEKLY = "weekly"

    @property
    def periods_per_year(self) -> int:
        return PERIODS_PER_YEAR[self]


PERIODS_PER_YEAR: dict[PaymentFrequency, int] = {
    PaymentFrequency.MONTHLY: 12,
    PaymentFrequency.BIWEEKLY: 26,
    PaymentFrequency.SEMIMONTHLY: 24,
    PaymentFrequency.WEEKLY: 52,
}


@dataclass(frozen=True)
class FinancingScenario:
    interest_rate: float  # annual percent, e.g. 6.99
    loan_term_months: int
    down_payment: float = 0.0
    pay_in_full: bool = False
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    label: str = ""


@dataclass(frozen=True)
class CalculationResult:
    total_fees: float
    subtotal: float
    tax_rate: float
    tax_amount: float
    total_with_tax: float
    other_fees: float
    effective_down_payment: float
    amount_financed: float
    periodic_payment: float
    number_of_payments: int
    total_of_payments: float
    total_interest: float
    total_cost: float


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def periodic_rate_from_annual_pct(annual_rate_pct: float, frequency: PaymentFrequency) -> float:
    # Nominal annual percent split evenly across payment periods.
    return annual_rate_pct / 100.0 / PaymentFrequency(frequency).periods_per_year


def number_of_payments(term_months: int, frequency: PaymentFrequency) -> int:
    ppy = PaymentFrequency(frequency).periods_per_year
    return _round_half_up((term_months / 12.0) * ppy)


def periodic_payment(
    *,
    principal: float,
    annual_rate_pct: float,
    num_payments: int,
    frequency: PaymentFrequency,
) -> float:
    """
    Level payment that retires `principal` over `num_payments` periods.

    Returns 0 when there is nothing to finance or no payments to make.
    """
    if principal <= 0 or num_payments <= 0:
        return 0.0

    r = periodic_rate_from_annual_pct(annual_rate_pct, frequency)
    n = num_payments
    pv = float(principal)

    if r == 0:
        return pv / n

    cf = (1.0 + r) ** n
    return float(pv * r * cf / (cf - 1.0))


def calculate_scenario(
    price: float,
    fees: DealershipFees,
    scenario: FinancingScenario,
    tax_rate: float,
    other_fees: float = 0.0,
) -> CalculationResult:
    pricing = price_scenario(price, fees, tax_rate, other_fees)
    amount_due = pricing.total_with_tax + pricing.other_fees

    # Paying in full covers the post-tax amount regardless of the stored down payment.
    down = amount_due if scenario.pay_in_full else float(scenario.down_payment)
    financed = max(0.0, amount_due - down)

    n = number_of_payments(scenario.loan_term_months, scenario.payment_frequency)
    pmt = periodic_payment(
        principal=financed,
        annual_rate_pct=scenario.interest_rate,
        num_payments=n,
        frequency=scenario.payment_frequency,
    )
    total_of_payments = pmt * n

    return CalculationResult(
        total_fees=pricing.total_fees,
        subtotal=pricing.subtotal,
        tax_rate=pricing.tax_rate,
        tax_amount=pricing.tax_amount,
        total_with_tax=pricing.total_with_tax,
        other_fees=pricing.other_fees,
        effective_down_payment=float(down),
        amount_financed=float(financed),
        periodic_payment=float(pmt),
        number_of_payments=int(n),
        total_of_payments=float(total_of_payments),
        total_interest=float(total_of_payments - financed),
        total_cost=float(down + total_of_payments),
    )


def amortization_schedule(
    *,
    principal: float,
    annual_rate_pct: float,
    num_payments: int,
    frequency: PaymentFrequency,
) -> pd.DataFrame:
    """
    Period-by-period split of each payment into interest and principal.
    The final row absorbs floating point drift so the balance ends at exactly 0.
    """
    columns = ["payment_number", "payment", "principal", "interest", "balance"]
    if principal <= 0 or num_payments <= 0:
        return pd.DataFrame(columns=columns)

    r = periodic_rate_from_annual_pct(annual_rate_pct, frequency)
    pmt = periodic_payment(
        principal=principal,
        annual_rate_pct=annual_rate_pct,
        num_payments=num_payments,
        frequency=frequency,
    )

    rows = []
    bal = float(principal)
    for k in range(1, num_payments + 1):
        interest = bal * r
        if k == num_payments:
            paid_principal = bal
            payment = paid_principal + interest
            bal = 0.0
        else:
            paid_principal = pmt - interest
            payment = pmt
            bal = max(0.0, bal - paid_principal)
        rows.append((k, payment, paid_principal, interest, bal))

    return pd.DataFrame(rows, columns=columns)
