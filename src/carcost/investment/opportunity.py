from __future__ import annotations

from carcost.financing.loan import PaymentFrequency, periodic_rate_from_annual_pct


def investment_gain(
    *,
    amount_financed: float,
    periodic_payment: float,
    num_payments: int,
    annual_return_pct: float,
    frequency: PaymentFrequency,
    cash_on_hand: float,
) -> float:
    """
    Net return from keeping cash invested instead of putting it down on the car.

    Only cash that could actually have replaced financing is invested:
    min(cash_on_hand, amount_financed). The loan payments are withdrawn from
    the invested pot in proportion to that share of the loan, so the result is

        FV(invested lump sum) - FV(annuity of proportional payments)

    compounded at the investment return per payment period.
    """
    if amount_financed <= 0 or num_payments <= 0 or annual_return_pct <= 0 or cash_on_hand <= 0:
        return 0.0

    invested = min(float(cash_on_hand), float(amount_financed))
    proportional_payment = periodic_payment * (invested / amount_financed)

    r = periodic_rate_from_annual_pct(annual_return_pct, frequency)
    cf = (1.0 + r) ** num_payments
    return float(invested * cf - proportional_payment * (cf - 1.0) / r)
