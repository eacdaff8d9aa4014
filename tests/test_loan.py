from __future__ import annotations

from dataclasses import replace

import pytest

from carcost.financing.loan import (
    FinancingScenario,
    PaymentFrequency,
    amortization_schedule,
    calculate_scenario,
    number_of_payments,
    periodic_payment,
)
from carcost.pricing.scenario import DealershipFees, price_scenario

DEFAULT_FEES = DealershipFees(freight_pdi=1800, air_conditioning_tax=100, tire_levy=15, dealer_fee=500)
ON_TAX = 0.13
STD = FinancingScenario(interest_rate=6.99, loan_term_months=72)


def test_price_scenario_fees_and_tax():
    p = price_scenario(35_000, DEFAULT_FEES, ON_TAX, other_fees=-250)
    assert p.total_fees == 2415
    assert p.subtotal == 37415
    assert abs(p.tax_amount - 4863.95) < 0.005
    assert abs(p.total_with_tax - 42278.95) < 0.005
    assert p.other_fees == -250


def test_standard_ontario_scenario():
    r = calculate_scenario(35_000, DEFAULT_FEES, STD, ON_TAX)
    assert r.total_fees == 2415
    assert r.subtotal == 37415
    assert abs(r.tax_amount - 4863.95) < 0.005
    assert abs(r.total_with_tax - 42278.95) < 0.005
    assert abs(r.amount_financed - 42278.95) < 0.005
    assert r.number_of_payments == 72
    assert abs(r.periodic_payment - 720.61) < 0.005
    assert abs(r.total_interest - 9605.05) < 0.005
    assert abs(r.total_cost - 51884.0) < 0.5


@pytest.mark.parametrize(
    "freq, n, pmt",
    [
        (PaymentFrequency.BIWEEKLY, 156, 332.17),
        (PaymentFrequency.SEMIMONTHLY, 144, 359.88),
        (PaymentFrequency.WEEKLY, 312, 166.0),
    ],
)
def test_payment_frequencies(freq, n, pmt):
    r = calculate_scenario(35_000, DEFAULT_FEES, replace(STD, payment_frequency=freq), ON_TAX)
    assert r.number_of_payments == n
    assert abs(r.periodic_payment - pmt) < 0.05


def test_frequency_accepts_plain_strings():
    assert number_of_payments(72, "biweekly") == 156
    assert PaymentFrequency("semimonthly").periods_per_year == 24


def test_number_of_payments_rounds_half_up():
    # 3 months biweekly is 6.5 periods
    assert number_of_payments(3, PaymentFrequency.BIWEEKLY) == 7


def test_zero_rate_is_straight_line():
    r = calculate_scenario(35_000, DEFAULT_FEES, replace(STD, interest_rate=0.0), ON_TAX)
    assert abs(r.periodic_payment - r.amount_financed / r.number_of_payments) < 1e-9
    assert abs(r.periodic_payment - 587.21) < 0.005
    assert abs(r.total_interest) < 1e-6


def test_partial_down_payment():
    r = calculate_scenario(35_000, DEFAULT_FEES, replace(STD, down_payment=10_000), ON_TAX)
    assert abs(r.amount_financed - 32278.95) < 0.005
    assert abs(r.periodic_payment - 550.17) < 0.005
    assert abs(r.total_interest - 7333.22) < 0.01
    assert abs(r.total_cost - 49612.17) < 0.05


def test_overpayment_is_preserved_in_total_cost():
    r = calculate_scenario(35_000, DEFAULT_FEES, replace(STD, down_payment=50_000), ON_TAX)
    assert r.amount_financed == 0
    assert r.periodic_payment == 0
    assert r.total_of_payments == 0
    assert r.total_interest == 0
    assert r.total_cost == 50_000


def test_down_payment_equal_to_total_finances_nothing():
    total = price_scenario(35_000, DEFAULT_FEES, ON_TAX).total_with_tax
    r = calculate_scenario(35_000, DEFAULT_FEES, replace(STD, down_payment=total), ON_TAX)
    assert r.amount_financed == 0
    assert r.periodic_payment == 0
    assert abs(r.total_cost - total) < 1e-9


def test_pay_in_full_ignores_stored_down_payment():
    r = calculate_scenario(35_000, DEFAULT_FEES, replace(STD, pay_in_full=True, down_payment=1_000), ON_TAX, 500)
    assert r.amount_financed == 0
    assert r.periodic_payment == 0
    assert r.total_interest == 0
    assert abs(r.effective_down_payment - 42778.95) < 0.005
    assert abs(r.total_cost - (r.total_with_tax + r.other_fees)) < 1e-9


@pytest.mark.parametrize("other_fees, pmt", [(500, 729.13), (-2000, 686.52)])
def test_other_fees_adjust_financed_amount(other_fees, pmt):
    r = calculate_scenario(35_000, DEFAULT_FEES, STD, ON_TAX, other_fees)
    assert r.other_fees == other_fees
    assert abs(r.amount_financed - (42278.95 + other_fees)) < 0.005
    assert abs(r.periodic_payment - pmt) < 0.005


def test_matches_published_loan_payment():
    # $30k at 6.89% over 60 months
    r = calculate_scenario(
        30_000,
        DealershipFees(),
        FinancingScenario(interest_rate=6.89, loan_term_months=60),
        0.0,
    )
    assert r.amount_financed == 30_000
    assert r.number_of_payments == 60
    assert abs(r.periodic_payment - 592.48) < 0.005
    assert abs(r.total_interest - 5548.81) < 0.05


def test_periodic_payment_guards():
    assert periodic_payment(principal=0, annual_rate_pct=5, num_payments=12, frequency="monthly") == 0
    assert periodic_payment(principal=1000, annual_rate_pct=5, num_payments=0, frequency="monthly") == 0


def test_amortization_schedule_retires_the_loan():
    r = calculate_scenario(35_000, DEFAULT_FEES, STD, ON_TAX)
    df = amortization_schedule(
        principal=r.amount_financed,
        annual_rate_pct=STD.interest_rate,
        num_payments=r.number_of_payments,
        frequency=STD.payment_frequency,
    )
    assert len(df) == 72
    assert df["balance"].iloc[-1] == 0
    assert df["principal"].sum() == pytest.approx(r.amount_financed, rel=1e-9)
    assert df["interest"].sum() == pytest.approx(r.total_interest, abs=0.01)
    assert (df["balance"].diff().dropna() < 0).all()


def test_amortization_schedule_empty_when_nothing_financed():
    df = amortization_schedule(principal=0.0, annual_rate_pct=5.0, num_payments=60, frequency="monthly")
    assert df.empty
    assert list(df.columns) == ["payment_number", "payment", "principal", "interest", "balance"]
