from __future__ import annotations

import pytest

from carcost.financing.loan import FinancingScenario, calculate_scenario
from carcost.investment.opportunity import investment_gain
from carcost.lifetime.projection import (
    FuelInputs,
    calculate_lifetime_cost,
    lifetime_cost_range,
    ownership_horizon,
)
from carcost.pricing.scenario import DealershipFees

DEFAULT_FEES = DealershipFees(freight_pdi=1800, air_conditioning_tax=100, tire_levy=15, dealer_fee=500)
FUEL = FuelInputs(fuel_consumption=8.5, fuel_price_per_litre=1.65)
YEAR = 2026


def _std():
    return calculate_scenario(35_000, DEFAULT_FEES, FinancingScenario(interest_rate=6.99, loan_term_months=72), 0.13)


def _lifetime(result=None, **kw):
    args = dict(
        annual_km=15_000,
        max_car_age=15,
        mileage_cap=300_000,
        vehicle_year=2026,
        initial_mileage=0,
        include_fuel=True,
        investment_return=0.0,
        cash_on_hand=0.0,
        insurance_cost_per_year=0.0,
    )
    args.update(kw)
    return calculate_lifetime_cost(
        result or _std(),
        FUEL,
        args["annual_km"],
        args["max_car_age"],
        args["mileage_cap"],
        args["vehicle_year"],
        args["initial_mileage"],
        args["include_fuel"],
        args["investment_return"],
        "monthly",
        args["cash_on_hand"],
        args["insurance_cost_per_year"],
        current_year=YEAR,
    )


def test_new_car_is_limited_by_age():
    lt = _lifetime()
    assert lt.effective_years == 15
    assert lt.limited_by == "years"
    assert abs(lt.annual_fuel_cost - 2103.75) < 1e-6
    assert abs(lt.total_fuel_cost - 31556.25) < 1e-6
    assert lt.investment_gain == 0
    assert abs(lt.cost_per_year - 5562.68) < 0.05
    assert abs(lt.cost_per_month - 463.56) < 0.05


def test_used_car_is_limited_by_mileage():
    lt = _lifetime(annual_km=20_000, mileage_cap=200_000, vehicle_year=2020, initial_mileage=120_000)
    assert lt.effective_years == 4
    assert lt.limited_by == "mileage"
    assert abs(lt.annual_fuel_cost - 2805.0) < 1e-6
    assert abs(lt.total_fuel_cost - 11220.0) < 1e-6
    assert abs(lt.cost_per_year - 15776.0) < 0.5
    assert abs(lt.cost_per_month - 1314.67) < 0.05


def test_tie_between_limits_is_attributed_to_mileage():
    # 15 years left either way
    lt = _lifetime(annual_km=20_000)
    assert lt.effective_years == 15
    assert lt.limited_by == "mileage"


def test_fuel_excluded():
    lt = _lifetime(include_fuel=False)
    assert lt.annual_fuel_cost == 0
    assert lt.total_fuel_cost == 0
    assert abs(lt.cost_per_year - 3458.93) < 0.05


def test_zero_distance_never_binds_on_mileage():
    lt = _lifetime(annual_km=0)
    assert lt.effective_years == 15
    assert lt.limited_by == "years"
    assert lt.annual_fuel_cost == 0


def test_insurance_accumulates_over_horizon():
    lt = _lifetime(insurance_cost_per_year=1_800)
    base = _lifetime()
    assert lt.annual_insurance_cost == 1_800
    assert lt.total_insurance_cost == 1_800 * 15
    assert lt.lifetime_total_cost == pytest.approx(base.lifetime_total_cost + 27_000)


def test_investment_gain_is_subtracted():
    r = _std()
    lt = _lifetime(r, investment_return=10.0, cash_on_hand=r.amount_financed)
    gain = investment_gain(
        amount_financed=r.amount_financed,
        periodic_payment=r.periodic_payment,
        num_payments=r.number_of_payments,
        annual_return_pct=10.0,
        frequency="monthly",
        cash_on_hand=r.amount_financed,
    )
    assert gain > 0
    assert lt.investment_gain == gain
    assert lt.lifetime_total_cost == pytest.approx(r.total_cost + lt.total_fuel_cost - gain)
    assert lt.cost_per_year == pytest.approx(lt.lifetime_total_cost / 15)


def test_car_past_max_age_has_zero_rates():
    lt = _lifetime(vehicle_year=2010)
    assert lt.effective_years == 0
    assert lt.cost_per_year == 0
    assert lt.cost_per_month == 0
    assert lt.total_fuel_cost == 0
    assert lt.lifetime_total_cost == pytest.approx(_std().total_cost)


def test_mileage_already_past_cap():
    years, limited_by = ownership_horizon(
        annual_km=15_000,
        max_car_age=15,
        mileage_cap=200_000,
        vehicle_year=2020,
        initial_mileage=250_000,
        current_year=YEAR,
    )
    assert years == 0
    assert limited_by == "mileage"


def test_range_brackets_the_base_estimate():
    low, base, high = lifetime_cost_range(
        _std(),
        FUEL,
        15_000,
        15,
        300_000,
        2026,
        0,
        True,
        0.0,
        "monthly",
        0.0,
        current_year=YEAR,
    )
    assert base == _lifetime()
    assert low.annual_fuel_cost == pytest.approx(base.annual_fuel_cost * 0.8)
    assert high.annual_fuel_cost == pytest.approx(base.annual_fuel_cost * 1.2)
    assert low.cost_per_month < base.cost_per_month < high.cost_per_month
