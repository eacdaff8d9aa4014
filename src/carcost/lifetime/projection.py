from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Literal

from carcost.financing.loan import CalculationResult, PaymentFrequency
from carcost.investment.opportunity import investment_gain

# Distance band used for the low/high lifetime estimate.
DISTANCE_SPREAD = 0.2


@dataclass(frozen=True)
class FuelInputs:
    fuel_consumption: float = 0.0  # L/100km
    fuel_price_per_litre: float = 0.0


@dataclass(frozen=True)
class LifetimeCostResult:
    effective_years: float
    limited_by: Literal["years", "mileage"]
    annual_fuel_cost: float
    total_fuel_cost: float
    annual_insurance_cost: float
    total_insurance_cost: float
    total_financing_cost: float
    investment_gain: float
    lifetime_total_cost: float
    cost_per_year: float
    cost_per_month: float


def ownership_horizon(
    *,
    annual_km: float,
    max_car_age: float,
    mileage_cap: float,
    vehicle_year: int,
    initial_mileage: float,
    current_year: int,
) -> tuple[float, Literal["years", "mileage"]]:
    """
    Years of use left before either the age limit or the mileage cap is hit.
    Ties go to mileage. With no annual distance the mileage limit never binds.
    """
    current_age = current_year - vehicle_year
    remaining_years = max(0.0, float(max_car_age - current_age))

    remaining_km = max(0.0, float(mileage_cap - initial_mileage))
    mileage_years = remaining_km / annual_km if annual_km > 0 else math.inf

    effective = min(remaining_years, mileage_years)
    limited_by: Literal["years", "mileage"] = "mileage" if mileage_years <= remaining_years else "years"
    return float(effective), limited_by


def calculate_lifetime_cost(
    result: CalculationResult,
    fuel: FuelInputs,
    annual_km: float,
    max_car_age: float,
    mileage_cap: float,
    vehicle_year: int,
    initial_mileage: float,
    include_fuel: bool,
    investment_return: float,
    frequency: PaymentFrequency,
    cash_on_hand: float,
    insurance_cost_per_year: float = 0.0,
    *,
    current_year: int | None = None,
) -> LifetimeCostResult:
    """
    Spread the full cost of a financing scenario over the car's remaining useful life.

    investment_return: annual percent earned on cash kept out of the purchase
    current_year: defaults to today's calendar year
    """
    if current_year is None:
        current_year = dt.date.today().year

    years, limited_by = ownership_horizon(
        annual_km=annual_km,
        max_car_age=max_car_age,
        mileage_cap=mileage_cap,
        vehicle_year=vehicle_year,
        initial_mileage=initial_mileage,
        current_year=current_year,
    )

    annual_fuel = (annual_km / 100.0) * fuel.fuel_consumption * fuel.fuel_price_per_litre if include_fuel else 0.0
    total_fuel = annual_fuel * years
    total_insurance = insurance_cost_per_year * years

    gain = investment_gain(
        amount_financed=result.amount_financed,
        periodic_payment=result.periodic_payment,
        num_payments=result.number_of_payments,
        annual_return_pct=investment_return,
        frequency=frequency,
        cash_on_hand=cash_on_hand,
    )

    lifetime_total = result.total_cost + total_fuel + total_insurance - gain
    # A car with no remaining life has nothing to amortize over.
    per_year = lifetime_total / years if years > 0 else 0.0

    return LifetimeCostResult(
        effective_years=years,
        limited_by=limited_by,
        annual_fuel_cost=float(annual_fuel),
        total_fuel_cost=float(total_fuel),
        annual_insurance_cost=float(insurance_cost_per_year),
        total_insurance_cost=float(total_insurance),
        total_financing_cost=float(result.total_cost),
        investment_gain=float(gain),
        lifetime_total_cost=float(lifetime_total),
        cost_per_year=float(per_year),
        cost_per_month=float(per_year / 12.0),
    )


def lifetime_cost_range(
    result: CalculationResult,
    fuel: FuelInputs,
    annual_km: float,
    max_car_age: float,
    mileage_cap: float,
    vehicle_year: int,
    initial_mileage: float,
    include_fuel: bool,
    investment_return: float,
    frequency: PaymentFrequency,
    cash_on_hand: float,
    insurance_cost_per_year: float = 0.0,
    *,
    current_year: int | None = None,
) -> tuple[LifetimeCostResult, LifetimeCostResult, LifetimeCostResult]:
    """(low, base, high) projections at 80% / 100% / 120% of the annual distance."""

    def at(km: float) -> LifetimeCostResult:
        return calculate_lifetime_cost(
            result,
            fuel,
            km,
            max_car_age,
            mileage_cap,
            vehicle_year,
            initial_mileage,
            include_fuel,
            investment_return,
            frequency,
            cash_on_hand,
            insurance_cost_per_year,
            current_year=current_year,
        )

    return (
        at(annual_km * (1.0 - DISTANCE_SPREAD)),
        at(annual_km),
        at(annual_km * (1.0 + DISTANCE_SPREAD)),
    )
