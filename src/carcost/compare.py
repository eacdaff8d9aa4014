from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from carcost.financing.loan import CalculationResult, calculate_scenario
from carcost.lifetime.projection import LifetimeCostResult, calculate_lifetime_cost, lifetime_cost_range
from carcost.optimize.down_payment import DownPaymentSolution, optimize_down_payment
from carcost.settings.model import AppState, Car, ScenarioSettings, Settings, resolve_settings


@dataclass(frozen=True)
class ScenarioEvaluation:
    car_label: str
    scenario_label: str
    financing: CalculationResult
    lifetime: LifetimeCostResult


def evaluate_scenario(
    car: Car,
    scenario: ScenarioSettings,
    settings: Settings,
    *,
    current_year: int | None = None,
) -> ScenarioEvaluation:
    s = resolve_settings(settings, car.overrides)
    sc = scenario.to_scenario()
    financing = calculate_scenario(car.price, s.fees.to_fees(), sc, s.tax_rate, car.other_fees)
    lifetime = calculate_lifetime_cost(
        financing,
        car.fuel_inputs.to_fuel(),
        s.annual_km,
        s.max_car_age,
        s.mileage_cap,
        car.vehicle_year,
        car.initial_mileage,
        s.include_fuel,
        s.investment_return,
        sc.payment_frequency,
        s.cash_on_hand,
        car.insurance_cost_per_year,
        current_year=current_year,
    )
    return ScenarioEvaluation(car.label, scenario.label, financing, lifetime)


def lifetime_range_for(
    car: Car,
    scenario: ScenarioSettings,
    settings: Settings,
    *,
    current_year: int | None = None,
) -> tuple[LifetimeCostResult, LifetimeCostResult, LifetimeCostResult]:
    s = resolve_settings(settings, car.overrides)
    sc = scenario.to_scenario()
    financing = calculate_scenario(car.price, s.fees.to_fees(), sc, s.tax_rate, car.other_fees)
    return lifetime_cost_range(
        financing,
        car.fuel_inputs.to_fuel(),
        s.annual_km,
        s.max_car_age,
        s.mileage_cap,
        car.vehicle_year,
        car.initial_mileage,
        s.include_fuel,
        s.investment_return,
        sc.payment_frequency,
        s.cash_on_hand,
        car.insurance_cost_per_year,
        current_year=current_year,
    )


def optimize_car(
    car: Car,
    settings: Settings,
    *,
    scenario_index: int | None = None,
    objective: str = "min_lifetime_cost",
    tol: float = 1.0,
    current_year: int | None = None,
) -> DownPaymentSolution:
    s = resolve_settings(settings, car.overrides)
    idx = car.active_scenario_index if scenario_index is None else scenario_index
    return optimize_down_payment(
        car.price,
        s.fees.to_fees(),
        car.scenarios[idx].to_scenario(),
        s.tax_rate,
        car.other_fees,
        car.fuel_inputs.to_fuel(),
        s.annual_km,
        s.max_car_age,
        s.mileage_cap,
        car.vehicle_year,
        car.initial_mileage,
        s.include_fuel,
        s.investment_return,
        s.cash_on_hand,
        car.insurance_cost_per_year,
        objective=objective,
        tol=tol,
        current_year=current_year,
    )


def compare_cars(state: AppState, *, current_year: int | None = None) -> pd.DataFrame:
    """One row per (car, scenario), in the order they appear in the state."""
    rows = []
    for car in state.cars:
        for scenario in car.scenarios:
            ev = evaluate_scenario(car, scenario, state.settings, current_year=current_year)
            rows.append(
                {
                    "car": ev.car_label,
                    "scenario": ev.scenario_label,
                    "payment_frequency": scenario.payment_frequency.value,
                    "amount_financed": ev.financing.amount_financed,
                    "periodic_payment": ev.financing.periodic_payment,
                    "number_of_payments": ev.financing.number_of_payments,
                    "total_interest": ev.financing.total_interest,
                    "total_cost": ev.financing.total_cost,
                    "effective_years": ev.lifetime.effective_years,
                    "limited_by": ev.lifetime.limited_by,
                    "total_fuel_cost": ev.lifetime.total_fuel_cost,
                    "total_insurance_cost": ev.lifetime.total_insurance_cost,
                    "investment_gain": ev.lifetime.investment_gain,
                    "lifetime_total_cost": ev.lifetime.lifetime_total_cost,
                    "cost_per_year": ev.lifetime.cost_per_year,
                    "cost_per_month": ev.lifetime.cost_per_month,
                }
            )
    return pd.DataFrame(rows)
