from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace

import numpy as np

from carcost.financing.loan import FinancingScenario, calculate_scenario
from carcost.lifetime.projection import FuelInputs, calculate_lifetime_cost
from carcost.pricing.scenario import DealershipFees, price_scenario

logger = logging.getLogger(__name__)

OBJECTIVES = ("min_lifetime_cost", "break_even")

# Coarse samples used to bracket the best region before refining.
GRID_POINTS = 41

_INV_PHI = (math.sqrt(5.0) - 1.0) / 2.0


@dataclass(frozen=True)
class DownPaymentSolution:
    down_payment: float
    lifetime_total_cost: float
    iterations: int
    converged: bool
    objective: str


def optimize_down_payment(
    price: float,
    fees: DealershipFees,
    scenario: FinancingScenario,
    tax_rate: float,
    other_fees: float,
    fuel: FuelInputs,
    annual_km: float,
    max_car_age: float,
    mileage_cap: float,
    vehicle_year: int,
    initial_mileage: float,
    include_fuel: bool,
    investment_return: float,
    cash_on_hand: float,
    insurance_cost_per_year: float = 0.0,
    *,
    objective: str = "min_lifetime_cost",
    tol: float = 1.0,
    max_iter: int = 100,
    current_year: int | None = None,
) -> DownPaymentSolution:
    """
    Search [0, total_with_tax + other_fees] for the down payment with the lowest lifetime cost.

    Lifetime cost is not monotonic in the down payment once investment gain is counted:
    more cash down cuts interest but also shrinks what stays invested. The engine is
    evaluated as a black box with pay_in_full disabled.

    objective:
      - "min_lifetime_cost": golden-section search on lifetime cost
      - "break_even": bisection on the sign of the marginal lifetime cost, i.e. where one
        more dollar down saves as much interest as it gives up in investment return
    """
    if objective not in OBJECTIVES:
        raise ValueError(f"objective must be one of {OBJECTIVES}; got {objective!r}")
    if tol <= 0:
        raise ValueError("tol must be > 0")
    if max_iter <= 0:
        raise ValueError("max_iter must be > 0")

    base = replace(scenario, pay_in_full=False)

    def f(down: float) -> float:
        result = calculate_scenario(price, fees, replace(base, down_payment=down), tax_rate, other_fees)
        lifetime = calculate_lifetime_cost(
            result,
            fuel,
            annual_km,
            max_car_age,
            mileage_cap,
            vehicle_year,
            initial_mileage,
            include_fuel,
            investment_return,
            base.payment_frequency,
            cash_on_hand,
            insurance_cost_per_year,
            current_year=current_year,
        )
        return lifetime.lifetime_total_cost

    upper = max(0.0, price_scenario(price, fees, tax_rate, other_fees).total_with_tax + other_fees)
    if upper <= tol:
        return DownPaymentSolution(
            down_payment=0.0,
            lifetime_total_cost=float(f(0.0)),
            iterations=0,
            converged=True,
            objective=objective,
        )

    grid = np.linspace(0.0, upper, GRID_POINTS)
    costs = np.array([f(float(d)) for d in grid])
    i = int(np.argmin(costs))
    lo = float(grid[max(0, i - 1)])
    hi = float(grid[min(len(grid) - 1, i + 1)])
    logger.debug("down payment bracket [%.2f, %.2f] from grid over [0, %.2f]", lo, hi, upper)

    if objective == "min_lifetime_cost":
        candidate, iterations, converged = _golden_section(f, lo, hi, tol, max_iter)
    else:
        candidate, iterations, converged = _bisect_marginal(f, lo, hi, upper, tol, max_iter)

    ends = [(0.0, float(costs[0])), (upper, float(costs[-1]))]
    if not converged:
        down, cost = min(ends, key=lambda e: e[1])
        logger.warning(
            "down payment search did not converge after %d iterations; using boundary %.2f",
            iterations,
            down,
        )
        return DownPaymentSolution(
            down_payment=float(down),
            lifetime_total_cost=float(cost),
            iterations=iterations,
            converged=False,
            objective=objective,
        )

    best_down, best_cost = candidate, f(candidate)
    for down, cost in ends:
        if cost < best_cost - 1e-9:
            best_down, best_cost = down, cost

    logger.debug("down payment %.2f after %d iterations (cost %.2f)", best_down, iterations, best_cost)
    return DownPaymentSolution(
        down_payment=float(best_down),
        lifetime_total_cost=float(best_cost),
        iterations=iterations,
        converged=True,
        objective=objective,
    )


def _golden_section(
    f: Callable[[float], float], a: float, b: float, tol: float, max_iter: int
) -> tuple[float, int, bool]:
    c = b - _INV_PHI * (b - a)
    d = a + _INV_PHI * (b - a)
    fc, fd = f(c), f(d)

    for it in range(max_iter):
        if (b - a) <= tol:
            return (a + b) / 2.0, it, True
        if fc <= fd:
            b, d, fd = d, c, fc
            c = b - _INV_PHI * (b - a)
            fc = f(c)
        else:
            a, c, fc = c, d, fd
            d = a + _INV_PHI * (b - a)
            fd = f(d)

    return (a + b) / 2.0, max_iter, (b - a) <= tol


def _bisect_marginal(
    f: Callable[[float], float], a: float, b: float, upper: float, tol: float, max_iter: int
) -> tuple[float, int, bool]:
    h = tol / 2.0

    def slope(x: float) -> float:
        return f(min(upper, x + h)) - f(max(0.0, x - h))

    # Cost already rising (or falling) across the whole bracket: the edge is the answer.
    if slope(a) >= 0:
        return a, 0, True
    if slope(b) <= 0:
        return b, 0, True

    for it in range(max_iter):
        if (b - a) <= tol:
            return (a + b) / 2.0, it, True
        mid = (a + b) / 2.0
        if slope(mid) < 0:
            a = mid
        else:
            b = mid

    return (a + b) / 2.0, max_iter, (b - a) <= tol
