from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from typing import Any

from pydantic import ValidationError

from carcost.compare import compare_cars, evaluate_scenario, lifetime_range_for, optimize_car
from carcost.financing.loan import PaymentFrequency, amortization_schedule, calculate_scenario
from carcost.settings.model import AppState, Car, CarOverrides, FeeSettings, FuelSettings, ScenarioSettings, Settings
from carcost.settings.state import StateStore, decode_share_token, encode_share_token, read_state, save_state
from carcost.settings.tax import PROVINCE_TAXES


def _mkdirp(path: str) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)


def format_currency(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def _print_json(out: dict[str, Any]) -> None:
    print(json.dumps(out, indent=2, sort_keys=True, default=str))


def _state_or_exit(path: str) -> AppState:
    if not os.path.exists(path):
        raise SystemExit(f"state file not found: {path}")
    try:
        return read_state(path)
    except OSError as e:
        raise SystemExit(f"cannot read state file {path}: {e}") from e
    except (json.JSONDecodeError, ValueError, ValidationError) as e:
        raise SystemExit(f"invalid state file {path}: {e}") from e


def _car_or_exit(state: AppState, index: int) -> Car:
    if not (0 <= index < len(state.cars)):
        raise SystemExit(f"--car must be in [0, {len(state.cars) - 1}]; got {index}")
    return state.cars[index]


def _quote_inputs(args: argparse.Namespace) -> tuple[Car, Settings]:
    try:
        return _build_quote_inputs(args)
    except ValidationError as e:
        raise SystemExit(f"invalid input: {e}") from e


def _build_quote_inputs(args: argparse.Namespace) -> tuple[Car, Settings]:
    settings = Settings(
        province=args.province,
        fees=FeeSettings(
            freight_pdi=args.freight_pdi,
            air_conditioning_tax=args.ac_tax,
            tire_levy=args.tire_levy,
            dealer_fee=args.dealer_fee,
        ),
        max_car_age=args.max_car_age,
        mileage_cap=args.mileage_cap,
        annual_km=args.annual_km,
        include_fuel=not args.no_fuel,
        investment_return=args.investment_return,
        cash_on_hand=args.cash_on_hand,
    )
    year = args.vehicle_year if args.vehicle_year is not None else args.current_year
    car = Car(
        label="quote",
        price=args.price,
        **({"vehicle_year": year} if year is not None else {}),
        initial_mileage=args.initial_mileage,
        other_fees=args.other_fees,
        insurance_cost_per_year=args.insurance,
        fuel_inputs=FuelSettings(fuel_consumption=args.fuel_consumption, fuel_price_per_litre=args.fuel_price),
        overrides=CarOverrides(),
        scenarios=[
            ScenarioSettings(
                label="quote",
                interest_rate=args.rate,
                loan_term_months=args.term_months,
                down_payment=args.down_payment,
                pay_in_full=args.pay_in_full,
                payment_frequency=PaymentFrequency(args.frequency),
            )
        ],
    )
    return car, settings


def cmd_quote(args: argparse.Namespace) -> int:
    car, settings = _quote_inputs(args)
    ev = evaluate_scenario(car, car.active_scenario, settings, current_year=args.current_year)
    out: dict[str, Any] = {
        "financing": asdict(ev.financing),
        "lifetime": asdict(ev.lifetime),
        "summary": {
            "periodic_payment": format_currency(ev.financing.periodic_payment),
            "total_interest": format_currency(ev.financing.total_interest),
            "cost_per_month": format_currency(ev.lifetime.cost_per_month),
        },
    }
    if settings.annual_km > 0:
        low, _, high = lifetime_range_for(car, car.active_scenario, settings, current_year=args.current_year)
        out["cost_per_month_range"] = [low.cost_per_month, high.cost_per_month]
    _print_json(out)
    return 0


def cmd_schedule(args: argparse.Namespace) -> int:
    car, settings = _quote_inputs(args)
    result = calculate_scenario(
        car.price,
        settings.fees.to_fees(),
        car.active_scenario.to_scenario(),
        settings.tax_rate,
        car.other_fees,
    )
    df = amortization_schedule(
        principal=result.amount_financed,
        annual_rate_pct=args.rate,
        num_payments=result.number_of_payments,
        frequency=PaymentFrequency(args.frequency),
    )
    _mkdirp(args.out_csv)
    df.to_csv(args.out_csv, index=False)
    _print_json({"out_csv": args.out_csv, "n_rows": int(len(df))})
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    state = _state_or_exit(args.state)
    df = compare_cars(state, current_year=args.current_year)
    if args.out_csv:
        _mkdirp(args.out_csv)
        df.to_csv(args.out_csv, index=False)
        _print_json({"out_csv": args.out_csv, "n_rows": int(len(df))})
    else:
        _print_json({"rows": df.to_dict(orient="records")})
    return 0


def cmd_optimize(args: argparse.Namespace) -> int:
    state = _state_or_exit(args.state)
    car = _car_or_exit(state, args.car)
    sol = optimize_car(
        car,
        state.settings,
        objective=args.objective,
        tol=args.tol,
        current_year=args.current_year,
    )
    out = {"car": car.label, "scenario": car.active_scenario.label, "solution": asdict(sol)}
    if args.apply:

        def apply(st: AppState) -> None:
            scenario = st.cars[args.car].active_scenario
            scenario.down_payment = sol.down_payment
            scenario.pay_in_full = False

        store = StateStore(state, on_change=lambda st: save_state(st, args.state))
        store.update(apply)
        out["saved_to"] = args.state
    _print_json(out)
    return 0


def cmd_share(args: argparse.Namespace) -> int:
    if args.action == "encode":
        _print_json({"token": encode_share_token(_state_or_exit(args.state))})
        return 0

    token = args.token if args.token is not None else sys.stdin.read().strip()
    state = decode_share_token(token)
    if state is None:
        raise SystemExit("share token does not contain a valid state")
    save_state(state, args.state)
    _print_json({"saved_to": args.state, "n_cars": len(state.cars)})
    return 0


def _add_quote_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--price", type=float, required=True)
    p.add_argument("--rate", type=float, required=True, help="Annual interest rate in percent (e.g. 6.99).")
    p.add_argument("--term-months", type=int, required=True)
    p.add_argument("--frequency", choices=[f.value for f in PaymentFrequency], default="monthly")
    p.add_argument("--down-payment", type=float, default=0.0)
    p.add_argument("--pay-in-full", action="store_true", default=False)
    p.add_argument("--other-fees", type=float, default=0.0, help="Signed post-tax adjustment (rebates negative).")
    p.add_argument("--province", choices=sorted(PROVINCE_TAXES), default="ON")
    p.add_argument("--freight-pdi", type=float, default=1800.0)
    p.add_argument("--ac-tax", type=float, default=100.0)
    p.add_argument("--tire-levy", type=float, default=15.0)
    p.add_argument("--dealer-fee", type=float, default=500.0)
    p.add_argument("--vehicle-year", type=int, default=None, help="Defaults to the current year.")
    p.add_argument("--initial-mileage", type=float, default=0.0)
    p.add_argument("--annual-km", type=float, default=15_000.0)
    p.add_argument("--max-car-age", type=float, default=15.0)
    p.add_argument("--mileage-cap", type=float, default=300_000.0)
    p.add_argument("--fuel-consumption", type=float, default=8.5, help="L/100km")
    p.add_argument("--fuel-price", type=float, default=1.65, help="Price per litre.")
    p.add_argument("--no-fuel", action="store_true", default=False)
    p.add_argument("--insurance", type=float, default=0.0, help="Annual insurance cost.")
    p.add_argument("--investment-return", type=float, default=0.0, help="Annual percent.")
    p.add_argument("--cash-on-hand", type=float, default=0.0)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="carcost")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--current-year", type=int, default=None, help="Override today's year for age calculations.")
    sub = p.add_subparsers(dest="cmd", required=True)

    q = sub.add_parser("quote", help="Financing and lifetime cost for a single scenario.")
    _add_quote_args(q)
    q.set_defaults(func=cmd_quote)

    s = sub.add_parser("schedule", help="Write the amortization schedule for a single scenario to CSV.")
    _add_quote_args(s)
    s.add_argument("--out-csv", required=True)
    s.set_defaults(func=cmd_schedule)

    c = sub.add_parser("compare", help="Compare every car and scenario in a saved state.")
    c.add_argument("--state", required=True)
    c.add_argument("--out-csv", default=None)
    c.set_defaults(func=cmd_compare)

    o = sub.add_parser("optimize", help="Search for the down payment with the lowest lifetime cost.")
    o.add_argument("--state", required=True)
    o.add_argument("--car", type=int, default=0, help="Index of the car in the state.")
    o.add_argument("--objective", choices=["min_lifetime_cost", "break_even"], default="min_lifetime_cost")
    o.add_argument("--tol", type=float, default=1.0)
    o.add_argument("--apply", action="store_true", default=False, help="Write the result back to the state file.")
    o.set_defaults(func=cmd_optimize)

    sh = sub.add_parser("share", help="Encode a state file as a share token, or decode one into a state file.")
    sh.add_argument("action", choices=["encode", "decode"])
    sh.add_argument("--state", required=True)
    sh.add_argument("--token", default=None, help="Token to decode (read from stdin if omitted).")
    sh.set_defaults(func=cmd_share)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
