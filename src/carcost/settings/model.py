"""Application state models: global settings, per-car overrides, cars and their scenarios.

These are the caller-side shapes that get saved and shared. They validate and
default what comes in from JSON, then convert to the engine's frozen value types.
"""
from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, model_validator

from carcost.financing.loan import FinancingScenario, PaymentFrequency
from carcost.lifetime.projection import FuelInputs
from carcost.pricing.scenario import DealershipFees
from carcost.settings.tax import Province, combined_tax_rate


class FeeSettings(BaseModel):
    freight_pdi: float = Field(default=1800.0, ge=0)
    air_conditioning_tax: float = Field(default=100.0, ge=0)
    tire_levy: float = Field(default=15.0, ge=0)
    dealer_fee: float = Field(default=500.0, ge=0)

    def to_fees(self) -> DealershipFees:
        return DealershipFees(
            freight_pdi=self.freight_pdi,
            air_conditioning_tax=self.air_conditioning_tax,
            tire_levy=self.tire_levy,
            dealer_fee=self.dealer_fee,
        )


class FuelSettings(BaseModel):
    fuel_consumption: float = Field(default=8.5, ge=0, description="L/100km")
    fuel_price_per_litre: float = Field(default=1.65, ge=0)

    def to_fuel(self) -> FuelInputs:
        return FuelInputs(
            fuel_consumption=self.fuel_consumption,
            fuel_price_per_litre=self.fuel_price_per_litre,
        )


class Settings(BaseModel):
    province: Province = "ON"
    fees: FeeSettings = Field(default_factory=FeeSettings)
    max_car_age: float = Field(default=15, ge=0, description="Years")
    mileage_cap: float = Field(default=300_000, ge=0, description="km")
    annual_km: float = Field(default=15_000, ge=0)
    include_fuel: bool = True
    investment_return: float = Field(default=0.0, description="Annual percent earned on cash kept invested")
    cash_on_hand: float = Field(default=0.0, ge=0)

    @property
    def tax_rate(self) -> float:
        return combined_tax_rate(self.province)


class CarOverrides(BaseModel):
    # None means "use the global setting".
    annual_km: float | None = Field(default=None, ge=0)
    include_fuel: bool | None = None
    max_car_age: float | None = Field(default=None, ge=0)
    mileage_cap: float | None = Field(default=None, ge=0)

    def is_empty(self) -> bool:
        return all(v is None for v in self.model_dump().values())


class ScenarioSettings(BaseModel):
    label: str = "Scenario 1"
    interest_rate: float = Field(default=6.99, ge=0)
    loan_term_months: int = Field(default=60, gt=0)
    down_payment: float = Field(default=0.0, ge=0)
    pay_in_full: bool = False
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY

    def to_scenario(self) -> FinancingScenario:
        return FinancingScenario(
            interest_rate=self.interest_rate,
            loan_term_months=self.loan_term_months,
            down_payment=self.down_payment,
            pay_in_full=self.pay_in_full,
            payment_frequency=self.payment_frequency,
            label=self.label,
        )


def _this_year() -> int:
    return dt.date.today().year


class Car(BaseModel):
    label: str = "New Car"
    description: str = ""
    price: float = Field(default=35_000.0, ge=0)
    vehicle_year: int = Field(default_factory=_this_year)
    initial_mileage: float = Field(default=0.0, ge=0)
    other_fees: float = 0.0  # signed; rebates are negative
    insurance_cost_per_year: float = Field(default=0.0, ge=0)
    fuel_inputs: FuelSettings = Field(default_factory=FuelSettings)
    overrides: CarOverrides = Field(default_factory=CarOverrides)
    scenarios: list[ScenarioSettings] = Field(default_factory=lambda: [ScenarioSettings()], min_length=1)
    active_scenario_index: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _clamp_active_index(self) -> "Car":
        if self.active_scenario_index >= len(self.scenarios):
            self.active_scenario_index = len(self.scenarios) - 1
        return self

    @property
    def active_scenario(self) -> ScenarioSettings:
        return self.scenarios[self.active_scenario_index]


class AppState(BaseModel):
    settings: Settings = Field(default_factory=Settings)
    cars: list[Car] = Field(default_factory=lambda: [Car(label="Car 1")])


def resolve_settings(settings: Settings, overrides: CarOverrides) -> Settings:
    """
    Fully-resolved settings for one car: each override that is set replaces the global value.
    An explicit include_fuel=False is an override, not a missing value.
    """
    update = {k: v for k, v in overrides.model_dump().items() if v is not None}
    return settings.model_copy(update=update)
