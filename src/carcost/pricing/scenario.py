from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DealershipFees:
    # Flat dealer-side charges added before tax.
    freight_pdi: float = 0.0
    air_conditioning_tax: float = 0.0
    tire_levy: float = 0.0
    dealer_fee: float = 0.0

    @property
    def total_fees(self) -> float:
        return float(self.freight_pdi + self.air_conditioning_tax + self.tire_levy + self.dealer_fee)


@dataclass(frozen=True)
class PricingResult:
    total_fees: float
    subtotal: float
    tax_rate: float
    tax_amount: float
    total_with_tax: float
    other_fees: float


def price_scenario(
    price: float,
    fees: DealershipFees,
    tax_rate: float,
    other_fees: float = 0.0,
) -> PricingResult:
    """
    Vehicle price + dealer fees, taxed at the combined rate.

    tax_rate: combined sales tax as a fraction (e.g. 0.13 for 13%)
    other_fees: signed post-tax adjustment (rebates are negative); carried through untouched
    """
    total_fees = fees.total_fees
    subtotal = float(price) + total_fees
    tax_amount = subtotal * tax_rate
    return PricingResult(
        total_fees=total_fees,
        subtotal=subtotal,
        tax_rate=float(tax_rate),
        tax_amount=float(tax_amount),
        total_with_tax=float(subtotal + tax_amount),
        other_fees=float(other_fees),
    )
