from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Province = Literal["AB", "BC", "MB", "NB", "NL", "NT", "NS", "NU", "ON", "PE", "QC", "SK", "YT"]


@dataclass(frozen=True)
class ProvinceTax:
    name: str
    taxes: tuple[tuple[str, float], ...]  # (label, rate) pairs, e.g. ("GST", 0.05)

    @property
    def combined_rate(self) -> float:
        return float(sum(rate for _, rate in self.taxes))


PROVINCE_TAXES: dict[str, ProvinceTax] = {
    "AB": ProvinceTax("Alberta", (("GST", 0.05),)),
    "BC": ProvinceTax("British Columbia", (("GST", 0.05), ("PST", 0.07))),
    "MB": ProvinceTax("Manitoba", (("GST", 0.05), ("RST", 0.07))),
    "NB": ProvinceTax("New Brunswick", (("HST", 0.15),)),
    "NL": ProvinceTax("Newfoundland & Labrador", (("HST", 0.15),)),
    "NT": ProvinceTax("Northwest Territories", (("GST", 0.05),)),
    "NS": ProvinceTax("Nova Scotia", (("HST", 0.15),)),
    "NU": ProvinceTax("Nunavut", (("GST", 0.05),)),
    "ON": ProvinceTax("Ontario", (("HST", 0.13),)),
    "PE": ProvinceTax("Prince Edward Island", (("HST", 0.15),)),
    "QC": ProvinceTax("Quebec", (("GST", 0.05), ("QST", 0.09975))),
    "SK": ProvinceTax("Saskatchewan", (("GST", 0.05), ("PST", 0.06))),
    "YT": ProvinceTax("Yukon", (("GST", 0.05),)),
}


def combined_tax_rate(province: str) -> float:
    try:
        return PROVINCE_TAXES[province].combined_rate
    except KeyError as e:
        raise ValueError(f"unknown province '{province}'") from e
