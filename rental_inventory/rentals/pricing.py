"""
Rental pricing rules.

Listings are either sold or rented and carry different price terms. The two
shapes are kept apart as ``SaleTerms`` and ``RentalTerms`` so rental pricing
can only ever be applied to rental listings.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Literal, Optional, Union

from rental_inventory.config import Config
from rental_inventory.rentals.period import as_date

ZERO = Decimal("0")

THREE_DAY_THRESHOLD = 3
SEVEN_DAY_THRESHOLD = 7


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() keeps 19.99 from turning into 19.989999...
    return Decimal(str(value))


def _optional_decimal(value) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


@dataclass(frozen=True)
class TieredRates:
    """Flat prices unlocked once a rental reaches 3 or 7 days."""

    three_day: Optional[Decimal] = None
    seven_day: Optional[Decimal] = None

    @classmethod
    def from_mapping(cls, payload: Optional[dict]) -> "TieredRates":
        payload = payload or {}
        return cls(
            three_day=_optional_decimal(payload.get("three_day")),
            seven_day=_optional_decimal(payload.get("seven_day")),
        )


@dataclass(frozen=True)
class SaleTerms:
    unit_price: Decimal
    kind: Literal["sale"] = field(default="sale", init=False)


@dataclass(frozen=True)
class RentalTerms:
    daily_rate: Decimal
    security_deposit: Decimal = ZERO
    tiered_rates: TieredRates = field(default_factory=TieredRates)
    kind: Literal["rental"] = field(default="rental", init=False)


ListingTerms = Union[SaleTerms, RentalTerms]


def price_rental(daily_rate, tiered_rates: Optional[TieredRates], duration_days: int) -> Decimal:
    """
    Price a rental of ``duration_days``.

    Tiers are thresholds, not proportional: any rental of 7+ days costs the flat
    seven-day rate when one is set, 3-6 days the flat three-day rate. Missing
    tiers fall back to ``daily_rate * duration_days``. The result is never
    negative.
    """
    if duration_days <= 0:
        return ZERO

    tiers = tiered_rates or TieredRates()
    if duration_days >= SEVEN_DAY_THRESHOLD and tiers.seven_day is not None:
        cost = to_decimal(tiers.seven_day)
    elif duration_days >= THREE_DAY_THRESHOLD and tiers.three_day is not None:
        cost = to_decimal(tiers.three_day)
    else:
        cost = to_decimal(daily_rate) * duration_days
    return max(ZERO, cost)


def compute_grand_total(rental_cost, security_deposit) -> Decimal:
    return to_decimal(rental_cost) + to_decimal(security_deposit)


def calculate_late_return_penalty(
    actual_return_date: date,
    expected_return_date: date,
    daily_rate,
    penalty_multiplier=None,
) -> Decimal:
    """Charge ``multiplier`` times the daily rate for every day past the due date."""
    if penalty_multiplier is None:
        penalty_multiplier = Config.LATE_RETURN_PENALTY_MULTIPLIER
    late_days = (as_date(actual_return_date) - as_date(expected_return_date)).days
    if late_days <= 0:
        return ZERO
    return late_days * to_decimal(daily_rate) * to_decimal(penalty_multiplier)


__all__ = [
    "TieredRates",
    "SaleTerms",
    "RentalTerms",
    "ListingTerms",
    "price_rental",
    "compute_grand_total",
    "calculate_late_return_penalty",
    "to_decimal",
]
