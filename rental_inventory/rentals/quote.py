from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Union

from rental_inventory.config import Config
from rental_inventory.rentals.period import (
    ValidationResult,
    compute_rental_duration,
    validate_rental_dates,
)
from rental_inventory.rentals.pricing import (
    ListingTerms,
    RentalTerms,
    compute_grand_total,
    price_rental,
)


@dataclass(frozen=True)
class RentalQuote:
    duration_days: int
    rental_cost: Decimal
    security_deposit: Decimal
    total_due: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": True,
            "duration_days": self.duration_days,
            "rental_cost": float(self.rental_cost),
            "security_deposit": float(self.security_deposit),
            "total_due": float(self.total_due),
        }


def quote_rental(
    terms: ListingTerms,
    start_date: Optional[date],
    end_date: Optional[date],
    unavailable_dates: Iterable[date],
    today: date,
    *,
    min_days: int = Config.MIN_RENTAL_DAYS,
    max_days: int = Config.MAX_RENTAL_DAYS,
) -> Union[RentalQuote, ValidationResult]:
    """Validate the requested dates and, when they are acceptable, price them."""
    if not isinstance(terms, RentalTerms):
        raise TypeError(f"Cannot quote a rental for a {terms.kind!r} listing")

    validation = validate_rental_dates(
        start_date,
        end_date,
        unavailable_dates,
        today,
        min_days=min_days,
        max_days=max_days,
    )
    if not validation.valid:
        return validation

    duration = compute_rental_duration(start_date, end_date)
    rental_cost = price_rental(terms.daily_rate, terms.tiered_rates, duration)
    return RentalQuote(
        duration_days=duration,
        rental_cost=rental_cost,
        security_deposit=terms.security_deposit,
        total_due=compute_grand_total(rental_cost, terms.security_deposit),
    )
