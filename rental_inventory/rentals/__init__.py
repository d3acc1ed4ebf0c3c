"""Rental period validation and pricing. Pure functions, safe to call from any thread."""

from .period import (
    ValidationResult,
    as_date,
    compute_rental_duration,
    date_range,
    local_today,
    max_selectable_date,
    min_selectable_date,
    overlapping_dates,
    suggested_end_date,
    validate_rental_dates,
)
from .pricing import (
    ListingTerms,
    RentalTerms,
    SaleTerms,
    TieredRates,
    calculate_late_return_penalty,
    compute_grand_total,
    price_rental,
)
from .quote import RentalQuote, quote_rental

__all__ = [
    "ValidationResult",
    "as_date",
    "compute_rental_duration",
    "date_range",
    "local_today",
    "max_selectable_date",
    "min_selectable_date",
    "overlapping_dates",
    "suggested_end_date",
    "validate_rental_dates",
    "ListingTerms",
    "RentalTerms",
    "SaleTerms",
    "TieredRates",
    "calculate_late_return_penalty",
    "compute_grand_total",
    "price_rental",
    "RentalQuote",
    "quote_rental",
]
