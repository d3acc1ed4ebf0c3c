"""Typed failure kinds shared by the rental engine and the stock ledger."""
from __future__ import annotations

from enum import Enum


class RentalDateErrorKind(str, Enum):
    MISSING_DATE = "MissingDate"
    PAST_START_DATE = "PastStartDate"
    END_BEFORE_START = "EndBeforeStart"
    BELOW_MINIMUM_DURATION = "BelowMinimumDuration"
    ABOVE_MAXIMUM_DURATION = "AboveMaximumDuration"
    DATE_UNAVAILABLE = "DateUnavailable"


RENTAL_DATE_MESSAGES = {
    RentalDateErrorKind.MISSING_DATE: "Please select both start and end dates",
    RentalDateErrorKind.PAST_START_DATE: "Start date cannot be in the past",
    RentalDateErrorKind.END_BEFORE_START: "End date must be after start date",
    RentalDateErrorKind.BELOW_MINIMUM_DURATION: "Minimum rental period is {min_days} day(s)",
    RentalDateErrorKind.ABOVE_MAXIMUM_DURATION: "Maximum rental period is {max_days} days",
    RentalDateErrorKind.DATE_UNAVAILABLE: "Selected dates include unavailable periods",
}


class StockErrorKind(str, Enum):
    VARIANT_NOT_FOUND = "VariantNotFound"
    VARIANT_INACTIVE = "VariantInactive"
    DUPLICATE_VARIANT = "DuplicateVariant"
    INSUFFICIENT_STOCK = "InsufficientStock"
    OVER_RELEASE = "OverRelease"
    INSUFFICIENT_AVAILABLE_STOCK = "InsufficientAvailableStock"
    INVALID_QUANTITY = "InvalidQuantity"
    PRODUCT_NOT_FOUND = "ProductNotFound"
    DUPLICATE_SKU = "DuplicateSku"
    INVALID_COLOR_CODE = "InvalidColorCode"


# HTTP status used by the blueprints for each business failure
STOCK_ERROR_STATUS = {
    StockErrorKind.VARIANT_NOT_FOUND: 404,
    StockErrorKind.PRODUCT_NOT_FOUND: 404,
    StockErrorKind.VARIANT_INACTIVE: 409,
    StockErrorKind.DUPLICATE_VARIANT: 409,
    StockErrorKind.DUPLICATE_SKU: 409,
    StockErrorKind.INSUFFICIENT_STOCK: 409,
    StockErrorKind.OVER_RELEASE: 409,
    StockErrorKind.INSUFFICIENT_AVAILABLE_STOCK: 409,
    StockErrorKind.INVALID_QUANTITY: 400,
    StockErrorKind.INVALID_COLOR_CODE: 400,
}


class LedgerUnavailableError(Exception):
    """The persistence layer beneath the ledger failed; no state was changed."""


class StockContentionError(LedgerUnavailableError):
    """A variant stayed locked past the configured wait and retry budget."""


__all__ = [
    "RentalDateErrorKind",
    "RENTAL_DATE_MESSAGES",
    "StockErrorKind",
    "STOCK_ERROR_STATUS",
    "LedgerUnavailableError",
    "StockContentionError",
]
