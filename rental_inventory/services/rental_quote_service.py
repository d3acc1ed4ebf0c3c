from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional, Set, Tuple

from sqlalchemy.orm import Session

from rental_inventory.config import Config
from rental_inventory.models import (
    ProductVariant,
    RentalBooking,
    RELEASED_BOOKING_STATUSES,
)
from rental_inventory.observability import increment_counter
from rental_inventory.rentals import RentalQuote, RentalTerms, date_range, quote_rental


class RentalQuoteService:
    """Quotes rentals for stored variants, blocking dates held by existing bookings."""

    def __init__(self, db_session: Session, config: type[Config] = Config) -> None:
        self.db = db_session
        self.config = config
        self.logger = logging.getLogger(__name__)

    def unavailable_dates_for_variant(self, variant_id: int) -> Set[date]:
        bookings = (
            self.db.query(RentalBooking)
            .filter(RentalBooking.variantID == variant_id)
            .filter(RentalBooking.status.notin_(RELEASED_BOOKING_STATUSES))
            .all()
        )
        blocked: Set[date] = set()
        for booking in bookings:
            blocked.update(date_range(booking.start_date, booking.end_date))
        return blocked

    def quote_for_variant(
        self,
        variant_id: int,
        start_date: Optional[date],
        end_date: Optional[date],
        today: date,
    ) -> Tuple[bool, str, Optional[Dict[str, Any]]]:
        variant = (
            self.db.query(ProductVariant)
            .filter_by(variantID=variant_id, is_active=True)
            .first()
        )
        if not variant:
            return False, "Variant not found", None

        terms = variant.product.listing_terms()
        if not isinstance(terms, RentalTerms):
            return False, "Product is not available for rental", None

        outcome = quote_rental(
            terms,
            start_date,
            end_date,
            self.unavailable_dates_for_variant(variant_id),
            today,
            min_days=self.config.MIN_RENTAL_DAYS,
            max_days=self.config.MAX_RENTAL_DAYS,
        )
        if isinstance(outcome, RentalQuote):
            increment_counter("rental_quotes_total", labels={"outcome": "valid"})
            return True, "Quote computed", outcome.to_dict()

        increment_counter("rental_quotes_total", labels={"outcome": outcome.reason.value})
        return True, outcome.message, outcome.to_dict()
