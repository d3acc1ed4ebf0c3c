from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from rental_inventory.config import Config
from rental_inventory.errors import RENTAL_DATE_MESSAGES, RentalDateErrorKind

try:
    _LOCAL_TZ = ZoneInfo(Config.DEFAULT_TIMEZONE)
except ZoneInfoNotFoundError:
    _LOCAL_TZ = timezone.utc


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[RentalDateErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, reason: RentalDateErrorKind, **fmt: int) -> "ValidationResult":
        return cls(valid=False, reason=reason, message=RENTAL_DATE_MESSAGES[reason].format(**fmt))

    def to_dict(self) -> Dict[str, Any]:
        if self.valid:
            return {"valid": True}
        return {"valid": False, "reason": self.reason.value, "message": self.message}


def as_date(value: Optional[date]) -> Optional[date]:
    """Drop the time part of a ``datetime``; plain dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def local_today(now: Optional[datetime] = None) -> date:
    """Today's date in the service's reference calendar."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(_LOCAL_TZ).date()


def compute_rental_duration(start_date: date, end_date: date) -> int:
    """Inclusive day count; zero or negative when the range is inverted."""
    return (as_date(end_date) - as_date(start_date)).days + 1


def date_range(start_date: date, end_date: date) -> List[date]:
    start_date = as_date(start_date)
    return [start_date + timedelta(days=offset) for offset in range(compute_rental_duration(start_date, end_date))]


def overlapping_dates(start_date: date, end_date: date, unavailable_dates: Iterable[date]) -> List[date]:
    blocked = {as_date(day) for day in unavailable_dates}
    return [day for day in date_range(start_date, end_date) if day in blocked]


def validate_rental_dates(
    start_date: Optional[date],
    end_date: Optional[date],
    unavailable_dates: Iterable[date],
    today: date,
    *,
    min_days: int = Config.MIN_RENTAL_DAYS,
    max_days: int = Config.MAX_RENTAL_DAYS,
) -> ValidationResult:
    """
    Check a requested rental range against the booking rules.

    Checks run in a fixed order and the first failure is reported:
    missing date, start in the past, end before start, below minimum duration,
    above maximum duration, and finally any day already booked.
    """
    start_date, end_date, today = as_date(start_date), as_date(end_date), as_date(today)

    if start_date is None or end_date is None:
        return ValidationResult.fail(RentalDateErrorKind.MISSING_DATE)

    if start_date < today:
        return ValidationResult.fail(RentalDateErrorKind.PAST_START_DATE)

    if end_date < start_date:
        return ValidationResult.fail(RentalDateErrorKind.END_BEFORE_START)

    days = compute_rental_duration(start_date, end_date)
    if days < min_days:
        return ValidationResult.fail(RentalDateErrorKind.BELOW_MINIMUM_DURATION, min_days=min_days)
    if days > max_days:
        return ValidationResult.fail(RentalDateErrorKind.ABOVE_MAXIMUM_DURATION, max_days=max_days)

    if overlapping_dates(start_date, end_date, unavailable_dates):
        return ValidationResult.fail(RentalDateErrorKind.DATE_UNAVAILABLE)

    return ValidationResult.ok()


def min_selectable_date(today: date) -> date:
    return today


def max_selectable_date(today: date) -> date:
    return today + timedelta(days=Config.MAX_RENTAL_DAYS + Config.RENTAL_BOOKING_WINDOW_DAYS)


def suggested_end_date(start_date: date, default_days: int = Config.DEFAULT_SUGGESTED_RENTAL_DAYS) -> date:
    # Range is inclusive of the start day
    return start_date + timedelta(days=default_days - 1)


__all__ = [
    "ValidationResult",
    "as_date",
    "local_today",
    "compute_rental_duration",
    "date_range",
    "overlapping_dates",
    "validate_rental_dates",
    "min_selectable_date",
    "max_selectable_date",
    "suggested_end_date",
]
