from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from rental_inventory.errors import RentalDateErrorKind
from rental_inventory.rentals import (
    RentalQuote,
    RentalTerms,
    SaleTerms,
    TieredRates,
    ValidationResult,
    calculate_late_return_penalty,
    compute_grand_total,
    compute_rental_duration,
    date_range,
    max_selectable_date,
    overlapping_dates,
    price_rental,
    quote_rental,
    suggested_end_date,
    validate_rental_dates,
)

TODAY = date(2025, 1, 1)
TIERS = TieredRates(three_day=Decimal("250"), seven_day=Decimal("400"))


def test_duration_is_inclusive_of_both_ends():
    assert compute_rental_duration(date(2025, 1, 10), date(2025, 1, 10)) == 1
    assert compute_rental_duration(date(2025, 1, 10), date(2025, 1, 12)) == 3
    assert compute_rental_duration(date(2025, 1, 31), date(2025, 2, 1)) == 2


def test_duration_of_inverted_range_is_not_positive():
    assert compute_rental_duration(date(2025, 1, 12), date(2025, 1, 10)) <= 0


@pytest.mark.parametrize(
    "duration, expected",
    [(1, "100"), (2, "200"), (3, "250"), (6, "250"), (7, "400"), (9, "400"), (30, "400")],
)
def test_tier_selection_is_threshold_based(duration, expected):
    assert price_rental(Decimal("100"), TIERS, duration) == Decimal(expected)


def test_missing_tiers_fall_back_to_daily_rate():
    assert price_rental(100, TieredRates(), 5) == Decimal("500")
    assert price_rental(100, None, 5) == Decimal("500")
    only_three = TieredRates(three_day=Decimal("250"))
    assert price_rental(100, only_three, 8) == Decimal("250")
    only_seven = TieredRates(seven_day=Decimal("400"))
    assert price_rental(100, only_seven, 4) == Decimal("400")


def test_price_is_never_negative():
    assert price_rental(Decimal("-20"), TieredRates(), 4) == Decimal("0")
    assert price_rental(Decimal("0"), TieredRates(), 4) == Decimal("0")
    assert price_rental(Decimal("100"), TIERS, 0) == Decimal("0")


def test_grand_total_adds_deposit():
    assert compute_grand_total(Decimal("250"), Decimal("1000")) == Decimal("1250")
    assert compute_grand_total(19.99, 0.01) == Decimal("20.00")


def test_valid_range_passes():
    result = validate_rental_dates(date(2025, 1, 2), date(2025, 1, 5), [], TODAY)
    assert result == ValidationResult(valid=True)
    assert result.to_dict() == {"valid": True}


def test_missing_date_is_reported_first():
    result = validate_rental_dates(None, date(2025, 1, 5), [], TODAY)
    assert result.reason is RentalDateErrorKind.MISSING_DATE
    assert validate_rental_dates(date(2025, 1, 5), None, [], TODAY).reason is RentalDateErrorKind.MISSING_DATE


def test_past_start_wins_over_excess_duration():
    start = TODAY - timedelta(days=5)
    end = start + timedelta(days=39)
    result = validate_rental_dates(start, end, [], TODAY)
    assert not result.valid
    assert result.reason is RentalDateErrorKind.PAST_START_DATE


def test_start_today_is_allowed():
    assert validate_rental_dates(TODAY, TODAY, [], TODAY).valid


def test_end_before_start():
    result = validate_rental_dates(date(2025, 1, 10), date(2025, 1, 9), [], TODAY)
    assert result.reason is RentalDateErrorKind.END_BEFORE_START
    assert result.to_dict()["reason"] == "EndBeforeStart"


def test_duration_bounds():
    over = validate_rental_dates(date(2025, 1, 2), date(2025, 2, 1), [], TODAY)
    assert over.reason is RentalDateErrorKind.ABOVE_MAXIMUM_DURATION
    assert "30" in over.message

    exactly_max = validate_rental_dates(date(2025, 1, 2), date(2025, 1, 31), [], TODAY)
    assert exactly_max.valid

    under = validate_rental_dates(date(2025, 1, 2), date(2025, 1, 2), [], TODAY, min_days=2)
    assert under.reason is RentalDateErrorKind.BELOW_MINIMUM_DURATION


def test_blackout_date_in_range_is_rejected():
    result = validate_rental_dates(
        date(2025, 1, 10), date(2025, 1, 12), {date(2025, 1, 11)}, TODAY
    )
    assert result == ValidationResult(
        valid=False,
        reason=RentalDateErrorKind.DATE_UNAVAILABLE,
        message="Selected dates include unavailable periods",
    )


def test_blackout_date_outside_range_is_ignored():
    result = validate_rental_dates(
        date(2025, 1, 10), date(2025, 1, 12), [date(2025, 1, 9), date(2025, 1, 13)], TODAY
    )
    assert result.valid


def test_late_return_penalty():
    penalty = calculate_late_return_penalty(date(2025, 1, 13), date(2025, 1, 10), Decimal("200"), 2)
    assert penalty == Decimal("1200")


def test_late_return_penalty_uses_configured_multiplier():
    assert calculate_late_return_penalty(date(2025, 1, 11), date(2025, 1, 10), 200) == Decimal("400")


@pytest.mark.parametrize("actual", [date(2025, 1, 10), date(2025, 1, 8)])
def test_no_penalty_when_returned_on_time(actual):
    assert calculate_late_return_penalty(actual, date(2025, 1, 10), Decimal("200")) == Decimal("0")


def test_quote_rental_builds_breakdown():
    terms = RentalTerms(daily_rate=Decimal("100"), security_deposit=Decimal("1000"), tiered_rates=TIERS)
    quote = quote_rental(terms, date(2025, 1, 2), date(2025, 1, 4), [], TODAY)
    assert quote == RentalQuote(
        duration_days=3,
        rental_cost=Decimal("250"),
        security_deposit=Decimal("1000"),
        total_due=Decimal("1250"),
    )
    assert quote.to_dict()["total_due"] == 1250.0


def test_quote_rental_returns_validation_failure():
    terms = RentalTerms(daily_rate=Decimal("100"))
    outcome = quote_rental(terms, date(2025, 1, 2), date(2025, 1, 4), [date(2025, 1, 3)], TODAY)
    assert isinstance(outcome, ValidationResult)
    assert outcome.reason is RentalDateErrorKind.DATE_UNAVAILABLE


def test_quote_rental_refuses_sale_listing():
    with pytest.raises(TypeError):
        quote_rental(SaleTerms(unit_price=Decimal("899")), date(2025, 1, 2), date(2025, 1, 4), [], TODAY)


def test_date_helpers():
    assert date_range(date(2025, 1, 30), date(2025, 2, 2)) == [
        date(2025, 1, 30),
        date(2025, 1, 31),
        date(2025, 2, 1),
        date(2025, 2, 2),
    ]
    assert overlapping_dates(date(2025, 1, 1), date(2025, 1, 5), [date(2025, 1, 3), date(2025, 2, 3)]) == [
        date(2025, 1, 3)
    ]
    assert suggested_end_date(date(2025, 1, 10), 3) == date(2025, 1, 12)
    assert max_selectable_date(TODAY) == TODAY + timedelta(days=120)


def test_datetimes_are_treated_as_their_calendar_day():
    start = datetime(2025, 1, 10, 18, 30)
    end = datetime(2025, 1, 12, 9, 0)
    assert compute_rental_duration(start, end) == 3
    assert validate_rental_dates(start, end, [], datetime(2025, 1, 10, 23, 59)).valid
    assert validate_rental_dates(start, end, [datetime(2025, 1, 11, 12, 0)], TODAY).reason is (
        RentalDateErrorKind.DATE_UNAVAILABLE
    )
    assert validate_rental_dates(datetime(2024, 12, 31, 23, 0), end, [], TODAY).reason is (
        RentalDateErrorKind.PAST_START_DATE
    )
    penalty = calculate_late_return_penalty(datetime(2025, 1, 11, 8, 0), date(2025, 1, 10), 200, 2)
    assert penalty == Decimal("400")
