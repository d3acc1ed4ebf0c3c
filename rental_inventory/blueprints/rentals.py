from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from flask import Blueprint, jsonify, request

from rental_inventory.config import Config
from rental_inventory.observability import increment_counter
from rental_inventory.rentals import (
    RentalQuote,
    RentalTerms,
    TieredRates,
    calculate_late_return_penalty,
    local_today,
    quote_rental,
)

rentals_bp = Blueprint("rentals", __name__)


class RequestPayloadError(ValueError):
    """The request body could not be turned into engine inputs."""


def json_object() -> Dict[str, Any]:
    """The request body as a JSON object; a missing body reads as empty."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise RequestPayloadError("Request body must be a JSON object")
    return payload


def parse_date(value: Any, field_name: str) -> Optional[date]:
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise RequestPayloadError(f"{field_name} must be a YYYY-MM-DD date") from exc


def parse_money(value: Any, field_name: str, required: bool = False) -> Optional[Decimal]:
    if value in (None, ""):
        if required:
            raise RequestPayloadError(f"{field_name} is required")
        return None
    if isinstance(value, bool):
        raise RequestPayloadError(f"{field_name} must be a number")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise RequestPayloadError(f"{field_name} must be a number") from exc
    if not amount.is_finite() or amount < 0:
        raise RequestPayloadError(f"{field_name} must be zero or greater")
    return amount


def _parse_dates(values: Any) -> List[date]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise RequestPayloadError("unavailable_dates must be a list of dates")
    return [parse_date(value, "unavailable_dates") for value in values if value]


@rentals_bp.errorhandler(RequestPayloadError)
def handle_bad_payload(exc: RequestPayloadError):
    return jsonify({"valid": False, "message": str(exc)}), 400


@rentals_bp.route("/rentals/quote", methods=["POST"])
def rental_quote():
    payload = json_object()
    tiers = payload.get("tiered_rates") or {}
    if not isinstance(tiers, dict):
        raise RequestPayloadError("tiered_rates must be an object")

    terms = RentalTerms(
        daily_rate=parse_money(payload.get("daily_rate"), "daily_rate", required=True),
        security_deposit=parse_money(payload.get("security_deposit"), "security_deposit") or Decimal("0"),
        tiered_rates=TieredRates(
            three_day=parse_money(tiers.get("three_day"), "tiered_rates.three_day"),
            seven_day=parse_money(tiers.get("seven_day"), "tiered_rates.seven_day"),
        ),
    )
    outcome = quote_rental(
        terms,
        parse_date(payload.get("start_date"), "start_date"),
        parse_date(payload.get("end_date"), "end_date"),
        _parse_dates(payload.get("unavailable_dates")),
        local_today(),
    )
    label = "valid" if isinstance(outcome, RentalQuote) else outcome.reason.value
    increment_counter("rental_quotes_total", labels={"outcome": label})
    return jsonify(outcome.to_dict())


@rentals_bp.route("/rentals/late-penalty", methods=["POST"])
def late_penalty():
    payload = json_object()
    expected = parse_date(payload.get("expected_return_date"), "expected_return_date")
    actual = parse_date(payload.get("actual_return_date"), "actual_return_date")
    if expected is None or actual is None:
        raise RequestPayloadError("expected_return_date and actual_return_date are required")

    multiplier = parse_money(payload.get("penalty_multiplier"), "penalty_multiplier")
    if multiplier is None:
        multiplier = Decimal(Config.LATE_RETURN_PENALTY_MULTIPLIER)
    daily_rate = parse_money(payload.get("daily_rate"), "daily_rate", required=True)

    penalty = calculate_late_return_penalty(actual, expected, daily_rate, multiplier)
    return jsonify({
        "late_days": max(0, (actual - expected).days),
        "penalty": float(penalty),
    })
