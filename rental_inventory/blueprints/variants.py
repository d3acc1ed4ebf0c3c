from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from rental_inventory.database import get_db
from rental_inventory.errors import STOCK_ERROR_STATUS, LedgerUnavailableError, StockContentionError
from rental_inventory.rentals import local_today
from rental_inventory.services.rental_quote_service import RentalQuoteService
from rental_inventory.services.stock_ledger import LedgerResult, VariantStockLedger

from .rentals import RequestPayloadError, json_object, parse_date

variants_bp = Blueprint("variants", __name__)
logger = logging.getLogger(__name__)


def _get_ledger() -> VariantStockLedger:
    return VariantStockLedger(get_db())


def _ledger_response(result: LedgerResult, success_status: int = 200):
    if result.success:
        return jsonify(result.to_dict()), success_status
    return jsonify(result.to_dict()), STOCK_ERROR_STATUS.get(result.error, 400)


@variants_bp.errorhandler(LedgerUnavailableError)
def handle_ledger_unavailable(exc: LedgerUnavailableError):
    logger.error("Stock ledger unavailable: %s", exc)
    reason = "contention" if isinstance(exc, StockContentionError) else "unavailable"
    return jsonify({"success": False, "error": reason, "message": "Inventory is temporarily unavailable, please retry"}), 503


@variants_bp.errorhandler(RequestPayloadError)
def handle_bad_payload(exc: RequestPayloadError):
    return jsonify({"success": False, "message": str(exc)}), 400


@variants_bp.route("/products/<int:product_id>/variants", methods=["GET"])
def list_product_variants(product_id: int):
    include_inactive = request.args.get("include_inactive", "").lower() in {"1", "true", "yes"}
    variants = _get_ledger().list_variants(product_id, include_inactive=include_inactive)
    return jsonify({"variants": [variant.to_dict() for variant in variants]})


@variants_bp.route("/products/<int:product_id>/variants", methods=["POST"])
def create_product_variant(product_id: int):
    payload = json_object()
    result = _get_ledger().create_variant(
        product_id,
        size=payload.get("size"),
        color=payload.get("color"),
        initial_stock=payload.get("stock_quantity", 0),
        color_code=payload.get("color_code"),
        sku_variant=payload.get("sku_variant"),
    )
    return _ledger_response(result, success_status=201)


@variants_bp.route("/variants/<int:variant_id>", methods=["GET"])
def get_variant(variant_id: int):
    snapshot = _get_ledger().get_variant(variant_id)
    if snapshot is None:
        return jsonify({"success": False, "error": "VariantNotFound", "message": "Variant not found"}), 404
    return jsonify({"success": True, "variant": snapshot.to_dict()})


@variants_bp.route("/variants/<int:variant_id>", methods=["DELETE"])
def delete_variant(variant_id: int):
    return _ledger_response(_get_ledger().soft_delete(variant_id))


@variants_bp.route("/variants/<int:variant_id>/reserve", methods=["POST"])
def reserve_stock(variant_id: int):
    return _ledger_response(_get_ledger().reserve(variant_id, json_object().get("quantity")))


@variants_bp.route("/variants/<int:variant_id>/release", methods=["POST"])
def release_stock(variant_id: int):
    return _ledger_response(_get_ledger().release(variant_id, json_object().get("quantity")))


@variants_bp.route("/variants/<int:variant_id>/add-stock", methods=["POST"])
def add_stock(variant_id: int):
    return _ledger_response(_get_ledger().add_stock(variant_id, json_object().get("quantity")))


@variants_bp.route("/variants/<int:variant_id>/reduce-stock", methods=["POST"])
def reduce_stock(variant_id: int):
    return _ledger_response(_get_ledger().reduce_stock(variant_id, json_object().get("quantity")))


@variants_bp.route("/variants/<int:variant_id>/unavailable-dates", methods=["GET"])
def variant_unavailable_dates(variant_id: int):
    service = RentalQuoteService(get_db())
    blocked = sorted(service.unavailable_dates_for_variant(variant_id))
    return jsonify({"variant_id": variant_id, "unavailable_dates": [day.isoformat() for day in blocked]})


@variants_bp.route("/variants/<int:variant_id>/rental-quote", methods=["POST"])
def variant_rental_quote(variant_id: int):
    payload = json_object()
    success, message, quote = RentalQuoteService(get_db()).quote_for_variant(
        variant_id,
        parse_date(payload.get("start_date"), "start_date"),
        parse_date(payload.get("end_date"), "end_date"),
        local_today(),
    )
    if not success:
        return jsonify({"success": False, "message": message}), 404
    return jsonify(quote)
