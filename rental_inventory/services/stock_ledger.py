from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from rental_inventory.config import Config
from rental_inventory.errors import (
    LedgerUnavailableError,
    StockContentionError,
    StockErrorKind,
)
from rental_inventory.models import Product, ProductVariant
from rental_inventory.observability import increment_counter, record_event, set_gauge

_HEX_COLOR = re.compile(r"^#(?:[0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})$")

_FAILURE_MESSAGES = {
    StockErrorKind.VARIANT_NOT_FOUND: "Variant not found",
    StockErrorKind.VARIANT_INACTIVE: "Variant is no longer active",
    StockErrorKind.DUPLICATE_VARIANT: 'Variant with size "{size}" and color "{color}" already exists for this product',
    StockErrorKind.INSUFFICIENT_STOCK: "Not enough stock to reserve {quantity}. Only {available} available",
    StockErrorKind.OVER_RELEASE: "Cannot release {quantity}. Only {reserved} reserved",
    StockErrorKind.INSUFFICIENT_AVAILABLE_STOCK: "Cannot reduce stock by {quantity}. Only {available} unreserved",
    StockErrorKind.INVALID_QUANTITY: "Quantity must be a positive whole number",
    StockErrorKind.PRODUCT_NOT_FOUND: "Product not found",
    StockErrorKind.DUPLICATE_SKU: 'SKU "{sku}" already exists',
    StockErrorKind.INVALID_COLOR_CODE: "color_code must be a valid hex color (e.g., #FF5733)",
}


@dataclass(frozen=True)
class StockSnapshot:
    id: int
    product_id: int
    stock_quantity: int
    reserved_quantity: int
    available_quantity: int
    is_active: bool

    @classmethod
    def from_variant(cls, variant: ProductVariant) -> "StockSnapshot":
        return cls(
            id=variant.variantID,
            product_id=variant.productID,
            stock_quantity=variant.stock_quantity,
            reserved_quantity=variant.reserved_quantity,
            available_quantity=variant.available_quantity,
            is_active=bool(variant.is_active),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "stock_quantity": self.stock_quantity,
            "reserved_quantity": self.reserved_quantity,
            "available_quantity": self.available_quantity,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class LedgerResult:
    success: bool
    message: str
    snapshot: Optional[StockSnapshot] = None
    error: Optional[StockErrorKind] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error is not None:
            payload["error"] = self.error.value
        if self.snapshot is not None:
            payload["variant"] = self.snapshot.to_dict()
        return payload


def _is_count(value: Any, minimum: int = 1) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum


# lock_not_available, serialization_failure, deadlock_detected
_PG_CONTENTION_CODES = {"55P03", "40001", "40P01"}
_SQLITE_CONTENTION_MESSAGES = ("database is locked", "database table is locked", "database is busy")


def _is_lock_contention(exc: OperationalError) -> bool:
    """True when the database refused the write because another transaction holds the lock."""
    if exc.connection_invalidated:
        return False
    if getattr(exc.orig, "pgcode", None) in _PG_CONTENTION_CODES:
        return True
    message = str(exc.orig).lower()
    return any(marker in message for marker in _SQLITE_CONTENTION_MESSAGES)


class VariantStockLedger:
    """
    Available vs. reserved stock per product variant.

    Every mutation runs as one guarded ``UPDATE ... WHERE`` inside its own
    transaction, so concurrent calls against the same variant behave as if they
    ran one after another. PostgreSQL serializes them on the row lock taken by
    the UPDATE, SQLite on its database write lock; either way the precondition
    is evaluated against committed data. A call that matches no row is
    diagnosed, rolled back and reported as a ``LedgerResult`` failure.

    Persistence failures are rolled back and raised as ``LedgerUnavailableError``.
    """

    def __init__(self, db_session: Session, config: type[Config] = Config) -> None:
        self.db = db_session
        self.config = config
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Catalog maintenance
    # ------------------------------------------------------------------
    def create_variant(
        self,
        product_id: int,
        size: Optional[str] = None,
        color: Optional[str] = None,
        initial_stock: int = 0,
        color_code: Optional[str] = None,
        sku_variant: Optional[str] = None,
    ) -> LedgerResult:
        if not _is_count(initial_stock, minimum=0):
            return self._reject("create", None, StockErrorKind.INVALID_QUANTITY)
        color_code = (color_code or "").strip() or None
        if color_code and not _HEX_COLOR.match(color_code):
            return self._reject("create", None, StockErrorKind.INVALID_COLOR_CODE)

        size = (size or "").strip()
        color = (color or "").strip()
        sku_variant = (sku_variant or "").strip() or None
        details = {"size": size, "color": color, "sku": sku_variant}

        def attempt() -> LedgerResult:
            product = (
                self.db.query(Product)
                .filter_by(productID=product_id, is_deleted=False)
                .first()
            )
            if product is None:
                self.db.rollback()
                return self._reject("create", None, StockErrorKind.PRODUCT_NOT_FOUND)

            conflict = self._find_conflict(product_id, size, color, sku_variant)
            if conflict is not None:
                self.db.rollback()
                return self._reject("create", None, conflict, **details)

            variant = ProductVariant(
                productID=product_id,
                size=size,
                color=color,
                color_code=color_code,
                sku_variant=sku_variant,
                stock_quantity=initial_stock,
                reserved_quantity=0,
                is_active=True,
            )
            self.db.add(variant)
            try:
                self.db.flush()
                snapshot = StockSnapshot.from_variant(variant)
                self.db.commit()
            except IntegrityError:
                # Lost a race with a concurrent create of the same combination
                self.db.rollback()
                conflict = self._find_conflict(product_id, size, color, sku_variant)
                self.db.rollback()
                return self._reject("create", None, conflict or StockErrorKind.DUPLICATE_VARIANT, **details)
            return LedgerResult(True, "Variant created successfully", snapshot)

        result = self._run_in_transaction("create", None, attempt)
        if result.success:
            self._publish("create", result.snapshot, initial_stock)
        return result

    def _find_conflict(
        self,
        product_id: int,
        size: str,
        color: str,
        sku_variant: Optional[str],
    ) -> Optional[StockErrorKind]:
        duplicate = (
            self.db.query(ProductVariant.variantID)
            .filter_by(productID=product_id, size=size, color=color, is_active=True)
            .first()
        )
        if duplicate is not None:
            return StockErrorKind.DUPLICATE_VARIANT
        if sku_variant:
            taken = self.db.query(ProductVariant.variantID).filter_by(sku_variant=sku_variant).first()
            if taken is not None:
                return StockErrorKind.DUPLICATE_SKU
        return None

    def soft_delete(self, variant_id: int) -> LedgerResult:
        """
        Mark a variant inactive.

        Outstanding reservations do not block the delete. Their counters stay
        on the inactive row for auditing; no further stock movement is allowed.
        """
        result = self._guarded_update(
            "soft_delete",
            variant_id,
            guards=[],
            values={ProductVariant.is_active: False},
            shortfall=None,
            success_message="Variant deleted successfully",
        )
        if result.success and result.snapshot.reserved_quantity:
            self.logger.warning(
                "Variant %s discontinued with %d units still reserved",
                variant_id,
                result.snapshot.reserved_quantity,
            )
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_variant(self, variant_id: int) -> Optional[StockSnapshot]:
        variant = (
            self.db.query(ProductVariant)
            .filter_by(variantID=variant_id, is_active=True)
            .first()
        )
        return StockSnapshot.from_variant(variant) if variant else None

    def list_variants(self, product_id: int, include_inactive: bool = False) -> List[StockSnapshot]:
        query = self.db.query(ProductVariant).filter_by(productID=product_id)
        if not include_inactive:
            query = query.filter_by(is_active=True)
        variants = query.order_by(ProductVariant.created_at.asc(), ProductVariant.variantID.asc()).all()
        return [StockSnapshot.from_variant(variant) for variant in variants]

    # ------------------------------------------------------------------
    # Stock movements
    # ------------------------------------------------------------------
    def reserve(self, variant_id: int, quantity: int) -> LedgerResult:
        """Hold ``quantity`` units against a pending order or rental."""
        if not _is_count(quantity):
            return self._reject("reserve", variant_id, StockErrorKind.INVALID_QUANTITY)
        return self._guarded_update(
            "reserve",
            variant_id,
            guards=[ProductVariant.stock_quantity - ProductVariant.reserved_quantity >= quantity],
            values={ProductVariant.reserved_quantity: ProductVariant.reserved_quantity + quantity},
            shortfall=StockErrorKind.INSUFFICIENT_STOCK,
            success_message="Stock reserved successfully",
            quantity=quantity,
        )

    def release(self, variant_id: int, quantity: int) -> LedgerResult:
        """Give back units held by a cancelled order or rental."""
        if not _is_count(quantity):
            return self._reject("release", variant_id, StockErrorKind.INVALID_QUANTITY)
        return self._guarded_update(
            "release",
            variant_id,
            guards=[ProductVariant.reserved_quantity >= quantity],
            values={ProductVariant.reserved_quantity: ProductVariant.reserved_quantity - quantity},
            shortfall=StockErrorKind.OVER_RELEASE,
            success_message="Stock released successfully",
            quantity=quantity,
        )

    def add_stock(self, variant_id: int, quantity: int) -> LedgerResult:
        if not _is_count(quantity):
            return self._reject("add_stock", variant_id, StockErrorKind.INVALID_QUANTITY)
        return self._guarded_update(
            "add_stock",
            variant_id,
            guards=[],
            values={ProductVariant.stock_quantity: ProductVariant.stock_quantity + quantity},
            shortfall=None,
            success_message="Stock added successfully",
            quantity=quantity,
        )

    def reduce_stock(self, variant_id: int, quantity: int) -> LedgerResult:
        """Remove unreserved units; reserved units must be released first."""
        if not _is_count(quantity):
            return self._reject("reduce_stock", variant_id, StockErrorKind.INVALID_QUANTITY)
        return self._guarded_update(
            "reduce_stock",
            variant_id,
            guards=[ProductVariant.stock_quantity - ProductVariant.reserved_quantity >= quantity],
            values={ProductVariant.stock_quantity: ProductVariant.stock_quantity - quantity},
            shortfall=StockErrorKind.INSUFFICIENT_AVAILABLE_STOCK,
            success_message="Stock reduced successfully",
            quantity=quantity,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _guarded_update(
        self,
        operation: str,
        variant_id: int,
        guards: List[Any],
        values: Dict[Any, Any],
        shortfall: Optional[StockErrorKind],
        success_message: str,
        quantity: int = 0,
    ) -> LedgerResult:
        def attempt() -> LedgerResult:
            self._apply_lock_timeout()
            matched = (
                self.db.query(ProductVariant)
                .filter(
                    ProductVariant.variantID == variant_id,
                    ProductVariant.is_active.is_(True),
                    *guards,
                )
                .update(values, synchronize_session=False)
            )
            variant = (
                self.db.query(ProductVariant)
                .populate_existing()
                .filter_by(variantID=variant_id)
                .first()
            )
            if matched:
                snapshot = StockSnapshot.from_variant(variant)
                self.db.commit()
                return LedgerResult(True, success_message, snapshot)

            if variant is None:
                kind = StockErrorKind.VARIANT_NOT_FOUND
            elif not variant.is_active:
                # Soft-deleted rows are invisible to deletes, visible as inactive to stock moves
                kind = StockErrorKind.VARIANT_NOT_FOUND if operation == "soft_delete" else StockErrorKind.VARIANT_INACTIVE
            else:
                kind = shortfall or StockErrorKind.VARIANT_NOT_FOUND
            fmt = {
                "quantity": quantity,
                "available": variant.available_quantity if variant else 0,
                "reserved": variant.reserved_quantity if variant else 0,
            }
            self.db.rollback()
            return self._reject(operation, variant_id, kind, **fmt)

        result = self._run_in_transaction(operation, variant_id, attempt)
        if result.success:
            self._publish(operation, result.snapshot, quantity)
        return result

    def _run_in_transaction(
        self,
        operation: str,
        variant_id: Optional[int],
        attempt: Callable[[], LedgerResult],
    ) -> LedgerResult:
        retries = max(1, self.config.STOCK_MUTATION_RETRIES)
        last_error: Optional[OperationalError] = None
        for attempt_number in range(1, retries + 1):
            try:
                return attempt()
            except OperationalError as exc:
                self.db.rollback()
                if not _is_lock_contention(exc):
                    raise self._unavailable(operation, variant_id) from exc
                last_error = exc
                self.logger.warning(
                    "Stock %s on variant %s hit contention (attempt %d/%d)",
                    operation,
                    variant_id,
                    attempt_number,
                    retries,
                )
            except SQLAlchemyError as exc:
                self.db.rollback()
                raise self._unavailable(operation, variant_id) from exc

        increment_counter("variant_stock_infrastructure_errors_total", labels={"operation": operation})
        self.logger.error("Stock %s on variant %s gave up after %d attempts", operation, variant_id, retries)
        raise StockContentionError(
            f"Variant {variant_id} is busy; {operation} did not complete after {retries} attempts"
        ) from last_error

    def _unavailable(self, operation: str, variant_id: Optional[int]) -> LedgerUnavailableError:
        increment_counter("variant_stock_infrastructure_errors_total", labels={"operation": operation})
        self.logger.exception("Stock %s on variant %s failed", operation, variant_id)
        return LedgerUnavailableError(f"Stock {operation} failed for variant {variant_id}")

    def _apply_lock_timeout(self) -> None:
        # SQLite bounds its wait through the connect timeout instead
        if self.db.get_bind().dialect.name == "postgresql":
            timeout_ms = int(self.config.DB_LOCK_TIMEOUT_SECONDS * 1000)
            self.db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))

    def _reject(self, operation: str, variant_id: Optional[int], kind: StockErrorKind, **fmt: Any) -> LedgerResult:
        message = _FAILURE_MESSAGES[kind].format(**fmt) if fmt else _FAILURE_MESSAGES[kind]
        increment_counter(
            "variant_stock_rejections_total",
            labels={"operation": operation, "reason": kind.value},
        )
        self.logger.info(
            "Stock %s rejected for variant %s: %s",
            operation,
            variant_id,
            kind.value,
        )
        return LedgerResult(False, message, None, kind)

    def _publish(self, operation: str, snapshot: StockSnapshot, quantity: int) -> None:
        increment_counter("variant_stock_mutations_total", labels={"operation": operation})
        set_gauge("variant_available_quantity", snapshot.available_quantity, labels={"variant_id": snapshot.id})
        record_event(
            "inventory_updated",
            {"operation": operation, "quantity": quantity, **snapshot.to_dict()},
        )
        if snapshot.is_active and snapshot.available_quantity <= self.config.LOW_STOCK_THRESHOLD:
            record_event(
                "variant_low_stock",
                {
                    "variant_id": snapshot.id,
                    "product_id": snapshot.product_id,
                    "available_quantity": snapshot.available_quantity,
                    "threshold": self.config.LOW_STOCK_THRESHOLD,
                },
            )
        self.logger.info(
            "Variant %s %s: stock=%d reserved=%d available=%d",
            snapshot.id,
            operation,
            snapshot.stock_quantity,
            snapshot.reserved_quantity,
            snapshot.available_quantity,
        )
