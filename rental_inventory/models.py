# rental_inventory/models.py
from enum import Enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    Boolean,
    CheckConstraint,
    Index,
    text,
    Enum as SAEnum,
)
from sqlalchemy.orm import relationship

from rental_inventory.database import Base
from rental_inventory.rentals.pricing import (
    ListingTerms,
    RentalTerms,
    SaleTerms,
    TieredRates,
    to_decimal,
)


class ListingKind(str, Enum):
    SALE = "sale"
    RENTAL = "rental"


class RentalBookingStatus(str, Enum):
    BOOKED = "booked"
    ACTIVE = "active"
    RETURNED = "returned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Bookings in these states no longer hold their dates
RELEASED_BOOKING_STATUSES = (
    RentalBookingStatus.RETURNED,
    RentalBookingStatus.COMPLETED,
    RentalBookingStatus.CANCELLED,
)


def _utcnow():
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = 'Product'
    productID = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    listing_kind = Column(
        SAEnum(ListingKind, name="listing_kind", native_enum=False, validate_strings=True),
        default=ListingKind.SALE,
        nullable=False,
    )
    price = Column(Numeric(10, 2))
    daily_rate = Column(Numeric(10, 2))
    three_day_rate = Column(Numeric(10, 2))
    seven_day_rate = Column(Numeric(10, 2))
    security_deposit = Column(Numeric(10, 2), default=0)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    variants = relationship("ProductVariant", back_populates="product")

    @property
    def is_rental(self) -> bool:
        return ListingKind(self.listing_kind) == ListingKind.RENTAL

    def listing_terms(self) -> ListingTerms:
        if not self.is_rental:
            return SaleTerms(unit_price=to_decimal(self.price))
        return RentalTerms(
            daily_rate=to_decimal(self.daily_rate),
            security_deposit=to_decimal(self.security_deposit),
            tiered_rates=TieredRates(
                three_day=None if self.three_day_rate is None else to_decimal(self.three_day_rate),
                seven_day=None if self.seven_day_rate is None else to_decimal(self.seven_day_rate),
            ),
        )


class ProductVariant(Base):
    __tablename__ = 'ProductVariant'
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_variant_stock_non_negative"),
        CheckConstraint("reserved_quantity >= 0", name="ck_variant_reserved_non_negative"),
        CheckConstraint("reserved_quantity <= stock_quantity", name="ck_variant_reserved_within_stock"),
        # Only one active variant per size/color; inactive rows keep their history
        Index(
            "uq_variant_active_size_color",
            "productID",
            "size",
            "color",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    variantID = Column(Integer, primary_key=True, autoincrement=True)
    productID = Column(Integer, ForeignKey('Product.productID'), nullable=False, index=True)
    size = Column(String(50), nullable=False, default="")
    color = Column(String(50), nullable=False, default="")
    color_code = Column(String(20))
    sku_variant = Column(String(100), unique=True)
    stock_quantity = Column(Integer, nullable=False, default=0)
    reserved_quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    product = relationship("Product", back_populates="variants")
    bookings = relationship("RentalBooking", back_populates="variant")

    @property
    def available_quantity(self) -> int:
        return (self.stock_quantity or 0) - (self.reserved_quantity or 0)


class RentalBooking(Base):
    __tablename__ = 'RentalBooking'

    bookingID = Column(Integer, primary_key=True, autoincrement=True)
    variantID = Column(Integer, ForeignKey('ProductVariant.variantID'), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(
        SAEnum(RentalBookingStatus, name="rental_booking_status", native_enum=False, validate_strings=True),
        default=RentalBookingStatus.BOOKED,
        nullable=False,
    )
    created_at = Column(DateTime, default=_utcnow)

    variant = relationship("ProductVariant", back_populates="bookings")

    @property
    def blocks_dates(self) -> bool:
        return RentalBookingStatus(self.status) not in RELEASED_BOOKING_STATUSES
