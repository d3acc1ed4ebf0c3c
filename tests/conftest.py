"""
Pytest configuration and fixtures shared by the engine, ledger and API tests.
"""

import os
import sys
import tempfile
from decimal import Decimal

import pytest

# The application engine binds at import time, so point it at a scratch
# database before anything from the package is imported.
_SCRATCH_DIR = tempfile.mkdtemp(prefix="rental_inventory_tests_")
os.environ["DATABASE_URL"] = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite:///{os.path.join(_SCRATCH_DIR, 'app.db')}",
)
os.environ.setdefault("STRUCTURED_LOGS_ENABLED", "false")

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sqlalchemy.orm import sessionmaker

from rental_inventory.database import Base, build_engine
from rental_inventory.models import ListingKind, Product
from rental_inventory.observability import reset_metrics
from rental_inventory.services.stock_ledger import VariantStockLedger


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def test_engine(tmp_path):
    """File-backed SQLite so several threads can share one database."""
    engine = build_engine(f"sqlite:///{(tmp_path / 'ledger.db').as_posix()}")
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine, future=True)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def ledger(db_session):
    return VariantStockLedger(db_session)


@pytest.fixture
def rental_product(db_session):
    product = Product(
        name="Lehenga Rental",
        listing_kind=ListingKind.RENTAL,
        daily_rate=Decimal("100.00"),
        three_day_rate=Decimal("250.00"),
        seven_day_rate=Decimal("400.00"),
        security_deposit=Decimal("1000.00"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def sale_product(db_session):
    product = Product(
        name="Cotton Kurta",
        listing_kind=ListingKind.SALE,
        price=Decimal("899.00"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def make_variant(ledger, sale_product):
    """Create an active variant and return its id."""
    counter = {"n": 0}

    def _make(stock: int = 10, product=None, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("size", f"S{counter['n']}")
        kwargs.setdefault("color", "Red")
        result = ledger.create_variant((product or sale_product).productID, initial_stock=stock, **kwargs)
        assert result.success, result.message
        return result.snapshot.id

    return _make
