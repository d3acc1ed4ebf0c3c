from .stock_ledger import LedgerResult, StockSnapshot, VariantStockLedger
from .rental_quote_service import RentalQuoteService

__all__ = [
    "LedgerResult",
    "StockSnapshot",
    "VariantStockLedger",
    "RentalQuoteService",
]
