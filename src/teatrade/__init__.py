"""Client library and list controllers for tea-trading records."""

from .client import TeaTradeClient
from .controller import FilteredListController
from .resources import CATALOG, OUT_LOTS, SELLING_PRICES, STOCK

__all__ = [
    "TeaTradeClient",
    "FilteredListController",
    "CATALOG",
    "OUT_LOTS",
    "STOCK",
    "SELLING_PRICES",
]
