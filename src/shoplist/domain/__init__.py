"""Domain package for ShopList."""
from .types import (
    ExportFormat,
    FormatKind,
    ListMetadata,
    ShoppingItem,
    SortOrder,
    WorkingSet,
    items_total,
    parse_price,
    parse_quantity,
)
from .errors import ShopListError, UnsupportedFormatError, ListNotFoundError

__all__ = [
    'ExportFormat', 'FormatKind', 'ListMetadata', 'ShoppingItem', 'SortOrder',
    'WorkingSet', 'items_total', 'parse_price', 'parse_quantity',
    'ShopListError', 'UnsupportedFormatError', 'ListNotFoundError',
]
