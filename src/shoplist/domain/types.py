"""Domain types for ShopList."""
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, NewType

from pydantic import BaseModel, ConfigDict, Field


# Strong types for IDs
ListId = NewType('ListId', str)
ItemId = NewType('ItemId', int)

ZERO_PRICE = Decimal("0.0")

# Decimal exponent bound for quantities and prices; values outside it are
# treated as malformed
MAX_EXPONENT = 15


def _within_range(value: Decimal) -> bool:
    return value.is_finite() and (value.is_zero() or abs(value.adjusted()) <= MAX_EXPONENT)


def parse_quantity(raw: Any) -> int:
    """
    Parse a quantity leniently.

    Non-numeric or absurdly large input yields 0 instead of an error, so a
    corrupt field never hides an otherwise valid item.

    Args:
        raw: Raw value (string, int, float or None)

    Returns:
        The parsed quantity, or 0
    """
    if isinstance(raw, bool) or raw is None:
        return 0
    if isinstance(raw, int):
        value = Decimal(raw)
    elif isinstance(raw, (float, Decimal)):
        value = Decimal(str(raw))
    else:
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation:
            return 0
    if not _within_range(value):
        return 0
    return int(value)


def parse_price(raw: Any) -> Decimal:
    """
    Parse a unit price leniently.

    Args:
        raw: Raw value (string, int, float, Decimal or None)

    Returns:
        The parsed price, or Decimal("0.0") on non-numeric or out-of-range input
    """
    if isinstance(raw, bool) or raw is None:
        return ZERO_PRICE
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return ZERO_PRICE
    if not _within_range(value):
        return ZERO_PRICE
    return value


class FormatKind(str, Enum):
    """On-disk representations a list file can use."""
    PLAIN_TEXT_LEGACY = "plain_text_legacy"
    PLAIN_TEXT_STANDARD = "plain_text_standard"
    CSV = "csv"
    SPREADSHEET = "spreadsheet"


class ExportFormat(str, Enum):
    """Formats offered for export, each backed by a writable FormatKind."""
    TXT = "txt"
    CSV = "csv"
    EXCEL = "xlsx"

    @property
    def kind(self) -> FormatKind:
        return {
            ExportFormat.TXT: FormatKind.PLAIN_TEXT_STANDARD,
            ExportFormat.CSV: FormatKind.CSV,
            ExportFormat.EXCEL: FormatKind.SPREADSHEET,
        }[self]

    @property
    def extension(self) -> str:
        return f".{self.value}"


class SortOrder(str, Enum):
    """Registry orderings; every order sorts descending."""
    LAST_MODIFIED = "last_modified"
    CREATED_DATE = "created_date"
    TOTAL_AMOUNT = "total_amount"


class ShoppingItem(BaseModel):
    """Represents a line item in a shopping list."""
    id: ItemId
    name: str
    quantity: int = 0
    price: Decimal = ZERO_PRICE

    model_config = ConfigDict(frozen=True)

    @property
    def line_total(self) -> Decimal:
        """Quantity times unit price, always derived."""
        return self.price * self.quantity


def items_total(items: Iterable[ShoppingItem]) -> Decimal:
    """Sum of line totals over the given items."""
    return sum((item.line_total for item in items), ZERO_PRICE)


def list_id_for_path(path: Path) -> ListId:
    """Derive a stable, opaque list id from a storage path."""
    return ListId(uuid.uuid5(uuid.NAMESPACE_URL, str(Path(path).resolve())).hex)


class ListMetadata(BaseModel):
    """Summary record for a persisted list, shown in the overview."""
    id: ListId
    name: str
    created_at: datetime
    last_modified_at: datetime
    total_amount: Decimal = ZERO_PRICE
    storage_path: Path

    model_config = ConfigDict(frozen=True)


class WorkingSet(BaseModel):
    """The active list's items, bound to its metadata by id."""
    list_id: ListId
    items: tuple[ShoppingItem, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @property
    def total(self) -> Decimal:
        return items_total(self.items)

    def next_item_id(self) -> ItemId:
        """Next id as max(existing) + 1, or 0 for an empty set."""
        if not self.items:
            return ItemId(0)
        return ItemId(max(item.id for item in self.items) + 1)
