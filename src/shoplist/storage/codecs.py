"""Read/write logic for every supported list format.

Each FormatKind maps to a Codec holding two plain functions: ``parse`` turns
file bytes into items and ``serialize`` renders items plus list metadata into
file bytes. Parsing is lenient: malformed numeric fields become zero and rows
that cannot be split into fields are skipped. Serialization always recomputes
line totals and the grand total from the items themselves.
"""
import csv
import io
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

from openpyxl import Workbook, load_workbook

from shoplist.config.settings import get_settings
from shoplist.domain.errors import UnsupportedFormatError
from shoplist.domain.types import (
    FormatKind,
    ListMetadata,
    ShoppingItem,
    ItemId,
    items_total,
    parse_price,
    parse_quantity,
)
from .detector import is_separator_line

STANDARD_SEPARATOR = ": "
LEGACY_SEPARATOR = ":"
COMMENT_PREFIX = "#"
TITLE_PREFIX = "Shopping List: "
COLUMN_HEADER = ["Item", "Price", "Quantity", "Total"]
SHEET_TITLE = "Shopping List"

ParseFn = Callable[[bytes], List[ShoppingItem]]
SerializeFn = Callable[[Sequence[ShoppingItem], ListMetadata, datetime], bytes]


class Codec(NamedTuple):
    """Parse/serialize pair for one FormatKind; serialize is None if read-only."""
    parse: ParseFn
    serialize: Optional[SerializeFn]


def _decode(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


def _format_timestamp(value: datetime) -> str:
    return value.strftime(get_settings().DATE_FORMAT)


def _cell_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _make_item(index: int, name: Any, price: Any = None, quantity: Any = None) -> ShoppingItem:
    return ShoppingItem(
        id=ItemId(index),
        name=_cell_text(name),
        price=parse_price(price),
        quantity=parse_quantity(quantity),
    )


# Plain text, standard dialect

def parse_standard_text(data: bytes) -> List[ShoppingItem]:
    """Parse ``name: price: quantity`` lines; comments and blank lines are skipped."""
    items: List[ShoppingItem] = []
    for line in _decode(data).splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIX):
            continue
        if STANDARD_SEPARATOR not in line:
            continue
        parts = line.split(STANDARD_SEPARATOR)
        items.append(_make_item(
            len(items),
            parts[0],
            parts[1] if len(parts) > 1 else None,
            parts[2] if len(parts) > 2 else None,
        ))
    return items


def serialize_standard_text(
    items: Sequence[ShoppingItem],
    metadata: ListMetadata,
    exported_at: datetime
) -> bytes:
    lines = [
        f"{COMMENT_PREFIX} {TITLE_PREFIX}{metadata.name}",
        f"{COMMENT_PREFIX} Created {_format_timestamp(metadata.created_at)}",
        f"{COMMENT_PREFIX} Exported {_format_timestamp(exported_at)}",
    ]
    for item in items:
        lines.append(STANDARD_SEPARATOR.join(
            [item.name, str(item.price), str(item.quantity), str(item.line_total)]
        ))
    lines.append(f"{COMMENT_PREFIX} Total {items_total(items)}")
    return ("\n".join(lines) + "\n").encode("utf-8")


# Plain text, legacy banner dialect (read-only)

def _is_caption(parts: Sequence[str]) -> bool:
    return [p.strip().lower() for p in parts[:3]] == ["item", "price", "quantity"]


def parse_legacy_text(data: bytes) -> List[ShoppingItem]:
    """
    Parse the banner format.

    Every dashed separator line flips the "inside item rows" flag; only
    colon-delimited lines seen while the flag is set become items. A block
    holding nothing but the ``Item: Price: Quantity`` caption is a column
    header, so the separator that closes it opens the item rows instead.
    """
    items: List[ShoppingItem] = []
    inside_items = False
    caption_only = False
    for line in _decode(data).splitlines():
        if is_separator_line(line):
            if inside_items and caption_only:
                caption_only = False
            else:
                inside_items = not inside_items
            continue
        if not inside_items or LEGACY_SEPARATOR not in line:
            if inside_items and line.strip():
                caption_only = False
            continue
        parts = line.split(LEGACY_SEPARATOR)
        if _is_caption(parts):
            caption_only = not items
            continue
        caption_only = False
        if len(parts) < 3:
            continue
        items.append(_make_item(len(items), parts[0], parts[1], parts[2]))
    return items


# Tabular layouts shared by CSV and spreadsheet

def _is_column_header(row: Sequence[Any]) -> bool:
    cells = [_cell_text(cell).lower() for cell in row[:2]]
    return cells == ["item", "price"]


def _is_short_row(cells: Sequence[Any]) -> bool:
    # Covers blank rows and the trailing "Total,,,<sum>" row too
    return _cell_text(cells[0]) == "" or (_cell_text(cells[1]) == "" and _cell_text(cells[2]) == "")


def _rows_to_items(rows: Sequence[Sequence[Any]]) -> List[ShoppingItem]:
    """
    Map rows positionally to name, price, quantity.

    Row 0 is always a header. When the export preamble is present, everything
    up to the column header row and the trailing total row are skipped too.
    Rows without a name or without any numeric field are skipped.
    """
    body = list(rows[1:])
    for index, row in enumerate(body):
        if _is_column_header(row):
            body = body[index + 1:]
            break

    items: List[ShoppingItem] = []
    for row in body:
        cells = list(row[:3]) + [None] * (3 - len(row[:3]))
        if _is_short_row(cells):
            continue
        items.append(_make_item(len(items), cells[0], cells[1], cells[2]))
    return items


def _table_rows(items: Sequence[ShoppingItem], metadata: ListMetadata, exported_at: datetime):
    yield [f"{TITLE_PREFIX}{metadata.name}"]
    yield ["Created", _format_timestamp(metadata.created_at)]
    yield ["Exported", _format_timestamp(exported_at)]
    yield list(COLUMN_HEADER)
    for item in items:
        yield [item.name, item.price, item.quantity, item.line_total]
    yield ["Total", "", "", items_total(items)]


# CSV

def parse_csv(data: bytes) -> List[ShoppingItem]:
    rows = list(csv.reader(io.StringIO(_decode(data))))
    return _rows_to_items(rows)


def serialize_csv(
    items: Sequence[ShoppingItem],
    metadata: ListMetadata,
    exported_at: datetime
) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in _table_rows(items, metadata, exported_at):
        writer.writerow([str(cell) for cell in row])
    return buffer.getvalue().encode("utf-8")


# Spreadsheet (.xlsx)

def parse_spreadsheet(data: bytes) -> List[ShoppingItem]:
    workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = [tuple(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()
    return _rows_to_items(rows)


def serialize_spreadsheet(
    items: Sequence[ShoppingItem],
    metadata: ListMetadata,
    exported_at: datetime
) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_TITLE
    for row in _table_rows(items, metadata, exported_at):
        # Numeric columns are stored as numbers, not text
        sheet.append([
            float(cell) if isinstance(cell, Decimal) else cell
            for cell in row
        ])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


CODECS: Dict[FormatKind, Codec] = {
    FormatKind.PLAIN_TEXT_STANDARD: Codec(parse_standard_text, serialize_standard_text),
    FormatKind.PLAIN_TEXT_LEGACY: Codec(parse_legacy_text, None),
    FormatKind.CSV: Codec(parse_csv, serialize_csv),
    FormatKind.SPREADSHEET: Codec(parse_spreadsheet, serialize_spreadsheet),
}


def parse(kind: FormatKind, data: bytes) -> List[ShoppingItem]:
    """Parse file bytes with the codec for ``kind``."""
    return CODECS[kind].parse(data)


def serialize(
    kind: FormatKind,
    items: Sequence[ShoppingItem],
    metadata: ListMetadata,
    exported_at: Optional[datetime] = None
) -> bytes:
    """
    Serialize items with the codec for ``kind``.

    Args:
        kind: Target format; the legacy dialect cannot be written
        items: Items to write, in order
        metadata: List whose name and creation time go into the preamble
        exported_at: Export timestamp (default: now)

    Returns:
        The complete file content

    Raises:
        UnsupportedFormatError: If ``kind`` is read-only
    """
    codec = CODECS[kind]
    if codec.serialize is None:
        raise UnsupportedFormatError(f"Format '{kind.value}' is read-only")
    return codec.serialize(items, metadata, exported_at or datetime.now())
