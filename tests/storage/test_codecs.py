"""Tests for the per-format codecs."""
import csv
import io
import pytest
from decimal import Decimal

from openpyxl import Workbook, load_workbook

from shoplist.domain.errors import UnsupportedFormatError
from shoplist.domain.types import FormatKind, ShoppingItem, items_total
from shoplist.storage import codecs
from shoplist.storage.detector import detect


def _fields(items):
    return [(item.name, item.price, item.quantity) for item in items]


def test_standard_text_layout(grocery_items, grocery_metadata, exported_at):
    """Standard text output has a fixed, byte-stable layout."""
    data = codecs.serialize(
        FormatKind.PLAIN_TEXT_STANDARD, grocery_items, grocery_metadata, exported_at
    )
    assert data == (
        b"# Shopping List: Groceries\n"
        b"# Created 2024-01-02 03:04:05\n"
        b"# Exported 2024-01-02 04:00:00\n"
        b"Milk: 50.0: 2: 100.0\n"
        b"Bread: 40.0: 1: 40.0\n"
        b"# Total 140.0\n"
    )


def test_standard_text_output_is_not_legacy(grocery_items, grocery_metadata, exported_at):
    """Written text must never be detected as the legacy dialect."""
    data = codecs.serialize(
        FormatKind.PLAIN_TEXT_STANDARD, grocery_items, grocery_metadata, exported_at
    )
    assert detect("list.txt", data) == FormatKind.PLAIN_TEXT_STANDARD


@pytest.mark.parametrize("kind", [FormatKind.PLAIN_TEXT_STANDARD, FormatKind.CSV, FormatKind.SPREADSHEET])
def test_round_trip(kind, grocery_items, grocery_metadata, exported_at):
    """Parsing serialized output gives back the same items."""
    items = grocery_items + [
        ShoppingItem(id=7, name="Eggs, large", quantity=12, price=Decimal("0.25")),
    ]
    data = codecs.serialize(kind, items, grocery_metadata, exported_at)
    parsed = codecs.parse(kind, data)

    assert _fields(parsed) == _fields(items)
    assert [item.id for item in parsed] == [0, 1, 2]


def test_standard_text_lenient_fields():
    """Malformed numbers become zero; the item is kept."""
    parsed = codecs.parse(FormatKind.PLAIN_TEXT_STANDARD, b"Milk: abc: 3\n")
    assert len(parsed) == 1
    assert parsed[0].name == "Milk"
    assert parsed[0].price == Decimal("0.0")
    assert parsed[0].quantity == 3


def test_standard_text_skips_lines_without_separator():
    data = (
        b"\n"
        b"just a note\n"
        b"Milk: 50.0: 2\n"
        b"# Total 100.0\n"
        b"Tea:5\n"
        b"Bread: 40.0\n"
    )
    parsed = codecs.parse(FormatKind.PLAIN_TEXT_STANDARD, data)
    assert _fields(parsed) == [
        ("Milk", Decimal("50.0"), 2),
        ("Bread", Decimal("40.0"), 0),
    ]
    assert [item.id for item in parsed] == [0, 1]


def test_legacy_text_parse():
    """Only colon lines between separators become items."""
    data = (
        "Shopping List\n"
        "-----------------------------\n"
        "Item: Price: Quantity\n"
        "Milk: 50.0: 2\n"
        "Bread: oops: 1\n"
        "Tea: 5\n"
        "-----------------------------\n"
        "Total: Kshs. 100.0\n"
        "\n"
        "Last edited: 2024-01-02 03:04:05\n"
    ).encode("utf-8")
    parsed = codecs.parse(FormatKind.PLAIN_TEXT_LEGACY, data)
    assert _fields(parsed) == [
        ("Milk", Decimal("50.0"), 2),
        ("Bread", Decimal("0.0"), 1),
    ]


def test_legacy_text_flag_flips_on_every_separator():
    data = (
        "Shopping List\n"
        "-----\n"
        "Milk: 1: 1\n"
        "-----\n"
        "Ignored: 2: 2\n"
        "-----\n"
        "Eggs: 3: 3\n"
    ).encode("utf-8")
    parsed = codecs.parse(FormatKind.PLAIN_TEXT_LEGACY, data)
    assert [item.name for item in parsed] == ["Milk", "Eggs"]


def test_legacy_text_saved_layout():
    """The banner layout with its caption in a block of its own."""
    data = (
        "Shopping List\n"
        "-----------------------------\n"
        "Item: Price: Quantity\n"
        "-----------------------------\n"
        "Milk: 50.0: 2\n"
        "Bread: 40.0: 1\n"
        "-----------------------------\n"
        "Total: Kshs. 140.0\n"
        "\n"
        "Last edited: 2024-01-02 03:04:05\n"
    ).encode("utf-8")
    assert detect("Groceries_1704153845000.txt", data) == FormatKind.PLAIN_TEXT_LEGACY
    parsed = codecs.parse(FormatKind.PLAIN_TEXT_LEGACY, data)
    assert _fields(parsed) == [
        ("Milk", Decimal("50.0"), 2),
        ("Bread", Decimal("40.0"), 1),
    ]
    assert items_total(parsed) == Decimal("140.0")


def test_legacy_text_is_read_only(grocery_items, grocery_metadata):
    with pytest.raises(UnsupportedFormatError):
        codecs.serialize(FormatKind.PLAIN_TEXT_LEGACY, grocery_items, grocery_metadata)


def test_csv_layout(grocery_items, grocery_metadata, exported_at):
    """CSV has title, metadata rows, header, items and a total row."""
    data = codecs.serialize(FormatKind.CSV, grocery_items, grocery_metadata, exported_at)
    rows = list(csv.reader(io.StringIO(data.decode("utf-8"))))
    assert rows == [
        ["Shopping List: Groceries"],
        ["Created", "2024-01-02 03:04:05"],
        ["Exported", "2024-01-02 04:00:00"],
        ["Item", "Price", "Quantity", "Total"],
        ["Milk", "50.0", "2", "100.0"],
        ["Bread", "40.0", "1", "40.0"],
        ["Total", "", "", "140.0"],
    ]


def test_csv_plain_header():
    """A plain CSV skips its first row and ignores extra columns."""
    data = (
        b"Name,Cost,Qty,Notes\n"
        b"Milk,50.0,2,fresh\n"
        b"\n"
        b"Bread,n/a,1\n"
        b"Salt\n"
        b",5.0,1\n"
    )
    parsed = codecs.parse(FormatKind.CSV, data)
    assert _fields(parsed) == [
        ("Milk", Decimal("50.0"), 2),
        ("Bread", Decimal("0.0"), 1),
    ]
    assert [item.id for item in parsed] == [0, 1]


def test_csv_header_only():
    assert codecs.parse(FormatKind.CSV, b"Item,Price,Quantity\n") == []
    assert codecs.parse(FormatKind.CSV, b"") == []


def test_spreadsheet_numeric_cells(grocery_items, grocery_metadata, exported_at):
    """Quantities, prices and totals are stored as numbers."""
    data = codecs.serialize(FormatKind.SPREADSHEET, grocery_items, grocery_metadata, exported_at)
    workbook = load_workbook(io.BytesIO(data))
    sheet = workbook.worksheets[0]

    assert sheet.title == "Shopping List"
    assert sheet["A1"].value == "Shopping List: Groceries"
    assert sheet["B2"].value == "2024-01-02 03:04:05"
    assert [cell.value for cell in sheet[4]] == ["Item", "Price", "Quantity", "Total"]
    assert sheet["A5"].value == "Milk"
    assert sheet["B5"].data_type == "n"
    assert sheet["C5"].data_type == "n"
    assert sheet["C5"].value == 2
    assert sheet["A7"].value == "Total"
    assert sheet["D7"].value == pytest.approx(140.0)


@pytest.mark.parametrize("kind", [FormatKind.PLAIN_TEXT_STANDARD, FormatKind.CSV, FormatKind.SPREADSHEET])
def test_serialized_total_is_recomputed(kind, grocery_items, grocery_metadata, exported_at):
    """The written total comes from the items, never from stale metadata."""
    stale = grocery_metadata.model_copy(update={"total_amount": Decimal("999")})
    data = codecs.serialize(kind, grocery_items, stale, exported_at)

    if kind == FormatKind.SPREADSHEET:
        sheet = load_workbook(io.BytesIO(data)).worksheets[0]
        total = sheet.cell(row=sheet.max_row, column=4).value
        assert Decimal(str(total)) == items_total(grocery_items)
    else:
        text = data.decode("utf-8")
        assert "999" not in text
        assert "140.0" in text.strip().splitlines()[-1]


def test_spreadsheet_unreadable_cells_default_to_zero():
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["Item", "Price", "Quantity"])
    sheet.append(["Milk", "cheap", "two"])
    sheet.append(["Bread", 40, 1.0])
    buffer = io.BytesIO()
    workbook.save(buffer)

    parsed = codecs.parse(FormatKind.SPREADSHEET, buffer.getvalue())
    assert _fields(parsed) == [
        ("Milk", Decimal("0.0"), 0),
        ("Bread", Decimal("40"), 1),
    ]


def test_spreadsheet_corrupt_file_raises():
    """A broken workbook is a whole-file failure for the caller to handle."""
    with pytest.raises(Exception):
        codecs.parse(FormatKind.SPREADSHEET, b"not a zip file")
