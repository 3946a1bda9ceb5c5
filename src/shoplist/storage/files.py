"""File-level helpers: detect-and-parse on read, whole-file replace on write."""
import os
import tempfile
from pathlib import Path
from typing import List, Tuple

from shoplist.domain.errors import UnsupportedFormatError
from shoplist.domain.types import FormatKind, ShoppingItem
from . import codecs
from .detector import detect


def read_list_file(path: Path) -> Tuple[FormatKind, List[ShoppingItem]]:
    """
    Read and parse a list file, choosing the codec from its name and content.

    Args:
        path: File to read

    Returns:
        The detected format and the parsed items

    Raises:
        UnsupportedFormatError: If the format cannot be determined
        OSError: If the file cannot be read
    """
    path = Path(path)
    data = path.read_bytes()
    kind = detect(path.name, data)
    if kind is None:
        raise UnsupportedFormatError(
            f"Unsupported list format: {path.name}",
            suggestions=["Use a .txt, .csv or .xlsx file"]
        )
    return kind, codecs.parse(kind, data)


def write_atomic(path: Path, data: bytes) -> None:
    """Write the whole file or nothing: stage in the same directory, then replace."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
