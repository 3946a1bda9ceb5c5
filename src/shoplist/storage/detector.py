"""Format detection for list files."""
from pathlib import PurePath
from typing import Optional, Union

from shoplist.domain.types import FormatKind

LEGACY_BANNER = "Shopping List"
MIN_SEPARATOR_DASHES = 5

EXTENSION_KINDS = {
    ".csv": FormatKind.CSV,
    ".xlsx": FormatKind.SPREADSHEET,
}


def is_separator_line(line: str) -> bool:
    """True for a line made only of dashes (the legacy item block marker)."""
    stripped = line.strip()
    return len(stripped) >= MIN_SEPARATOR_DASHES and set(stripped) == {"-"}


def is_legacy_text(lines) -> bool:
    """A legacy file carries the banner and at least one dashed separator."""
    has_banner = False
    has_separator = False
    for line in lines:
        if is_separator_line(line):
            has_separator = True
        elif LEGACY_BANNER in line:
            has_banner = True
        if has_banner and has_separator:
            return True
    return False


def detect(file_name: str, content_sample: Union[bytes, str, None] = None) -> Optional[FormatKind]:
    """
    Choose the format of a list file.

    Args:
        file_name: File name or path; only the extension is inspected
        content_sample: Leading file content, needed only for .txt files

    Returns:
        The detected FormatKind, or None when the format is unsupported
    """
    extension = PurePath(file_name).suffix.lower()
    if extension in EXTENSION_KINDS:
        return EXTENSION_KINDS[extension]
    if extension != ".txt":
        return None

    if isinstance(content_sample, bytes):
        content_sample = content_sample.decode("utf-8", errors="replace")
    if content_sample and is_legacy_text(content_sample.splitlines()):
        return FormatKind.PLAIN_TEXT_LEGACY
    return FormatKind.PLAIN_TEXT_STANDARD
