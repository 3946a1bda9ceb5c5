"""Registry of known lists, rebuilt by scanning the storage directory."""
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from shoplist.domain.errors import ListNotFoundError, UnsupportedFormatError
from shoplist.domain.types import (
    ListId,
    ListMetadata,
    SortOrder,
    items_total,
    list_id_for_path,
)
from shoplist.storage.files import read_list_file
from shoplist.utils.events import Observable
from .base_service import BaseService, Result

# "<name>_<epochMillis>" file stems
_STEM_PATTERN = re.compile(r"^(?P<name>.+)_(?P<millis>\d{10,})$")

_SORT_KEYS = {
    SortOrder.LAST_MODIFIED: lambda meta: meta.last_modified_at,
    SortOrder.CREATED_DATE: lambda meta: meta.created_at,
    SortOrder.TOTAL_AMOUNT: lambda meta: meta.total_amount,
}


def display_name_for(path: Path) -> str:
    """List name from a storage file name, without the creation-millis suffix."""
    match = _STEM_PATTERN.match(path.stem)
    return match.group("name") if match else path.stem


class ListRegistry(BaseService):
    """In-memory index of list metadata, kept in an explicit sort order."""

    def __init__(self, settings=None):
        super().__init__(settings)
        self._lists: List[ListMetadata] = []
        self._lock = threading.RLock()
        self._changes: Observable[Tuple[ListMetadata, ...]] = Observable()
        self.sort_order = SortOrder(self.settings.DEFAULT_SORT_ORDER)

    @property
    def lists(self) -> Tuple[ListMetadata, ...]:
        """Read-only snapshot of the registry in its current order."""
        with self._lock:
            return tuple(self._lists)

    def subscribe(self, listener: Callable[[Tuple[ListMetadata, ...]], None]) -> Callable[[], None]:
        """Be notified with a fresh snapshot after every registry change."""
        return self._changes.subscribe(listener)

    def _publish(self) -> None:
        self._changes.publish(self.lists)

    def get(self, list_id: str) -> Optional[ListMetadata]:
        with self._lock:
            return next((meta for meta in self._lists if meta.id == list_id), None)

    def require(self, list_id: str) -> ListMetadata:
        """Like get(), but raises ListNotFoundError for an unknown id."""
        metadata = self.get(list_id)
        if metadata is None:
            raise ListNotFoundError(
                "List not found",
                suggestions=["Rescan the storage directory to refresh the list index"],
                metadata={"list_id": list_id}
            )
        return metadata

    def _read_metadata(self, path: Path) -> ListMetadata:
        _, items = read_list_file(path)
        modified = datetime.fromtimestamp(path.stat().st_mtime)
        return ListMetadata(
            id=list_id_for_path(path),
            name=display_name_for(path),
            created_at=modified,
            last_modified_at=modified,
            total_amount=items_total(items),
            storage_path=path,
        )

    def scan(self, directory: Optional[Path] = None) -> List[ListMetadata]:
        """
        Rebuild the registry from the files directly inside ``directory``.

        Files with an unsupported format or that fail to parse are left out.
        Any directory-level I/O failure degrades to an empty registry.

        Args:
            directory: Storage directory (default: settings.STORAGE_DIR)

        Returns:
            The registry contents after the scan, sorted by the current order
        """
        directory = Path(directory or self.settings.STORAGE_DIR)
        found: List[ListMetadata] = []
        try:
            if not directory.exists():
                directory.mkdir(parents=True, exist_ok=True)
            paths = sorted(p for p in directory.iterdir() if p.is_file())
        except OSError:
            self.logger.exception("Failed to scan storage directory", directory=str(directory))
            paths = []

        for path in paths:
            try:
                found.append(self._read_metadata(path))
            except UnsupportedFormatError:
                self.logger.debug("Skipping unsupported file", path=str(path))
            except Exception as e:
                self.logger.warning("Skipping unreadable list file", path=str(path), error=str(e))

        with self._lock:
            self._lists = found
            self._sort_locked()
        self._log_action("scan", directory=str(directory), count=len(found))
        self._publish()
        return list(self.lists)

    def _sort_locked(self) -> None:
        # sorted() is stable, reverse=True keeps ties in insertion order
        self._lists = sorted(self._lists, key=_SORT_KEYS[self.sort_order], reverse=True)

    def sort(self, order: Optional[SortOrder] = None) -> Tuple[ListMetadata, ...]:
        """Reorder the registry by ``order`` (default: the current order)."""
        with self._lock:
            if order is not None:
                self.sort_order = SortOrder(order)
            self._sort_locked()
        self._publish()
        return self.lists

    def change_sort_order(self, order: SortOrder) -> Tuple[ListMetadata, ...]:
        """Select a new sort order and apply it."""
        self._log_action("change_sort_order", order=SortOrder(order).value)
        return self.sort(order)

    def add(self, metadata: ListMetadata) -> None:
        """Append a new entry without reordering."""
        with self._lock:
            self._lists.append(metadata)
        self._publish()

    def replace(self, metadata: ListMetadata) -> bool:
        """Swap the entry with the same id in place; False if it is unknown."""
        with self._lock:
            for index, existing in enumerate(self._lists):
                if existing.id == metadata.id:
                    self._lists[index] = metadata
                    break
            else:
                return False
        self._publish()
        return True

    def discard(self, list_id: ListId) -> None:
        """Drop an entry without touching its file."""
        with self._lock:
            self._lists = [meta for meta in self._lists if meta.id != list_id]
        self._publish()

    def delete(self, list_id: ListId) -> Result[ListMetadata]:
        """
        Delete a list's backing file, then its registry entry.

        The entry is removed only if the file removal succeeds.

        Args:
            list_id: ID of the list to delete

        Returns:
            Result containing the removed metadata or error
        """
        try:
            metadata = self.require(list_id)
        except ListNotFoundError as e:
            return Result.fail(e.message, e.suggestions)

        try:
            metadata.storage_path.unlink(missing_ok=True)
        except OSError as e:
            self.logger.exception("Failed to delete list file", path=str(metadata.storage_path))
            return Result.fail(
                f"Could not delete '{metadata.name}': {e.strerror or e}",
                suggestions=["Check that the file is not locked or read-only"]
            )

        self.discard(list_id)
        self._log_action("delete_list", list_id=list_id)
        return Result.ok(metadata)
