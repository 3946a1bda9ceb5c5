"""Active list management: the working set, persistence, import and export."""
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple

from shoplist.domain.errors import ListNotFoundError, UnsupportedFormatError
from shoplist.domain.types import (
    ExportFormat,
    FormatKind,
    ItemId,
    ListId,
    ListMetadata,
    ShoppingItem,
    WorkingSet,
    ZERO_PRICE,
    list_id_for_path,
    parse_price,
    parse_quantity,
)
from shoplist.storage.codecs import serialize
from shoplist.storage.detector import EXTENSION_KINDS
from shoplist.storage.files import read_list_file, write_atomic
from shoplist.utils.events import Observable
from .autosave import AutoSaveTask
from .base_service import BaseService, Result
from .list_registry import ListRegistry, display_name_for

LISTS_DIR_NAME = "Shopping Lists"
EXPORTS_DIR_NAME = "Downloads"

_UNSAFE_FILE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def safe_file_name(name: str) -> str:
    """Replace characters that cannot appear in a file name."""
    return _UNSAFE_FILE_CHARS.sub("_", name).strip() or "list"


class ListStore(BaseService):
    """
    Owns the single active working set and mediates every mutation.

    Each mutation persists immediately, and a background task re-saves the
    active list on a fixed interval. All working-set changes and file writes
    run under one lock, so a list file never has two writers.
    """

    def __init__(self, registry: Optional[ListRegistry] = None, settings=None):
        super().__init__(settings)
        self.registry = registry or ListRegistry(self.settings)
        self.storage_dir = Path(self.settings.STORAGE_DIR)
        self.export_dir = Path(self.settings.EXPORT_DIR)
        self._working_set: Optional[WorkingSet] = None
        self._lock = threading.RLock()
        self._changes: Observable[Tuple[ShoppingItem, ...]] = Observable()
        self._autosave = AutoSaveTask(self._autosave_tick, self.settings.AUTOSAVE_INTERVAL)

    # State accessors

    @property
    def working_set(self) -> Optional[WorkingSet]:
        return self._working_set

    @property
    def items(self) -> Tuple[ShoppingItem, ...]:
        """Snapshot of the active list's items."""
        working_set = self._working_set
        return working_set.items if working_set else ()

    @property
    def active_list_id(self) -> Optional[ListId]:
        working_set = self._working_set
        return working_set.list_id if working_set else None

    @property
    def active_list(self) -> Optional[ListMetadata]:
        """Metadata of the active list, looked up in the registry by id."""
        list_id = self.active_list_id
        return self.registry.get(list_id) if list_id else None

    @property
    def autosave_running(self) -> bool:
        return self._autosave.running

    def subscribe(self, listener: Callable[[Tuple[ShoppingItem, ...]], None]) -> Callable[[], None]:
        """Be notified with the items snapshot after every working-set change."""
        return self._changes.subscribe(listener)

    def _set_working_set(self, working_set: Optional[WorkingSet]) -> None:
        self._working_set = working_set
        self._changes.publish(self.items)

    # Lifecycle

    def initialize(self, storage_root: Optional[Path] = None) -> List[ListMetadata]:
        """
        Point the store at its directories and scan for existing lists.

        Args:
            storage_root: Root holding the lists and exports directories
                (default: STORAGE_DIR and EXPORT_DIR from settings)

        Returns:
            The scanned registry contents
        """
        if storage_root is not None:
            root = Path(storage_root)
            self.storage_dir = root / LISTS_DIR_NAME
            self.export_dir = root / EXPORTS_DIR_NAME
        return self.registry.scan(self.storage_dir)

    def close(self) -> None:
        """Stop auto-saving; the active list stays loaded."""
        self._autosave.stop()

    def _autosave_tick(self) -> None:
        result = self.save()
        if not result.success:
            self.logger.warning("Auto-save failed", error=result.error)

    # List operations

    def _default_list_name(self, now: datetime) -> str:
        return f"{self.settings.DEFAULT_LIST_PREFIX}_{now:%Y-%m-%d_%H-%M-%S}"

    def _new_storage_path(self, name: str, now: datetime) -> Path:
        millis = int(now.timestamp() * 1000)
        while True:
            path = self.storage_dir / f"{safe_file_name(name)}_{millis}.txt"
            if not path.exists() and self.registry.get(list_id_for_path(path)) is None:
                return path
            millis += 1

    def create_new_list(
        self,
        name: Optional[str] = None,
        items: Sequence[ShoppingItem] = ()
    ) -> Result[ListMetadata]:
        """
        Create, register, activate and persist a new list.

        Args:
            name: Display name (default: a timestamped name)
            items: Initial items; ids are renumbered from 0

        Returns:
            Result containing the new list's metadata or error
        """
        now = self._get_now()
        name = (name or "").strip() or self._default_list_name(now)

        with self._lock:
            path = self._new_storage_path(name, now)
            # The registry name is the one a rescan would derive from the file
            name = display_name_for(path)
            metadata = ListMetadata(
                id=list_id_for_path(path),
                name=name,
                created_at=now,
                last_modified_at=now,
                total_amount=ZERO_PRICE,
                storage_path=path,
            )
            previous = self._working_set
            numbered = tuple(
                item.model_copy(update={"id": ItemId(index)})
                for index, item in enumerate(items)
            )

            self.registry.add(metadata)
            self._set_working_set(WorkingSet(list_id=metadata.id, items=numbered))
            save_result = self._save_locked()
            if not save_result.success:
                # Roll back so no list exists without a file
                self.registry.discard(metadata.id)
                self._set_working_set(previous)
                return Result.fail(save_result.error, save_result.suggestions)

        self._autosave.start()
        self._log_action("create_list", list_id=metadata.id, list_name=name)
        return Result.ok(save_result.data)

    def load_list(self, list_id: ListId) -> Result[List[ShoppingItem]]:
        """
        Load a registered list into the working set.

        Any unsaved state of the previously active list is discarded.

        Args:
            list_id: ID of the list to load

        Returns:
            Result containing the loaded items or error
        """
        try:
            metadata = self.registry.require(list_id)
        except ListNotFoundError as e:
            return Result.fail(e.message, e.suggestions)

        with self._lock:
            try:
                _, items = read_list_file(metadata.storage_path)
            except UnsupportedFormatError as e:
                return Result.fail(e.message, e.suggestions)
            except Exception:
                self.logger.exception("Failed to load list", path=str(metadata.storage_path))
                return Result.fail(f"Could not read list '{metadata.name}'")
            self._set_working_set(WorkingSet(list_id=metadata.id, items=tuple(items)))

        self._autosave.start()
        self._log_action("load_list", list_id=list_id, items=len(items))
        return Result.ok(list(items))

    def import_file(self, path: Path) -> Result[ListMetadata]:
        """
        Import an external list file as a new list.

        Nothing is created unless the whole file can be read and parsed.

        Args:
            path: File to import (.txt, .csv or .xlsx)

        Returns:
            Result containing the new list's metadata or error
        """
        path = Path(path)
        try:
            _, items = read_list_file(path)
        except UnsupportedFormatError as e:
            self.logger.info("Import rejected", path=str(path), reason=e.message)
            return Result.fail(e.message, e.suggestions)
        except Exception:
            self.logger.exception("Failed to import list", path=str(path))
            return Result.fail(
                f"Could not import '{path.name}'",
                suggestions=["Check that the file exists and is a valid list"]
            )
        return self.create_new_list(display_name_for(path), items=items)

    def delete_list(self, list_id: ListId) -> Result[ListMetadata]:
        """Delete a list; deleting the active list also clears the working set."""
        with self._lock:
            result = self.registry.delete(list_id)
            was_active = result.success and self.active_list_id == list_id
            if was_active:
                self._set_working_set(None)
        if was_active:
            self._autosave.stop()
        return result

    # Item operations

    def add_item(self, name: str, quantity: Any = 1, price: Any = 0) -> Result[ShoppingItem]:
        """
        Append an item to the active list and persist.

        Quantity and price are parsed leniently; unreadable values become zero.

        Args:
            name: Item name
            quantity: Raw quantity
            price: Raw unit price

        Returns:
            Result containing the new item or error
        """
        name_result = self._validate_name(str(name or ""))
        if not name_result.success:
            return Result.fail(name_result.error)

        with self._lock:
            working_set = self._working_set
            if working_set is None:
                return Result.fail("No active list")
            item = ShoppingItem(
                id=working_set.next_item_id(),
                name=name_result.data,
                quantity=parse_quantity(quantity),
                price=parse_price(price),
            )
            self._set_working_set(
                working_set.model_copy(update={"items": working_set.items + (item,)})
            )
            saved = self._save_locked()

        self._log_action("add_item", item_id=item.id, list_id=working_set.list_id)
        return Result.ok(item, saved=saved.success)

    def remove_item(self, item_id: ItemId) -> Result[ShoppingItem]:
        """Remove the item with ``item_id`` from the active list and persist."""
        with self._lock:
            working_set = self._working_set
            if working_set is None:
                return Result.fail("No active list")
            removed = next((item for item in working_set.items if item.id == item_id), None)
            if removed is None:
                return Result.fail("Item not found")
            remaining = tuple(item for item in working_set.items if item.id != item_id)
            self._set_working_set(working_set.model_copy(update={"items": remaining}))
            saved = self._save_locked()

        self._log_action("remove_item", item_id=item_id, list_id=working_set.list_id)
        return Result.ok(removed, saved=saved.success)

    def update_item(self, item: ShoppingItem) -> Result[ShoppingItem]:
        """Replace the item with the same id in the active list and persist."""
        with self._lock:
            working_set = self._working_set
            if working_set is None:
                return Result.fail("No active list")
            if not any(existing.id == item.id for existing in working_set.items):
                return Result.fail("Item not found")
            updated = tuple(
                item if existing.id == item.id else existing
                for existing in working_set.items
            )
            self._set_working_set(working_set.model_copy(update={"items": updated}))
            saved = self._save_locked()

        self._log_action("update_item", item_id=item.id, list_id=working_set.list_id)
        return Result.ok(item, saved=saved.success)

    # Persistence

    def save(self) -> Result[ListMetadata]:
        """
        Persist the working set to its bound file and refresh its registry entry.

        This is the only path that changes a list's metadata after creation.

        Returns:
            Result containing the updated metadata or error
        """
        with self._lock:
            return self._save_locked()

    def _save_locked(self) -> Result[ListMetadata]:
        working_set = self._working_set
        if working_set is None:
            return Result.fail("No active list")
        metadata = self.registry.get(working_set.list_id)
        if metadata is None:
            return Result.fail("List not found")

        now = self._get_now()
        path = metadata.storage_path
        kind = EXTENSION_KINDS.get(path.suffix.lower(), FormatKind.PLAIN_TEXT_STANDARD)
        try:
            write_atomic(path, serialize(kind, working_set.items, metadata, now))
        except Exception:
            self.logger.exception("Failed to save list", path=str(path))
            return Result.fail(
                f"Could not save list '{metadata.name}'",
                suggestions=["Check free disk space and directory permissions"]
            )

        updated = metadata.model_copy(update={
            "total_amount": working_set.total,
            "last_modified_at": now,
        })
        self.registry.replace(updated)
        self.logger.debug("Saved list", list_id=updated.id, total=str(updated.total_amount))
        return Result.ok(updated)

    def _new_export_path(self, name: str, now: datetime, extension: str) -> Path:
        stem = f"{safe_file_name(name)}_{now:%Y%m%d_%H%M%S}"
        path = self.export_dir / f"{stem}{extension}"
        counter = 1
        while path.exists():
            path = self.export_dir / f"{stem}_{counter}{extension}"
            counter += 1
        return path

    def export(self, export_format: ExportFormat) -> Result[Path]:
        """
        Write the active list to the export directory in ``export_format``.

        The list's own file and registry entry are left untouched.

        Args:
            export_format: Target format

        Returns:
            Result containing the exported file path, or a failed Result
            with no data when there is nothing to export
        """
        export_format = ExportFormat(export_format)
        with self._lock:
            working_set = self._working_set
            metadata = self.registry.get(working_set.list_id) if working_set else None
            if metadata is None or not working_set.items:
                return Result.fail("Nothing to export")

            now = self._get_now()
            path = self._new_export_path(metadata.name, now, export_format.extension)
            try:
                write_atomic(path, serialize(export_format.kind, working_set.items, metadata, now))
            except Exception:
                self.logger.exception("Failed to export list", path=str(path))
                return Result.fail(f"Could not export list '{metadata.name}'")

        self._log_action("export", list_id=metadata.id, format=export_format.value, path=str(path))
        return Result.ok(path)
