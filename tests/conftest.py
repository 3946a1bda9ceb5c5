"""Test configuration and fixtures for ShopList."""
import pytest
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from shoplist.config.settings import ShopListSettings
from shoplist.domain.types import ListMetadata, ShoppingItem, list_id_for_path
from shoplist.services.list_registry import ListRegistry
from shoplist.services.list_store import ListStore


@pytest.fixture
def settings(tmp_path) -> ShopListSettings:
    """Settings pointing every directory into the test's temp dir."""
    return ShopListSettings(
        STORAGE_DIR=tmp_path / "Shopping Lists",
        EXPORT_DIR=tmp_path / "Downloads",
        AUTOSAVE_INTERVAL=60.0,  # Keep auto-save out of the way by default
        LOG_FILE=None,
    )


@pytest.fixture
def storage_dir(settings) -> Path:
    """Create and return the storage directory."""
    settings.STORAGE_DIR.mkdir(parents=True, exist_ok=True)
    return settings.STORAGE_DIR


@pytest.fixture
def registry(settings) -> ListRegistry:
    """Create an empty registry."""
    return ListRegistry(settings)


@pytest.fixture
def store(registry, settings):
    """Create a list store; auto-save is stopped after the test."""
    store = ListStore(registry, settings)
    yield store
    store.close()


@pytest.fixture
def grocery_items():
    """Milk and Bread, totalling 140.0."""
    return [
        ShoppingItem(id=0, name="Milk", quantity=2, price=Decimal("50.0")),
        ShoppingItem(id=1, name="Bread", quantity=1, price=Decimal("40.0")),
    ]


@pytest.fixture
def grocery_metadata(tmp_path) -> ListMetadata:
    """Metadata for a list named Groceries with fixed timestamps."""
    path = tmp_path / "Groceries_1704164645000.txt"
    return ListMetadata(
        id=list_id_for_path(path),
        name="Groceries",
        created_at=datetime(2024, 1, 2, 3, 4, 5),
        last_modified_at=datetime(2024, 1, 2, 3, 4, 5),
        total_amount=Decimal("0.0"),
        storage_path=path,
    )


@pytest.fixture
def exported_at() -> datetime:
    return datetime(2024, 1, 2, 4, 0, 0)
