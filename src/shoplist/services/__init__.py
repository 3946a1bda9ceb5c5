"""Services package for ShopList."""
from .base_service import Result
from .list_registry import ListRegistry
from .list_store import ListStore

__all__ = ['Result', 'ListRegistry', 'ListStore']
