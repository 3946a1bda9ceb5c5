"""Error types for the ShopList engine."""
from typing import Optional, List, Dict, Any


class ShopListError(Exception):
    """Base class for engine errors."""
    def __init__(
        self,
        message: str,
        suggestions: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.suggestions = suggestions or []
        self.metadata = metadata or {}
        super().__init__(message)


class UnsupportedFormatError(ShopListError):
    """File extension or content is not a known list format."""
    pass


class ListNotFoundError(ShopListError):
    """No registry entry with the requested id."""
    pass
