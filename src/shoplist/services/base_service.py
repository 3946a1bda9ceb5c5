"""Base service class with common functionality."""
from typing import TypeVar, Generic, Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from shoplist.config.settings import ShopListSettings, get_settings
from shoplist.utils.logger import get_logger

# Generic type for service results
T = TypeVar('T')


class Result(BaseModel, Generic[T]):
    """Generic result type for service operations."""
    success: bool
    data: Optional[T] = None
    error: str = ""
    suggestions: List[str] = []
    metadata: dict = {}

    # Allow arbitrary types (like Path)
    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def ok(cls, data: T, **metadata) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, suggestions: Optional[List[str]] = None) -> 'Result[T]':
        """Create a failed result."""
        return cls(success=False, error=error or "Unknown error", suggestions=suggestions or [])


class BaseService:
    """Base class for all services."""

    def __init__(self, settings: Optional[ShopListSettings] = None):
        """
        Initialize the service.

        Args:
            settings: Settings to use (default: cached application settings)
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(self.__class__.__name__)

    def _log_action(
        self,
        action: str,
        status: str = "success",
        **kwargs
    ) -> None:
        """
        Log a service action.

        Args:
            action: Name of the action
            status: Status of the action
            **kwargs: Additional log data
        """
        self.logger.info(
            f"{action}: {status}",
            **kwargs
        )

    def _get_now(self) -> datetime:
        """Get current local datetime (file timestamps are local)."""
        return datetime.now()

    def _validate_name(self, name: str, min_length: int = 1) -> Result[str]:
        """
        Validate a name string.

        Args:
            name: Name to validate
            min_length: Minimum length required

        Returns:
            Result containing the stripped name, or the reason it is invalid
        """
        if not name or not name.strip():
            return Result.fail("Name cannot be empty")

        name = name.strip()
        if len(name) < min_length:
            return Result.fail(
                f"Name must be at least {min_length} characters",
                suggestions=["Try a longer name"]
            )

        return Result.ok(name)
