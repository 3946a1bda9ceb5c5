"""Minimal publish/subscribe for engine state snapshots."""
import threading
from typing import Callable, Generic, List, TypeVar

from shoplist.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')
Listener = Callable[[T], None]


class Observable(Generic[T]):
    """Holds listeners and pushes snapshots to them."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, snapshot: T) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                # A broken listener must not break the engine
                logger.exception("Listener failed", listener=repr(listener))
