"""Periodic auto-save task with cancel-and-replace semantics."""
import threading
from typing import Callable, Optional

from shoplist.utils.logger import get_logger

logger = get_logger(__name__)


class AutoSaveTask:
    """
    Runs a save callback on a fixed interval in a background thread.

    At most one worker is alive per task: ``start`` stops and joins any
    previous worker before spawning the next, so two savers never overlap.
    """

    def __init__(self, callback: Callable[[], object], interval: float):
        self._callback = callback
        self.interval = interval
        self._stop_flag: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            self._stop_locked()
            stop_flag = threading.Event()
            self._stop_flag = stop_flag
            self._thread = threading.Thread(
                target=self._run_forever,
                args=(stop_flag,),
                name="AutoSaveThread",
                daemon=True,
            )
            self._thread.start()
        logger.debug("Auto-save started", interval=self.interval)

    def stop(self) -> None:
        with self._lock:
            self._stop_locked()

    def _stop_locked(self) -> None:
        if self._stop_flag is not None:
            self._stop_flag.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join()
        self._stop_flag = None
        self._thread = None

    def _run_forever(self, stop_flag: threading.Event) -> None:
        # wait() returns True once stop is requested
        while not stop_flag.wait(self.interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Auto-save tick failed")
