"""Observer-owned state for the fetch window, with callback registries.

All mutation happens on the observer's context (the NiceGUI event loop, or
the test thread). Runners never touch this object directly; the controller
feeds it from the messages they deliver.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from bgfetch.core.utils.logging import get_logger

logger = get_logger(__name__)

LogEntry = Tuple[datetime, str]

LogChangedHandler = Callable[[LogEntry], None]
DataChangedHandler = Callable[[Sequence[str]], None]
ProgressChangedHandler = Callable[[int, bool], None]
ProcessingTimeChangedHandler = Callable[[Optional[str]], None]


class FetchState:
    """Log, fetched data, progress bar and processing-time status.

    Attributes:
        log: ``(timestamp, message)`` entries, newest first.
        data: Every item received so far, in arrival order.
        progress: Last reported percentage (0-100).
        progress_visible: Whether a task is in flight.
        processing_time: Terminal status text, ``"Calculating..."`` while running.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self.log: List[LogEntry] = []
        self.data: List[str] = []
        self.progress: int = 0
        self.progress_visible: bool = False
        self.processing_time: Optional[str] = None

        self._log_changed_handlers: List[LogChangedHandler] = []
        self._data_changed_handlers: List[DataChangedHandler] = []
        self._progress_changed_handlers: List[ProgressChangedHandler] = []
        self._processing_time_changed_handlers: List[ProcessingTimeChangedHandler] = []

    # Registration methods
    def on_log_changed(self, handler: LogChangedHandler) -> None:
        """Register callback receiving each new log entry."""
        self._log_changed_handlers.append(handler)

    def on_data_changed(self, handler: DataChangedHandler) -> None:
        """Register callback receiving each appended batch."""
        self._data_changed_handlers.append(handler)

    def on_progress_changed(self, handler: ProgressChangedHandler) -> None:
        """Register callback receiving ``(progress, visible)``."""
        self._progress_changed_handlers.append(handler)

    def on_processing_time_changed(self, handler: ProcessingTimeChangedHandler) -> None:
        """Register callback receiving the new status text."""
        self._processing_time_changed_handlers.append(handler)

    # State mutation methods that trigger callbacks
    def write_log(self, message: str) -> LogEntry:
        """Prepend a timestamped entry to the log."""
        entry = (self._clock(), message)
        self.log.insert(0, entry)
        logger.info(message)
        self._notify(self._log_changed_handlers, "log_changed", entry)
        return entry

    def append_data(self, batch: Sequence[str]) -> None:
        self.data.extend(batch)
        self._notify(self._data_changed_handlers, "data_changed", batch)

    def set_progress(self, value: int, *, visible: Optional[bool] = None) -> None:
        self.progress = value
        if visible is not None:
            self.progress_visible = visible
        self._notify(self._progress_changed_handlers, "progress_changed", self.progress, self.progress_visible)

    def show_progress(self) -> None:
        self.set_progress(0, visible=True)

    def hide_progress(self) -> None:
        self.set_progress(self.progress, visible=False)

    def set_processing_time(self, value: Optional[str]) -> None:
        if value == self.processing_time:
            return
        self.processing_time = value
        self._notify(self._processing_time_changed_handlers, "processing_time_changed", value)

    def _notify(self, handlers: list, name: str, *args) -> None:
        for handler in list(handlers):
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Error in {name} handler")
