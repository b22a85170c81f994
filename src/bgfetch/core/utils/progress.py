"""Core progress and cancellation primitives (UI-agnostic)."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Tuple


@dataclass(frozen=True)
class ProgressReport:
    """Progress update emitted once per fetched page.

    Args:
        percent_complete: Running percentage, non-decreasing over a task.
        batch: Items fetched for this page, in fetch order.
    """

    percent_complete: int
    batch: Tuple[str, ...] = ()

    @property
    def item_count(self) -> int:
        return len(self.batch)


ProgressCallback = Callable[[ProgressReport], None]


class CancelledError(Exception):
    """Raised when a core operation observes a cancellation request."""


class CancellationToken:
    """Cooperative cancellation flag shared between the observer and a worker.

    Wraps ``threading.Event``: ``cancel()`` is the single write, ``is_cancelled``
    the read. Once cancelled it stays cancelled.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Safe to call repeatedly and from any thread."""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError("Operation was cancelled")
