"""Simulated slow paginated data source."""

from __future__ import annotations

import functools
import time
from typing import Callable, List, Sequence

from bgfetch.core.utils.logging import get_logger

logger = get_logger(__name__)

# Fixed per-call latency of the slow service, in seconds.
DEFAULT_LATENCY_S: float = 5.0

FetchFn = Callable[[int, int], Sequence[str]]


class FetchFailedError(RuntimeError):
    """A page could not be fetched (network error, timeout).

    ``fetch_results`` never raises this; fetch functions that wrap a real
    source may, and runners end the task on it without retrying.
    """

    def __init__(self, offset: int, page_size: int, reason: str = "") -> None:
        self.offset = offset
        self.page_size = page_size
        self.reason = reason
        msg = f"Failed to fetch {page_size} items at offset {offset}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


def fetch_results(offset: int, page_size: int, *, latency_s: float = DEFAULT_LATENCY_S) -> List[str]:
    """Return ``page_size`` items labelled ``"Item {n}"`` starting at ``offset``.

    Blocks the calling thread for ``latency_s`` seconds.
    """
    items = [f"Item {i}" for i in range(offset, offset + page_size)]
    if latency_s > 0:
        time.sleep(latency_s)
    logger.debug(f"fetched {len(items)} items at offset {offset}")
    return items


def make_fetcher(latency_s: float = DEFAULT_LATENCY_S) -> FetchFn:
    """Bind ``fetch_results`` to a latency so runners can call ``fetch(offset, page_size)``."""
    return functools.partial(fetch_results, latency_s=latency_s)
