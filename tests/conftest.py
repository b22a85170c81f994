"""Pytest configuration and fixtures for bgfetch tests."""

from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional, Tuple

import pytest

from bgfetch.core.fetch_range import FetchRange
from bgfetch.core.web_service import fetch_results

# Range used by the desktop window: 5 pages of 100 starting at item 100.
REFERENCE_RANGE = FetchRange(offset=100, count=500, page_size=100)


class RecordingFetcher:
    """Fetch function that records its calls.

    ``on_call(n)`` runs after the n-th page (1-based) has been produced but
    before it is returned, i.e. while that fetch is still in flight from the
    runner's point of view.
    """

    def __init__(
        self,
        latency_s: float = 0.0,
        on_call: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.latency_s = latency_s
        self.on_call = on_call
        self.calls: List[Tuple[int, int]] = []
        self.threads: List[str] = []
        self._lock = threading.Lock()

    def __call__(self, offset: int, page_size: int) -> List[str]:
        with self._lock:
            self.calls.append((offset, page_size))
            self.threads.append(threading.current_thread().name)
            n = len(self.calls)
        items = fetch_results(offset, page_size, latency_s=self.latency_s)
        if self.on_call is not None:
            self.on_call(n)
        return items


class DummyTimer:
    """Stand-in for ``ui.timer``: the test calls ``tick()`` instead of the event loop."""

    def __init__(self, cb: Callable[[], None]) -> None:
        self._cb = cb
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def tick(self) -> None:
        if not self.cancelled:
            self._cb()


class DummyTimerFactory:
    """Records every timer created so tests can tick the latest one."""

    def __init__(self) -> None:
        self.timers: List[DummyTimer] = []
        self.intervals: List[float] = []

    def __call__(self, interval: float, cb: Callable[[], None]) -> DummyTimer:
        timer = DummyTimer(cb)
        self.timers.append(timer)
        self.intervals.append(interval)
        return timer

    @property
    def timer(self) -> DummyTimer:
        assert self.timers, "no timer was created"
        return self.timers[-1]

    def tick_until(self, done: Callable[[], bool], timeout_s: float = 5.0) -> None:
        start = time.time()
        while not done():
            self.timer.tick()
            if time.time() - start > timeout_s:
                raise AssertionError("timed out waiting for runner")
            time.sleep(0.005)


@pytest.fixture
def reference_range() -> FetchRange:
    return REFERENCE_RANGE


@pytest.fixture
def fetcher() -> RecordingFetcher:
    """Instant fetcher (no latency) that records its calls."""
    return RecordingFetcher()


@pytest.fixture
def timer_factory() -> DummyTimerFactory:
    return DummyTimerFactory()


@pytest.fixture
def make_recording_fetcher() -> Callable[..., RecordingFetcher]:
    """Factory for fetchers with a custom latency or ``on_call`` hook."""
    return RecordingFetcher
