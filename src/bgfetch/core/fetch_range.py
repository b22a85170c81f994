"""Fetch range and page planning shared by both runner variants.

Percent math:
    page_progress = 100 / (count / page_size)
    each page adds round(page_progress)   # built-in round: half-to-even
    running total is clamped to 100

Clamping only removes overshoot on a short final page
(count=500, page_size=200 -> 40, 80, 100). Undershoot is kept
(count=300, page_size=100 -> 33, 66, 99).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

MAX_PERCENT = 100


@dataclass(frozen=True)
class FetchRange:
    """Items to fetch: ``count`` items starting at ``offset``, ``page_size`` per call."""

    offset: int
    count: int
    page_size: int

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")
        if self.count <= 0:
            raise ValueError(f"count must be > 0, got {self.count}")
        if self.page_size <= 0:
            raise ValueError(f"page_size must be > 0, got {self.page_size}")

    @property
    def total_pages(self) -> int:
        return math.ceil(self.count / self.page_size)

    @property
    def page_progress(self) -> float:
        """Percentage attributable to one page (not rounded)."""
        return 100.0 / (self.count / self.page_size)

    def page_starts(self) -> range:
        return range(self.offset, self.offset + self.count, self.page_size)

    def __str__(self) -> str:
        return f"FetchRange(offset={self.offset}, count={self.count}, page_size={self.page_size})"


@dataclass(frozen=True)
class PageStep:
    """One planned page: where to fetch and the percent to report once fetched."""

    index: int
    start: int
    size: int
    percent: int


def plan_pages(fetch_range: FetchRange) -> List[PageStep]:
    """Return the page schedule for ``fetch_range``.

    Every page fetches a full ``page_size`` items, including a short final page.
    """
    increment = round(fetch_range.page_progress)
    steps: List[PageStep] = []
    percent = 0
    for index, start in enumerate(fetch_range.page_starts()):
        percent = min(MAX_PERCENT, percent + increment)
        steps.append(PageStep(index=index, start=start, size=fetch_range.page_size, percent=percent))
    return steps
