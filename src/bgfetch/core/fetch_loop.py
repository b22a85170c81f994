"""Blocking paginated fetch loop with progress and cooperative cancellation."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable, Optional

from bgfetch.core.fetch_range import FetchRange, plan_pages
from bgfetch.core.outcome import Cancelled, Completed, TaskOutcome
from bgfetch.core.utils.logging import get_logger
from bgfetch.core.utils.progress import CancellationToken, ProgressCallback, ProgressReport
from bgfetch.core.web_service import FetchFn, make_fetcher

logger = get_logger(__name__)


def run_fetch_loop(
    fetch_range: FetchRange,
    progress_cb: ProgressCallback,
    *,
    token: Optional[CancellationToken] = None,
    fetch_fn: Optional[FetchFn] = None,
    clock: Callable[[], float] = time.monotonic,
) -> TaskOutcome:
    """Fetch every page of ``fetch_range`` on the calling thread.

    The token is checked before each page, never during a fetch. Returns
    ``Cancelled()`` as soon as a check sees the token set, otherwise
    ``Completed(elapsed)`` once the range is exhausted.

    Args:
        fetch_range: Pages to fetch.
        progress_cb: Called once per page with the running percentage and batch.
        token: Cancellation token; None means the loop cannot be cancelled.
        fetch_fn: ``(offset, page_size) -> items``. Defaults to the slow service.
        clock: Monotonic seconds source used for the elapsed time.
    """
    if fetch_fn is None:
        fetch_fn = make_fetcher()

    start = clock()
    for step in plan_pages(fetch_range):
        if token is not None and token.is_cancelled:
            logger.info(f"cancelled before page {step.index + 1}/{fetch_range.total_pages}")
            return Cancelled()

        batch = tuple(fetch_fn(step.start, step.size))
        progress_cb(ProgressReport(percent_complete=step.percent, batch=batch))

    return Completed(elapsed=timedelta(seconds=clock() - start))
