"""async/await fetch runner.

The page loop is a coroutine on the observer's event loop. Each blocking fetch
is pushed to a worker thread with ``asyncio.to_thread`` and awaited, so the
loop stays responsive while a page is in flight. Cancellation goes through the
same ``CancellationToken`` as the thread runner: ``raise_if_cancelled()`` is
checked before each page and the resulting ``CancelledError`` is turned into a
``Cancelled()`` outcome by :meth:`AsyncFetchRunner.run`. A page that was in
flight when the cancel came is not reported.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
import time
import traceback
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

from bgfetch.core.fetch_range import FetchRange, plan_pages
from bgfetch.core.outcome import Cancelled, Completed, TaskOutcome, describe
from bgfetch.core.utils.logging import get_logger
from bgfetch.core.utils.progress import CancellationToken, CancelledError, ProgressReport
from bgfetch.core.web_service import FetchFn, make_fetcher

logger = get_logger(__name__)

ProgressHandler = Callable[[ProgressReport], Union[None, Awaitable[Any]]]
OnComplete = Callable[[TaskOutcome], None]
OnError = Callable[[BaseException, str], None]


class Progress:
    """Progress sink for the async loop.

    The handler may be a plain function or a coroutine function; a returned
    awaitable is awaited before the next page starts. The handler always runs
    on the event loop the sink was created on: reports coming from another
    thread go through :meth:`report_threadsafe`.

    Must be created while that loop is running.
    """

    def __init__(self, handler: Optional[ProgressHandler] = None) -> None:
        self._handler = handler
        self._loop = asyncio.get_running_loop()

    def report_threadsafe(self, report: ProgressReport) -> "concurrent.futures.Future[None]":
        """Schedule ``report`` on the owning loop from any thread."""
        return asyncio.run_coroutine_threadsafe(self.report(report), self._loop)

    async def report(self, report: ProgressReport) -> None:
        if self._handler is None:
            return
        result = self._handler(report)
        if inspect.isawaitable(result):
            await result


async def fetch_items(
    fetch_range: FetchRange,
    token: CancellationToken,
    progress: Progress,
    *,
    fetch_fn: Optional[FetchFn] = None,
    clock: Callable[[], float] = time.monotonic,
) -> timedelta:
    """Fetch every page of ``fetch_range`` and return the elapsed time.

    Raises:
        CancelledError: ``token`` was cancelled before a page started.
    """
    if fetch_fn is None:
        fetch_fn = make_fetcher()

    start = clock()
    for step in plan_pages(fetch_range):
        token.raise_if_cancelled()
        batch = await asyncio.to_thread(fetch_fn, step.start, step.size)
        await progress.report(ProgressReport(percent_complete=step.percent, batch=tuple(batch)))
    return timedelta(seconds=clock() - start)


class AsyncFetchRunner:
    """Run one paginated fetch at a time as an asyncio task."""

    def __init__(self, fetch_fn: Optional[FetchFn] = None) -> None:
        self._fetch_fn: FetchFn = fetch_fn if fetch_fn is not None else make_fetcher()
        self._next_job_id: int = 0
        self._active_job_id: int = 0
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def active_job_id(self) -> int:
        return self._active_job_id

    def is_running(self) -> bool:
        return self._token is not None

    def request_cancel(self) -> None:
        """Ask the running job to stop before its next page. No-op when idle."""
        token = self._token
        if token is None:
            logger.debug("request_cancel: no running job")
            return
        if token.is_cancelled:
            return
        logger.info(f"cancel requested for job {self._active_job_id}")
        token.cancel()

    async def run(
        self,
        fetch_range: FetchRange,
        *,
        on_progress: Optional[ProgressHandler] = None,
    ) -> TaskOutcome:
        """Fetch ``fetch_range`` and return ``Completed(elapsed)`` or ``Cancelled()``.

        Errors raised by the fetch function propagate to the caller.
        """
        job_id, token = self._begin_job(fetch_range)
        return await self._execute(job_id, token, fetch_range, on_progress)

    def start(
        self,
        fetch_range: FetchRange,
        *,
        on_progress: Optional[ProgressHandler] = None,
        on_complete: Optional[OnComplete] = None,
        on_error: Optional[OnError] = None,
    ) -> int:
        """Schedule the fetch on the running event loop and return its job id.

        The job counts as running as soon as this returns, so an immediate
        ``request_cancel()`` ends it before the first page. ``on_complete``
        receives the outcome, ``on_error`` any exception from the fetch function.
        """
        loop = asyncio.get_running_loop()
        job_id, token = self._begin_job(fetch_range)
        self._task = loop.create_task(
            self._execute_with_callbacks(job_id, token, fetch_range, on_progress, on_complete, on_error),
            name=f"AsyncFetchRunner-{job_id}",
        )
        return job_id

    async def wait(self) -> None:
        """Await the task scheduled by :meth:`start`, if any."""
        task = self._task
        if task is not None:
            await task

    def _begin_job(self, fetch_range: FetchRange) -> Tuple[int, CancellationToken]:
        if self._token is not None:
            logger.warning("start called while a job is still running; previous job is superseded")
        self._next_job_id += 1
        self._active_job_id = self._next_job_id
        self._token = CancellationToken()
        logger.info(f"starting job {self._active_job_id}: {fetch_range}")
        return self._active_job_id, self._token

    async def _execute(
        self,
        job_id: int,
        token: CancellationToken,
        fetch_range: FetchRange,
        on_progress: Optional[ProgressHandler],
    ) -> TaskOutcome:
        def deliver(report: ProgressReport) -> Union[None, Awaitable[Any]]:
            # Same rule as the thread runner: no progress after a cancel request.
            if token.is_cancelled:
                logger.debug(f"dropping progress {report.percent_complete}% of cancelled job {job_id}")
                return None
            if on_progress is None:
                return None
            return on_progress(report)

        try:
            elapsed = await fetch_items(fetch_range, token, Progress(deliver), fetch_fn=self._fetch_fn)
            outcome: TaskOutcome = Completed(elapsed=elapsed)
        except CancelledError:
            outcome = Cancelled()
        finally:
            if self._token is token:
                self._token = None

        logger.info(f"job {job_id} finished, operation was {describe(outcome)}")
        return outcome

    async def _execute_with_callbacks(
        self,
        job_id: int,
        token: CancellationToken,
        fetch_range: FetchRange,
        on_progress: Optional[ProgressHandler],
        on_complete: Optional[OnComplete],
        on_error: Optional[OnError],
    ) -> None:
        try:
            outcome = await self._execute(job_id, token, fetch_range, on_progress)
        except Exception as exc:
            logger.error(f"job {job_id} failed: {exc}")
            if on_error is None:
                raise
            on_error(exc, traceback.format_exc())
            return
        if on_complete:
            on_complete(outcome)
