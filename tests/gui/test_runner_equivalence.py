"""Both runners must report the same pages and percentages for the same range."""

from __future__ import annotations

from typing import TYPE_CHECKING, List

import pytest

from bgfetch.core.fetch_range import FetchRange
from bgfetch.core.outcome import Completed, TaskOutcome
from bgfetch.core.utils.progress import ProgressReport
from bgfetch.gui.async_job_runner import AsyncFetchRunner
from bgfetch.gui.thread_job_runner import ThreadFetchRunner

if TYPE_CHECKING:
    from tests.conftest import DummyTimerFactory, RecordingFetcher


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "fetch_range",
    [
        FetchRange(offset=100, count=500, page_size=100),
        FetchRange(offset=0, count=500, page_size=200),
        FetchRange(offset=7, count=300, page_size=100),
        FetchRange(offset=0, count=800, page_size=100),
    ],
    ids=str,
)
async def test_thread_and_async_reports_match(
    fetch_range: FetchRange,
    fetcher: RecordingFetcher,
    timer_factory: DummyTimerFactory,
) -> None:
    thread_reports: List[ProgressReport] = []
    thread_outcomes: List[TaskOutcome] = []

    thread_runner = ThreadFetchRunner(fetcher)
    thread_runner.start(
        fetch_range,
        ui_timer_factory=timer_factory,
        on_progress=thread_reports.append,
        on_complete=thread_outcomes.append,
    )
    timer_factory.tick_until(lambda: bool(thread_outcomes))

    async_reports: List[ProgressReport] = []
    async_outcome = await AsyncFetchRunner(fetcher).run(fetch_range, on_progress=async_reports.append)

    assert thread_reports == async_reports
    assert len(thread_reports) == fetch_range.total_pages
    assert isinstance(thread_outcomes[0], Completed)
    assert isinstance(async_outcome, Completed)
