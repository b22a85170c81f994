"""Controller that drives both fetch runners and feeds FetchState.

This is the observer side of the background fetch: it owns the start and
cancel triggers, turns progress reports and outcomes into log lines, data
rows and the processing-time status, and makes sure only one fetch runs at
a time.
"""

from __future__ import annotations

from typing import Callable, Optional

from nicegui import ui

from bgfetch.core.fetch_range import FetchRange
from bgfetch.core.outcome import TaskOutcome, UNKNOWN_STATUS, describe, status_text
from bgfetch.core.utils.logging import get_logger
from bgfetch.core.utils.progress import ProgressReport
from bgfetch.core.web_service import FetchFn
from bgfetch.gui.app_config import DEFAULT_POLL_INTERVAL_S, AppConfig
from bgfetch.gui.async_job_runner import AsyncFetchRunner
from bgfetch.gui.state import FetchState
from bgfetch.gui.thread_job_runner import ThreadFetchRunner, UiTimerFactory

logger = get_logger(__name__)

CALCULATING_STATUS = "Calculating..."


def _nicegui_timer(interval: float, callback: Callable[[], None]) -> object:
    return ui.timer(interval, callback)


class FetchController:
    """Start/cancel fetches with either runner and record what happens."""

    def __init__(
        self,
        state: FetchState,
        fetch_range: FetchRange,
        *,
        fetch_fn: Optional[FetchFn] = None,
        ui_timer_factory: UiTimerFactory = _nicegui_timer,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
    ) -> None:
        self._state = state
        self._fetch_range = fetch_range
        self._ui_timer_factory = ui_timer_factory
        self._poll_interval_s = poll_interval_s
        self._thread_runner = ThreadFetchRunner(fetch_fn)
        self._async_runner = AsyncFetchRunner(fetch_fn)
        self._thread_job_active = False
        self._async_job_active = False

    @classmethod
    def from_config(
        cls,
        state: FetchState,
        config: AppConfig,
        *,
        ui_timer_factory: UiTimerFactory = _nicegui_timer,
    ) -> "FetchController":
        return cls(
            state,
            config.fetch_range(),
            fetch_fn=config.fetcher(),
            ui_timer_factory=ui_timer_factory,
            poll_interval_s=config.data.poll_interval_s,
        )

    @property
    def state(self) -> FetchState:
        return self._state

    @property
    def fetch_range(self) -> FetchRange:
        return self._fetch_range

    def is_running(self) -> bool:
        """True from start until the outcome has been handled."""
        return self._thread_job_active or self._async_job_active

    # -----------------------------
    # Triggers
    # -----------------------------
    def start_thread_style(self) -> Optional[int]:
        """Start a fetch on a background thread; returns the job id, or None if busy."""
        if self.is_running():
            logger.warning("a fetch is already running; ignoring start")
            return None

        self._thread_job_active = True
        self._state.set_processing_time(CALCULATING_STATUS)
        self._state.write_log("Starting process with background thread...")
        self._state.show_progress()

        return self._thread_runner.start(
            self._fetch_range,
            ui_timer_factory=self._ui_timer_factory,
            poll_interval_s=self._poll_interval_s,
            on_progress=self._report_progress,
            on_complete=self._on_thread_complete,
            on_error=self._on_thread_error,
        )

    async def start_async_style(self) -> Optional[TaskOutcome]:
        """Run a fetch with async/await and return its outcome.

        Returns None if another fetch is running or the fetch failed.
        """
        if self.is_running():
            logger.warning("a fetch is already running; ignoring start")
            return None

        self._async_job_active = True
        self._state.set_processing_time(CALCULATING_STATUS)
        self._state.write_log("Starting process with async / await.")
        self._state.show_progress()

        try:
            outcome = await self._async_runner.run(self._fetch_range, on_progress=self._report_progress)
        except Exception as exc:
            logger.error("async fetch failed", exc_info=True)
            self._async_job_active = False
            self._fail(exc)
            return None

        self._async_job_active = False
        self._finish(outcome)
        return outcome

    def cancel(self) -> None:
        """Request cancellation of whichever fetch is running.

        Safe to call when nothing is running or more than once.
        """
        self._state.write_log("Cancellation requested...")
        if self._async_runner.is_running():
            self._async_runner.request_cancel()
        elif self._thread_job_active:
            self._thread_runner.request_cancel()
        else:
            logger.debug("cancel: nothing is running")

    # -----------------------------
    # Runner callbacks (observer context)
    # -----------------------------
    def _report_progress(self, report: ProgressReport) -> None:
        self._state.write_log(
            f"Progress updated to {report.percent_complete}%. Received {report.item_count} items."
        )
        self._state.append_data(report.batch)
        self._state.set_progress(report.percent_complete)

    def _on_thread_complete(self, outcome: TaskOutcome) -> None:
        self._thread_job_active = False
        self._finish(outcome)

    def _on_thread_error(self, exc: BaseException, tb: str) -> None:
        self._thread_job_active = False
        logger.error(f"thread fetch failed:\n{tb}")
        self._fail(exc)

    def _finish(self, outcome: TaskOutcome) -> None:
        self._state.set_processing_time(status_text(outcome))
        self._state.hide_progress()
        self._state.write_log(f"Background process complete. Operation was {describe(outcome)}.")

    def _fail(self, exc: BaseException) -> None:
        self._state.set_processing_time(UNKNOWN_STATUS)
        self._state.hide_progress()
        self._state.write_log(f"Background process failed: {exc}")
