"""Event-driven fetch runner: a worker thread plus a UI-timer drained queue.

The fetch loop runs synchronously on a daemon thread. Everything it produces
(progress, outcome, error) is put on a single FIFO queue and handed to the
callbacks from ``_poll_queue_once``, which a UI timer calls on the observer's
context. Callbacks therefore never run on the worker thread, and the outcome
always arrives after the last progress report of its job.

The worker may already be fetching the next page when the observer sees a
report and cancels. Progress still queued at that point is dropped on
delivery, so the observer sees exactly the reports it had seen before
cancelling, followed by the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union
import queue
import threading
import traceback

from bgfetch.core.fetch_loop import run_fetch_loop
from bgfetch.core.fetch_range import FetchRange
from bgfetch.core.outcome import TaskOutcome, describe
from bgfetch.core.utils.logging import get_logger
from bgfetch.core.utils.progress import CancellationToken, ProgressReport
from bgfetch.core.web_service import FetchFn, make_fetcher

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProgressMsg:
    job_id: int
    report: ProgressReport


@dataclass(frozen=True)
class OutcomeMsg:
    job_id: int
    outcome: TaskOutcome


@dataclass(frozen=True)
class ErrorMsg:
    job_id: int
    exc: BaseException
    tb: str


WorkerMsg = Union[ProgressMsg, OutcomeMsg, ErrorMsg]

UiTimerFactory = Callable[[float, Callable[[], None]], object]
OnProgress = Callable[[ProgressReport], None]
OnComplete = Callable[[TaskOutcome], None]
OnError = Callable[[BaseException, str], None]


class ThreadFetchRunner:
    """Run one paginated fetch at a time on a background thread."""

    def __init__(self, fetch_fn: Optional[FetchFn] = None) -> None:
        self._fetch_fn: FetchFn = fetch_fn if fetch_fn is not None else make_fetcher()

        self._lock = threading.Lock()
        self._next_job_id: int = 0
        self._active_job_id: int = 0

        self._token: Optional[CancellationToken] = None
        self._thread: Optional[threading.Thread] = None
        self._q: "queue.Queue[WorkerMsg]" = queue.Queue()

        self._on_progress: Optional[OnProgress] = None
        self._on_complete: Optional[OnComplete] = None
        self._on_error: Optional[OnError] = None

        self._timer = None

    @property
    def active_job_id(self) -> int:
        with self._lock:
            return self._active_job_id

    def is_running(self) -> bool:
        t = self._thread
        return bool(t and t.is_alive())

    def request_cancel(self) -> None:
        """Ask the running job to stop before its next page.

        No-op when nothing is running; calling it again has no further effect.
        """
        with self._lock:
            token = self._token
            job_id = self._active_job_id
        if token is None or not self.is_running():
            logger.debug("request_cancel: no running job")
            return
        if token.is_cancelled:
            return
        logger.info(f"cancel requested for job {job_id}")
        token.cancel()

    def start(
        self,
        fetch_range: FetchRange,
        *,
        ui_timer_factory: UiTimerFactory,
        on_progress: Optional[OnProgress] = None,
        on_complete: Optional[OnComplete] = None,
        on_error: Optional[OnError] = None,
        poll_interval_s: float = 0.05,
    ) -> int:
        """Start a job and return its id.

        Only one job is expected at a time; guard with ``is_running()``. If a
        previous job is still alive it keeps running, but its messages are
        dropped because only the latest job id is delivered.
        """
        if self.is_running():
            logger.warning("start called while a job is still running; previous job is superseded")

        with self._lock:
            self._next_job_id += 1
            job_id = self._next_job_id

            self._active_job_id = job_id
            self._token = CancellationToken()

            self._on_progress = on_progress
            self._on_complete = on_complete
            self._on_error = on_error
            token = self._token

        self._ensure_timer(ui_timer_factory, poll_interval_s)

        logger.info(f"starting job {job_id}: {fetch_range}")
        t = threading.Thread(
            target=self._worker_entry,
            name=f"ThreadFetchRunner-{job_id}",
            daemon=True,
            args=(job_id, fetch_range, token),
        )
        self._thread = t
        t.start()
        return job_id

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker thread (messages may still be queued)."""
        t = self._thread
        if t is not None:
            t.join(timeout)

    def _ensure_timer(self, ui_timer_factory: UiTimerFactory, poll_interval_s: float) -> None:
        self._stop_timer()
        self._timer = ui_timer_factory(poll_interval_s, self._poll_queue_once)

    def _worker_entry(self, job_id: int, fetch_range: FetchRange, token: CancellationToken) -> None:
        def emit(report: ProgressReport) -> None:
            self._q.put(ProgressMsg(job_id=job_id, report=report))

        try:
            outcome = run_fetch_loop(fetch_range, emit, token=token, fetch_fn=self._fetch_fn)
        except Exception as exc:
            logger.error(f"job {job_id} failed: {exc}")
            self._q.put(ErrorMsg(job_id=job_id, exc=exc, tb=traceback.format_exc()))
            return

        logger.info(f"job {job_id} finished, operation was {describe(outcome)}")
        self._q.put(OutcomeMsg(job_id=job_id, outcome=outcome))

    def _poll_queue_once(self) -> None:
        max_per_tick = 200
        n = 0
        while n < max_per_tick:
            try:
                msg = self._q.get_nowait()
            except queue.Empty:
                break
            n += 1
            self._handle_msg(msg)

        if not self.is_running() and self._q.empty():
            self._stop_timer()

    def _handle_msg(self, msg: WorkerMsg) -> None:
        with self._lock:
            latest_id = self._active_job_id
            token = self._token
            on_progress = self._on_progress
            on_complete = self._on_complete
            on_error = self._on_error

        if msg.job_id != latest_id:
            logger.debug(f"dropping {type(msg).__name__} from stale job {msg.job_id}")
            return

        if isinstance(msg, ProgressMsg):
            # Nothing but the outcome reaches the observer once it has cancelled.
            if token is not None and token.is_cancelled:
                logger.debug(f"dropping progress {msg.report.percent_complete}% of cancelled job {msg.job_id}")
                return
            if on_progress:
                on_progress(msg.report)
            return

        if isinstance(msg, OutcomeMsg):
            if on_complete:
                on_complete(msg.outcome)
            return

        if isinstance(msg, ErrorMsg):
            if on_error:
                on_error(msg.exc, msg.tb)
            else:
                logger.error(f"unhandled error in job {msg.job_id}:\n{msg.tb}")

    def _stop_timer(self) -> None:
        if self._timer is None:
            return
        timer, self._timer = self._timer, None
        try:
            timer.cancel()
        except RuntimeError as exc:
            # NiceGUI raises when the owning client is already gone.
            logger.debug(f"timer cancel failed: {exc}")
