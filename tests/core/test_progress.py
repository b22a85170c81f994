"""Tests for progress reports, cancellation tokens and task outcomes."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from bgfetch.core.outcome import Cancelled, Completed, UNKNOWN_STATUS, describe, status_text
from bgfetch.core.utils.progress import CancellationToken, CancelledError, ProgressReport


def test_progress_report_item_count() -> None:
    report = ProgressReport(percent_complete=20, batch=("Item 1", "Item 2"))
    assert report.item_count == 2
    assert ProgressReport(percent_complete=0).item_count == 0


def test_progress_report_is_frozen() -> None:
    report = ProgressReport(percent_complete=20)
    with pytest.raises(AttributeError):
        report.percent_complete = 40  # type: ignore[misc]


def test_token_starts_uncancelled() -> None:
    token = CancellationToken()
    assert token.is_cancelled is False
    token.raise_if_cancelled()


def test_token_cancel_is_sticky_and_idempotent() -> None:
    token = CancellationToken()
    token.cancel()
    token.cancel()
    assert token.is_cancelled is True
    with pytest.raises(CancelledError):
        token.raise_if_cancelled()


def test_token_cancel_from_other_thread() -> None:
    token = CancellationToken()
    t = threading.Thread(target=token.cancel)
    t.start()
    t.join()
    assert token.is_cancelled is True


def test_completed_outcome_status() -> None:
    outcome = Completed(elapsed=timedelta(seconds=25, microseconds=500000))
    assert outcome.cancelled is False
    assert status_text(outcome) == "25.5 seconds"
    assert describe(outcome) == "successful"


def test_cancelled_outcome_status() -> None:
    outcome = Cancelled()
    assert outcome.cancelled is True
    assert status_text(outcome) == UNKNOWN_STATUS == "Unknown"
    assert describe(outcome) == "cancelled"


def test_outcomes_compare_by_value() -> None:
    assert Cancelled() == Cancelled()
    assert Completed(timedelta(seconds=1)) == Completed(timedelta(seconds=1))
    assert Completed(timedelta(seconds=1)) != Cancelled()
