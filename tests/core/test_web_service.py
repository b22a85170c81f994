"""Tests for the simulated slow data source."""

from __future__ import annotations

import time

import pytest

from bgfetch.core.web_service import DEFAULT_LATENCY_S, FetchFailedError, fetch_results, make_fetcher


def test_fetch_results_labels_items_by_absolute_index() -> None:
    items = fetch_results(100, 5, latency_s=0)
    assert items == ["Item 100", "Item 101", "Item 102", "Item 103", "Item 104"]


def test_fetch_results_always_returns_page_size_items() -> None:
    assert len(fetch_results(0, 100, latency_s=0)) == 100
    assert len(fetch_results(595, 10, latency_s=0)) == 10


def test_fetch_results_sleeps_for_latency(monkeypatch: pytest.MonkeyPatch) -> None:
    slept: list[float] = []
    monkeypatch.setattr(time, "sleep", lambda s: slept.append(s))

    fetch_results(0, 1)
    assert slept == [DEFAULT_LATENCY_S]


def test_make_fetcher_binds_latency(monkeypatch: pytest.MonkeyPatch) -> None:
    slept: list[float] = []
    monkeypatch.setattr(time, "sleep", lambda s: slept.append(s))

    fetch = make_fetcher(0.25)
    assert fetch(10, 2) == ["Item 10", "Item 11"]
    assert slept == [0.25]


def test_zero_latency_does_not_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(_s: float) -> None:
        raise AssertionError("should not sleep")

    monkeypatch.setattr(time, "sleep", _fail)
    assert fetch_results(0, 3, latency_s=0) == ["Item 0", "Item 1", "Item 2"]


def test_fetch_failed_error_message() -> None:
    err = FetchFailedError(200, 100, "timeout")
    assert err.offset == 200
    assert err.page_size == 100
    assert str(err) == "Failed to fetch 100 items at offset 200: timeout"
    assert str(FetchFailedError(0, 1)) == "Failed to fetch 1 items at offset 0"
