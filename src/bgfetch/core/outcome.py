"""Terminal outcome of a background fetch task: ``Completed`` or ``Cancelled``."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Union

UNKNOWN_STATUS = "Unknown"


@dataclass(frozen=True)
class Completed:
    elapsed: timedelta

    @property
    def cancelled(self) -> bool:
        return False


@dataclass(frozen=True)
class Cancelled:
    @property
    def cancelled(self) -> bool:
        return True


TaskOutcome = Union[Completed, Cancelled]


def format_elapsed(elapsed: timedelta) -> str:
    return f"{elapsed.total_seconds()} seconds"


def status_text(outcome: TaskOutcome) -> str:
    """Human-readable terminal status: ``"{seconds} seconds"`` or ``"Unknown"``."""
    if isinstance(outcome, Completed):
        return format_elapsed(outcome.elapsed)
    return UNKNOWN_STATUS


def describe(outcome: TaskOutcome) -> str:
    return "cancelled" if outcome.cancelled else "successful"
