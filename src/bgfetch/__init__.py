"""Cancellable, progress-reporting background fetches (thread and async/await)."""

__version__ = "0.1.0"
