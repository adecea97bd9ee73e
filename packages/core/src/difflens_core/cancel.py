"""Cooperative cancellation for CPU-bound diff and analysis work."""

from __future__ import annotations

import threading
import time

from difflens_store.errors import AnalysisCancelledError


class CancelToken:
    """A cancel flag plus an optional monotonic deadline.

    Work units call check() at safe points; it raises AnalysisCancelledError
    once cancel() was called or the deadline passed. Nothing is persisted
    before the pipeline's final step, so a cancelled run leaves no partial
    Version or Review behind.
    """

    def __init__(self, deadline: float | None = None):
        self._event = threading.Event()
        self._deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float) -> CancelToken:
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def check(self) -> None:
        if self.cancelled:
            raise AnalysisCancelledError("Analysis cancelled before completion")
