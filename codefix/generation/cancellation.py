"""Per-run cooperative cancellation."""

import threading

from codefix.generation.errors import CodeFixCancelledError


class CancellationToken:
    """Cancellation signal owned by a single generation run.

    ``cancel()`` may be called from anywhere at any time. Work observes it only
    at ``check()`` calls; an in-flight request is never interrupted.
    """

    def __init__(self):
        self._cancelled = threading.Event()
        self._in_progress = False

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self) -> None:
        if self._cancelled.is_set():
            raise CodeFixCancelledError()

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def mark_in_progress(self) -> None:
        self._in_progress = True

    def reset(self) -> None:
        """Clear the in-progress marker. A cancelled token stays cancelled."""
        self._in_progress = False
