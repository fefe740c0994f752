"""Cooperative batched work.

Long jobs (parsing a large todo file, filling a viewport) are written as
generators that yield after each unit of work. The owner's event loop
drives them with ``BatchScheduler.step()`` so input is never blocked.
Starting a new batch cancels the one in flight; only one batch ever runs.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

Work = Callable[["CancelToken"], Iterator[Any]]


class CancelToken:
    """Set once a batch has been superseded or stopped."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class BatchScheduler:
    """Runs at most one resumable batch at a time.

    Example:
        scheduler = BatchScheduler()
        scheduler.start(lambda token: store.iter_load(lines, token))
        while scheduler.step():
            handle_input()
    """

    def __init__(self) -> None:
        self._batch: Iterator[Any] | None = None
        self._token: CancelToken | None = None
        self.completed = 0
        """Units of work done by the current batch."""

    @property
    def busy(self) -> bool:
        return self._batch is not None

    def start(self, work: Work) -> CancelToken:
        """Cancel any batch in flight and install ``work`` as the new one."""
        self.cancel()
        token = CancelToken()
        self._token = token
        self._batch = work(token)
        self.completed = 0
        return token

    def cancel(self) -> None:
        """Cancel the current batch; its generator is closed."""
        if self._token is not None:
            self._token.cancel()
        if self._batch is not None and hasattr(self._batch, "close"):
            self._batch.close()
        self._batch = None
        self._token = None

    def step(self) -> bool:
        """Run one unit of work. Returns True while more work remains."""
        if self._batch is None:
            return False

        try:
            next(self._batch)
        except StopIteration:
            self._batch = None
            self._token = None
            return False

        self.completed += 1
        return True

    def run(self) -> int:
        """Drain the current batch, returning the number of units run."""
        while self.step():
            pass
        return self.completed
