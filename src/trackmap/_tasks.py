"""Cancellable background tasks owned by a view.

Both helpers wrap a single :class:`asyncio.Task` and expose explicit
start/cancel so the owner can tear everything down on unmount.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)


class Debouncer:
    """Run the most recently scheduled callable after a quiet period.

    Scheduling again before the delay elapses replaces the pending call
    (last write wins).
    """

    def __init__(self, delay: float, *, name: str = "debounce") -> None:
        self._delay = delay
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, fn: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._run(fn), name=self._name)

    async def _run(self, fn: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(self._delay)
        try:
            await fn()
        except Exception:
            _logger.exception("Debounced task %s failed", self._name)

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Wait for the pending call, if any, to finish."""
        task = self._task
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task


class ProgressTicker:
    """Advance a perceived-progress value on a fixed interval.

    The value grows by ``step`` every ``interval`` seconds and stops at
    ``cap``; only :meth:`stop` (or reaching the cap) ends the task.
    """

    def __init__(
        self,
        *,
        interval: float,
        step: float,
        cap: float,
        on_tick: Callable[[float], None],
    ) -> None:
        self._interval = interval
        self._step = step
        self._cap = cap
        self._on_tick = on_tick
        self._value = 0.0
        self._task: asyncio.Task[None] | None = None

    @property
    def value(self) -> float:
        return self._value

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, initial: float = 0.0) -> None:
        self.stop()
        self._value = min(initial, self._cap)
        self._task = asyncio.create_task(self._loop(), name="progress-ticker")

    async def _loop(self) -> None:
        while self._value < self._cap:
            await asyncio.sleep(self._interval)
            self._value = min(self._value + self._step, self._cap)
            try:
                self._on_tick(self._value)
            except Exception:
                _logger.exception("Progress tick callback failed")
        _logger.debug("Progress ticker reached cap %.0f", self._cap)

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
