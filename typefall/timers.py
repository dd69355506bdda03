from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager


logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def _log_task_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("timer %s crashed", task.get_name(), exc_info=exc)


class PeriodicTimer:
    """Repeatedly sleep `delay()` seconds, then call `fire(elapsed_ms)`.

    `delay` is re-evaluated before every sleep so the period can follow live
    state (e.g. the spawn interval shrinking as the level rises). `elapsed_ms`
    is measured with `clock`, not assumed from the requested delay.
    """

    def __init__(
        self,
        *,
        name: str,
        delay: Callable[[], float],
        fire: Callable[[float], None],
        clock: Clock = time.monotonic,
    ) -> None:
        self.name = name
        self._delay = delay
        self._fire = fire
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        self._task.add_done_callback(_log_task_failure)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        last = self._clock()
        while True:
            await asyncio.sleep(max(self._delay(), 0.0))
            now = self._clock()
            elapsed_ms = (now - last) * 1000.0
            last = now
            self._fire(elapsed_ms)


class TimerSet:
    """A group of timers that are started and torn down together.

    Every `release()` bumps `epoch`; callbacks bound to an older epoch must be
    ignored by their owner, so nothing scheduled before a release can act after it.
    """

    def __init__(self) -> None:
        self._timers: list[PeriodicTimer] = []
        self.epoch = 0

    @property
    def active(self) -> bool:
        return bool(self._timers)

    @property
    def names(self) -> list[str]:
        return [t.name for t in self._timers]

    def acquire(self, build: Callable[[int], list[PeriodicTimer]]) -> int:
        """Start the timers returned by `build(epoch)`, replacing any running set."""

        if self._timers:
            self.release()
        self._timers = list(build(self.epoch))
        for t in self._timers:
            t.start()
        logger.debug("timers acquired epoch=%s names=%s", self.epoch, self.names)
        return self.epoch

    def release(self) -> None:
        for t in self._timers:
            t.cancel()
        if self._timers:
            logger.debug("timers released epoch=%s names=%s", self.epoch, self.names)
        self._timers = []
        self.epoch += 1

    @contextmanager
    def scoped(self, build: Callable[[int], list[PeriodicTimer]]) -> Iterator[int]:
        epoch = self.acquire(build)
        try:
            yield epoch
        finally:
            self.release()
