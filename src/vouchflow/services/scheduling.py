"""Cancellable cooperative timers for the recording flow."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

TimerCallback = Callable[[], Awaitable[None]]


class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled before it fires."""

    def cancel(self) -> None:
        """Prevent the callback from running. No-op once it has fired."""


class Scheduler(Protocol):
    """Interface for scheduling one-shot callbacks."""

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds."""


@dataclass
class _TaskTimer(TimerHandle):
    task: asyncio.Task | None = None
    fired: bool = False

    def cancel(self) -> None:
        # A timer whose callback is already running must not be interrupted.
        if self.task is not None and not self.fired:
            self.task.cancel()


@dataclass
class AsyncioScheduler(Scheduler):
    """Scheduler backed by tasks on the running event loop."""

    _tasks: set[asyncio.Task] = field(default_factory=set)

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        """Schedule ``callback`` on the running loop."""
        timer = _TaskTimer()

        async def _run() -> None:
            await asyncio.sleep(delay)
            timer.fired = True
            await callback()

        task = asyncio.get_running_loop().create_task(_run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        timer.task = task
        return timer
