import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from library_sync.clock import Clock, SystemClock


logger = logging.getLogger(__name__)

TaskCallback = Callable[[], Awaitable[None]]


@dataclass
class ScheduledTask:
    task_id: int
    due_at_ms: int
    callback: TaskCallback = field(repr=False)
    done: bool = False


class SettleScheduler:
    """Single-shot deferred tasks keyed by due time.

    Tasks are plain data; ``run_due`` executes whatever the clock says is due,
    so tests drive it with a manual clock instead of sleeping.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._tasks: list[ScheduledTask] = []
        self._next_id = 1

    @property
    def pending_tasks(self) -> list[ScheduledTask]:
        return [task for task in self._tasks if not task.done]

    def schedule(self, delay_ms: int, callback: TaskCallback) -> ScheduledTask:
        task = ScheduledTask(
            task_id=self._next_id,
            due_at_ms=self._clock.now_ms() + max(delay_ms, 0),
            callback=callback,
        )
        self._next_id += 1
        self._tasks.append(task)
        logger.debug("Scheduled task %d due at %d", task.task_id, task.due_at_ms)
        return task

    async def run_due(self) -> int:
        now = self._clock.now_ms()
        due = sorted(
            (task for task in self._tasks if not task.done and task.due_at_ms <= now),
            key=lambda task: (task.due_at_ms, task.task_id),
        )
        for task in due:
            task.done = True
        self._tasks = [task for task in self._tasks if not task.done]
        for task in due:
            await task.callback()
        return len(due)


def _log_failure(running: asyncio.Future) -> None:
    if running.cancelled():
        return
    exc = running.exception()
    if exc is not None:
        logger.error("Scheduled task failed: %s", exc, exc_info=exc)


class AsyncioSettleScheduler(SettleScheduler):
    """Scheduler that also arms an event-loop timer for each task.

    Tasks are fire-and-forget: nothing cancels them once armed.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        super().__init__(clock)
        self._running: set[asyncio.Task] = set()

    def schedule(self, delay_ms: int, callback: TaskCallback) -> ScheduledTask:
        task = super().schedule(delay_ms, callback)
        loop = asyncio.get_running_loop()
        loop.call_later(max(delay_ms, 0) / 1000, self._fire, task)
        return task

    def _fire(self, task: ScheduledTask) -> None:
        if task.done:
            return
        task.done = True
        self._tasks = [item for item in self._tasks if not item.done]
        running = asyncio.ensure_future(task.callback())
        self._running.add(running)
        running.add_done_callback(self._running.discard)
        running.add_done_callback(_log_failure)
