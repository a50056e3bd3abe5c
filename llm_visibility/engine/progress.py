"""
Progress delivery for a run.

ProgressChannel decouples the scheduler from observers. The scheduler calls
publish() (a non-blocking put onto an asyncio.Queue) after every task state
change; a separate delivery coroutine takes snapshots off the queue and calls
each subscriber in order. Observers always see snapshots in publication order.

Callbacks receive a tuple of TaskSnapshot for the whole run and may be plain
functions or coroutine functions. Plain functions run in a worker thread
(asyncio.to_thread), so a blocking observer such as a terminal redraw never
holds up in-flight tasks; they must not call back into the scheduler, which
is not thread-safe (use a coroutine function for that). Coroutine functions
run on the event loop and should not block. Exceptions raised by a callback
are logged and otherwise ignored.

Example:
    >>> channel = ProgressChannel()
    >>> channel.subscribe(lambda tasks: print(sum(t.is_terminal for t in tasks)))
    >>> channel.start()
    >>> channel.publish(snapshot)
    >>> await channel.close()  # waits until every snapshot was delivered
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from llm_visibility.engine.tasks import TaskSnapshot

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[tuple[TaskSnapshot, ...]], None | Awaitable[None]]

# Queue sentinel that ends the delivery loop
_CLOSE = object()


class ProgressChannel:
    """
    Ordered, non-blocking fan-out of task snapshots to subscribers.

    Attributes:
        delivered: Number of snapshots delivered so far
    """

    def __init__(self):
        self._subscribers: list[ProgressCallback] = []
        self._queue: asyncio.Queue = asyncio.Queue()
        self._delivery: asyncio.Task | None = None
        self.delivered = 0

    def subscribe(self, callback: ProgressCallback) -> None:
        """Register an observer. Subscribing after start() is allowed."""
        self._subscribers.append(callback)

    def start(self) -> None:
        """Start the delivery coroutine on the running event loop."""
        if self._delivery is None:
            self._delivery = asyncio.create_task(self._deliver())

    def publish(self, snapshot: tuple[TaskSnapshot, ...]) -> None:
        """Queue a snapshot for delivery. Never blocks."""
        self._queue.put_nowait(snapshot)

    async def close(self) -> None:
        """Deliver every queued snapshot, then stop the delivery coroutine."""
        if self._delivery is None:
            return
        self._queue.put_nowait(_CLOSE)
        await self._delivery
        self._delivery = None

    async def _deliver(self) -> None:
        while True:
            snapshot = await self._queue.get()
            if snapshot is _CLOSE:
                return
            for callback in list(self._subscribers):
                await self._notify(callback, snapshot)
            self.delivered += 1

    async def _notify(
        self, callback: ProgressCallback, snapshot: tuple[TaskSnapshot, ...]
    ) -> None:
        try:
            if inspect.iscoroutinefunction(callback):
                result = callback(snapshot)
            else:
                result = await asyncio.to_thread(callback, snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                f"Progress callback {getattr(callback, '__name__', callback)!r} "
                f"raised {type(e).__name__}: {e}",
                exc_info=True,
            )
