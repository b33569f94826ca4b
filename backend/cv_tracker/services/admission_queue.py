"""Single-worker FIFO admission queue.

Every mutating eligibility call is wrapped as a task and executed strictly
one at a time, in arrival order. The next task is only dequeued once the
current one has finished, successfully or not, which turns the store's
read-check-then-write sequences into atomic-in-effect operations without
transactions or locks.

Follows the ``start() / stop()`` lifecycle used by the other background
components; the worker also starts lazily on the first ``submit``.
"""
from __future__ import annotations

import asyncio
import contextlib
import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable

from .errors import QueueFull

logger = logging.getLogger(__name__)


@dataclass
class _QueuedTask:
    fn: Callable[..., Any]
    args: tuple
    kwargs: dict
    future: asyncio.Future


class AdmissionQueue:
    """Process-local serialization point for mutating requests.

    Parameters
    ----------
    max_size:
        Maximum number of *waiting* tasks. ``0`` (the default) means
        unbounded: callers see growing latency, never rejection.
    name:
        Used for the worker task name and in log lines.
    """

    def __init__(self, *, max_size: int = 0, name: str = "admission-queue") -> None:
        self._max_size = max_size
        self._name = name

        self._queue: asyncio.Queue[_QueuedTask] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._held: _QueuedTask | None = None
        self._in_flight: _QueuedTask | None = None
        self._unpaused: asyncio.Event | None = None

        # Counters
        self._completed: int = 0
        self._failed: int = 0

    # -- lifecycle ----------------------------------------------------------

    def _ensure_loop_state(self) -> None:
        # asyncio primitives are created inside the running loop
        if self._queue is None:
            self._queue = asyncio.Queue()
            self._unpaused = asyncio.Event()
            self._unpaused.set()

    async def start(self) -> None:
        """Start the worker loop."""
        self._ensure_loop_state()
        if self._worker is not None and not self._worker.done():
            return
        self._worker = asyncio.create_task(self._run(), name=self._name)
        logger.info(
            "Admission queue started",
            extra={"step": "queue_start", "queue_size": self.size},
        )

    async def stop(self, *, drain: bool = True) -> None:
        """Stop the worker, by default after every admitted task has run."""
        if self._worker is None:
            return
        if drain and self._queue is not None:
            self.resume()
            await self._queue.join()
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        dropped = self._cancel_waiting()
        logger.info(
            "Admission queue stopped (completed=%d, failed=%d, dropped=%d)",
            self._completed,
            self._failed,
            dropped,
            extra={"step": "queue_stop", "queue_size": self.size},
        )

    def pause(self) -> None:
        """Stop dequeuing; the in-flight task (if any) still completes."""
        self._ensure_loop_state()
        self._unpaused.clear()

    def resume(self) -> None:
        self._ensure_loop_state()
        self._unpaused.set()

    # -- public API ---------------------------------------------------------

    async def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
        """Enqueue ``fn(*args, **kwargs)`` and wait for its outcome.

        Coroutine functions are awaited on the loop; plain functions run in
        a worker thread. Either way only one task executes at a time. The
        task's exception, if any, is raised here and nowhere else.
        """
        if self._worker is None or self._worker.done():
            await self.start()

        if self._max_size and self.size >= self._max_size:
            logger.warning(
                "Admission queue full, rejecting task",
                extra={"step": "queue_reject", "queue_size": self.size},
            )
            raise QueueFull(f"Admission queue is full ({self._max_size} waiting)")

        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_QueuedTask(fn, args, kwargs, future))
        # Admitted tasks run to completion even if this caller goes away.
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            future.add_done_callback(self._log_abandoned)
            raise

    @property
    def size(self) -> int:
        """Tasks admitted but not yet started."""
        if self._queue is None:
            return 0
        return self._queue.qsize() + (1 if self._held is not None else 0)

    @property
    def pending(self) -> int:
        """Tasks currently executing (0 or 1)."""
        return 1 if self._in_flight is not None else 0

    @property
    def is_paused(self) -> bool:
        return self._unpaused is not None and not self._unpaused.is_set()

    def stats(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "pending": self.pending,
            "isPaused": self.is_paused,
        }

    # -- internals ----------------------------------------------------------

    def _log_abandoned(self, future: asyncio.Future) -> None:
        # Nobody awaits this future any more; retrieve the outcome here.
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning(
                "Queued task failed after its caller went away: %s", exc,
                exc_info=exc,
                extra={"step": "queue_task_abandoned", "queue_size": self.size},
            )

    async def _execute(self, task: _QueuedTask) -> Any:
        if inspect.iscoroutinefunction(task.fn):
            return await task.fn(*task.args, **task.kwargs)
        return await asyncio.to_thread(
            functools.partial(task.fn, *task.args, **task.kwargs)
        )

    async def _run(self) -> None:
        while True:
            task = await self._queue.get()
            # A dequeued task still counts as waiting while the queue is paused.
            self._held = task
            try:
                await self._unpaused.wait()
            except asyncio.CancelledError:
                self._held = None
                task.future.cancel()
                self._queue.task_done()
                raise
            self._held = None
            self._in_flight = task
            try:
                result = await self._execute(task)
            except asyncio.CancelledError:
                task.future.cancel()
                raise
            except Exception as exc:
                self._failed += 1
                if not task.future.done():
                    task.future.set_exception(exc)
            else:
                self._completed += 1
                if not task.future.done():
                    task.future.set_result(result)
            finally:
                self._in_flight = None
                self._queue.task_done()

    def _cancel_waiting(self) -> int:
        cancelled = 0
        while self._queue is not None and not self._queue.empty():
            task = self._queue.get_nowait()
            task.future.cancel()
            self._queue.task_done()
            cancelled += 1
        return cancelled
