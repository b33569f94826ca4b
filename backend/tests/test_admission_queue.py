"""
Tests for admission_queue.py - single-worker FIFO serialization.
"""
import asyncio
import gc
import logging
import threading

import pytest

from cv_tracker.services.admission_queue import AdmissionQueue
from cv_tracker.services.errors import QueueFull


def run(coro):
    return asyncio.run(coro)


class TestOrdering:
    def test_tasks_run_in_arrival_order(self):
        order = []

        async def record(i):
            await asyncio.sleep(0.001 * (5 - i))
            order.append(i)
            return i

        async def main():
            queue = AdmissionQueue()
            try:
                return await asyncio.gather(*[queue.submit(record, i) for i in range(5)])
            finally:
                await queue.stop()

        results = run(main())
        assert results == [0, 1, 2, 3, 4]
        assert order == [0, 1, 2, 3, 4]

    def test_never_more_than_one_task_at_a_time(self):
        active = 0
        peak = 0

        async def work():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.005)
            active -= 1

        async def main():
            queue = AdmissionQueue()
            try:
                await asyncio.gather(*[queue.submit(work) for _ in range(8)])
            finally:
                await queue.stop()

        run(main())
        assert peak == 1

    def test_plain_functions_run_off_the_event_loop(self):
        loop_thread = threading.get_ident()

        def blocking(x):
            return x * 2, threading.get_ident()

        async def main():
            queue = AdmissionQueue()
            try:
                return await queue.submit(blocking, 21)
            finally:
                await queue.stop()

        value, worker_thread = run(main())
        assert value == 42
        assert worker_thread != loop_thread


class TestFailureIsolation:
    def test_failure_reaches_only_its_caller(self):
        def boom():
            raise RuntimeError("store unavailable")

        def fine():
            return "ok"

        async def main():
            queue = AdmissionQueue()
            try:
                return await asyncio.gather(
                    queue.submit(boom), queue.submit(fine), return_exceptions=True
                )
            finally:
                await queue.stop()

        failed, succeeded = run(main())
        assert isinstance(failed, RuntimeError)
        assert str(failed) == "store unavailable"
        assert succeeded == "ok"

    def test_failed_task_is_not_replayed(self):
        calls = []

        def flaky():
            calls.append(1)
            raise ValueError("nope")

        async def main():
            queue = AdmissionQueue()
            try:
                with pytest.raises(ValueError):
                    await queue.submit(flaky)
                await queue.submit(lambda: None)
            finally:
                await queue.stop()

        run(main())
        assert calls == [1]


    def test_abandoned_failure_is_logged_not_left_unretrieved(self, caplog):
        """A caller cancelled while its task waits; the task later fails."""
        unhandled = []

        async def main():
            asyncio.get_running_loop().set_exception_handler(
                lambda loop, context: unhandled.append(context)
            )
            queue = AdmissionQueue()
            release = asyncio.Event()

            async def fails():
                await release.wait()
                raise RuntimeError("store down")

            caller = asyncio.create_task(queue.submit(fails))
            await asyncio.sleep(0.01)
            caller.cancel()
            with pytest.raises(asyncio.CancelledError):
                await caller

            release.set()
            await queue.stop()
            await asyncio.sleep(0)
            gc.collect()

        with caplog.at_level(logging.WARNING, logger="cv_tracker.services.admission_queue"):
            run(main())

        assert unhandled == []
        assert any(
            "after its caller went away" in r.getMessage() for r in caplog.records
        )


class TestStatsAndPause:
    def test_idle_stats(self):
        assert AdmissionQueue().stats() == {"size": 0, "pending": 0, "isPaused": False}

    def test_paused_queue_holds_tasks(self):
        async def main():
            queue = AdmissionQueue()
            await queue.start()
            queue.pause()
            tasks = [asyncio.create_task(queue.submit(lambda i=i: i)) for i in range(3)]
            await asyncio.sleep(0.01)
            paused_stats = queue.stats()
            queue.resume()
            results = await asyncio.gather(*tasks)
            await queue.stop()
            return paused_stats, results, queue.stats()

        paused_stats, results, final_stats = run(main())
        assert paused_stats == {"size": 3, "pending": 0, "isPaused": True}
        assert results == [0, 1, 2]
        assert final_stats == {"size": 0, "pending": 0, "isPaused": False}

    def test_pending_counts_the_in_flight_task(self):
        async def main():
            queue = AdmissionQueue()
            release = asyncio.Event()

            async def slow():
                await release.wait()

            running = asyncio.create_task(queue.submit(slow))
            waiting = asyncio.create_task(queue.submit(slow))
            await asyncio.sleep(0.01)
            stats = queue.stats()
            release.set()
            await asyncio.gather(running, waiting)
            await queue.stop()
            return stats

        assert run(main()) == {"size": 1, "pending": 1, "isPaused": False}


class TestBoundedQueue:
    def test_overflow_is_rejected(self):
        async def main():
            queue = AdmissionQueue(max_size=1)
            await queue.start()
            queue.pause()
            admitted = asyncio.create_task(queue.submit(lambda: "admitted"))
            await asyncio.sleep(0.01)
            with pytest.raises(QueueFull):
                await queue.submit(lambda: "rejected")
            queue.resume()
            result = await admitted
            await queue.stop()
            return result

        assert run(main()) == "admitted"


class TestInstances:
    def test_instances_are_independent(self):
        """Two queues never share state; one paused queue does not stall another."""
        async def main():
            first = AdmissionQueue()
            second = AdmissionQueue()
            await first.start()
            first.pause()
            held = asyncio.create_task(first.submit(lambda: 1))
            value = await second.submit(lambda: 2)
            stats = first.stats()
            first.resume()
            await held
            await first.stop()
            await second.stop()
            return value, stats

        value, stats = run(main())
        assert value == 2
        assert stats["size"] == 1
