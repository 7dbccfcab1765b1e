"""
Unit tests for SampleQueue.

Coverage:
- Items are handled in arrival order
- Only one item is handled at a time
- A failing handler does not stop the worker
- shutdown() cancels the worker, is safe to call twice and closes the queue
"""

from __future__ import annotations

import asyncio
import unittest

from custom_components.leftbehind.session_queue import SampleQueue


class TestSampleQueue(unittest.IsolatedAsyncioTestCase):

    async def test_processes_in_order(self):
        handled = []

        async def handler(item):
            await asyncio.sleep(0)
            handled.append(item)

        queue = SampleQueue(handler)
        for i in range(5):
            queue.put(i)
        await queue.join()

        self.assertEqual(handled, [0, 1, 2, 3, 4])
        await queue.shutdown()

    async def test_handles_one_item_at_a_time(self):
        running = 0
        peak = 0

        async def handler(item):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        queue = SampleQueue(handler)
        for i in range(4):
            queue.put(i)
        await queue.join()

        self.assertEqual(peak, 1)
        await queue.shutdown()

    async def test_handler_error_does_not_stop_worker(self):
        handled = []

        async def handler(item):
            if item == "bad":
                raise RuntimeError("broken sample")
            handled.append(item)

        queue = SampleQueue(handler)
        queue.put("bad")
        queue.put("good")
        await queue.join()

        self.assertEqual(handled, ["good"])
        await queue.shutdown()

    async def test_pending_counts_queued_items(self):
        gate = asyncio.Event()

        async def handler(item):
            await gate.wait()

        queue = SampleQueue(handler)
        self.assertEqual(queue.pending, 0)
        queue.put(1)
        queue.put(2)
        queue.put(3)
        await asyncio.sleep(0)

        # The first item is being handled, the rest wait
        self.assertEqual(queue.pending, 2)
        await queue.shutdown()

    async def test_shutdown_twice_is_safe(self):
        async def handler(item):
            pass

        queue = SampleQueue(handler)
        queue.put(1)
        await queue.shutdown()
        await queue.shutdown()
        self.assertEqual(queue.pending, 0)

    async def test_put_after_shutdown_is_dropped(self):
        handled = []

        async def handler(item):
            handled.append(item)

        queue = SampleQueue(handler)
        queue.put(1)
        await queue.join()
        await queue.shutdown()

        queue.put(2)
        await asyncio.sleep(0)

        self.assertTrue(queue.closed)
        self.assertEqual(handled, [1])
        self.assertEqual(queue.pending, 0)
        self.assertIsNone(queue._worker)
